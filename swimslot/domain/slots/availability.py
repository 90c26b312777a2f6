"""
Availability and booking conflict checks

Windows are matched to bookings by date and normalized start time. The slot
id is compared too, but a mismatch does not stop a match: one slot covers a
date, so the date already identifies it.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from .windows import TimeWindow, date_key, generate_time_windows, normalize_time

logger = logging.getLogger(__name__)

INACTIVE_BOOKING_STATUSES = {"cancelled"}


def is_active(booking) -> bool:
    return booking.status not in INACTIVE_BOOKING_STATUSES


def booking_key(booking) -> tuple[str, str]:
    return date_key(booking.booking_date), normalize_time(booking.start_time)


def mark_availability(windows: list[TimeWindow], bookings: Iterable) -> list[TimeWindow]:
    """Set is_available on each window; a window is taken when an active booking starts at it"""
    booked = {}
    for booking in bookings:
        if is_active(booking):
            booked.setdefault(booking_key(booking), booking)

    for window in windows:
        booking = booked.get((window.date, normalize_time(window.start_time)))
        if booking is not None:
            same_slot = booking.slot_id == window.slot_id
            if not same_slot:
                logger.debug(
                    f"Booking {booking.id} matches window {window.date} {window.start_time} "
                    f"on a different slot ({booking.slot_id} != {window.slot_id})"
                )
        window.is_available = booking is None

    return windows


def find_conflict(bookings: Iterable, booking_date, start_time: str, exclude_id: Optional[str] = None):
    """Return the active booking holding booking_date/start_time, if any"""
    key = (date_key(booking_date), normalize_time(start_time))
    for booking in bookings:
        if booking.id == exclude_id or not is_active(booking):
            continue
        if booking_key(booking) == key:
            return booking
    return None


@dataclass
class DayAvailability:
    date: str
    slot_id: Optional[str]
    windows: list[TimeWindow] = field(default_factory=list)

    @property
    def has_slot(self) -> bool:
        return self.slot_id is not None

    @property
    def is_available(self) -> bool:
        return self.has_slot and any(w.is_available for w in self.windows)

    def free_times(self) -> list[str]:
        return [w.start_time for w in self.windows if w.is_available]

    def window_at(self, start_time: str) -> Optional[TimeWindow]:
        wanted = normalize_time(start_time)
        for window in self.windows:
            if window.start_time == wanted:
                return window
        return None

    def is_free_at(self, start_time: str) -> bool:
        window = self.window_at(start_time)
        return window is not None and window.is_available


@dataclass
class SpanAvailability:
    start_date: str
    days: list[DayAvailability]
    start_time: Optional[str] = None

    @property
    def common_times(self) -> list[str]:
        """Start times free on every day of the span, in order"""
        if not self.days or not all(day.has_slot for day in self.days):
            return []
        first, *rest = self.days
        return [t for t in first.free_times() if all(day.is_free_at(t) for day in rest)]

    @property
    def is_bookable(self) -> bool:
        if not self.days or not all(day.is_available for day in self.days):
            return False
        if self.start_time is not None:
            return all(day.is_free_at(self.start_time) for day in self.days)
        return True

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date,
            "start_time": self.start_time,
            "is_bookable": self.is_bookable,
            "common_times": self.common_times,
            "days": [
                {
                    "date": day.date,
                    "slot_id": day.slot_id,
                    "is_available": day.is_available,
                    "windows": [w.to_dict() for w in day.windows],
                }
                for day in self.days
            ],
        }


def build_day(target_date: date, slot, bookings: Iterable, exception=None) -> DayAvailability:
    """Windows for one date with availability marked; a missing slot gives an unavailable day"""
    if slot is None:
        return DayAvailability(date=date_key(target_date), slot_id=None)

    windows = generate_time_windows(slot, target_date, exception)
    mark_availability(windows, bookings)
    return DayAvailability(date=date_key(target_date), slot_id=slot.id, windows=windows)


def evaluate_span(days: list[DayAvailability], start_time: Optional[str] = None) -> SpanAvailability:
    start = days[0].date if days else ""
    normalized = normalize_time(start_time) if start_time else None
    return SpanAvailability(start_date=start, days=days, start_time=normalized)
