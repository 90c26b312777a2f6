"""
Time window generation

A slot describes one day's opening hours and a session length. The windows
for a date are the back-to-back sessions that fit inside those hours.
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from ...shared.validators import validate_time


@dataclass
class TimeWindow:
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    slot_id: Optional[str] = None
    is_available: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SlotHours:
    """Opening hours in effect for one date, after any per-date override"""

    start_time: str
    end_time: str
    slot_duration: int
    is_holiday: bool
    slot_id: Optional[str] = None


def normalize_time(value: str) -> str:
    """Zero-padded HH:MM from H:MM, HH:MM or HH:MM:SS"""
    return validate_time(str(value))


def to_minutes(value: str) -> int:
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def date_key(value) -> str:
    """YYYY-MM-DD for a date, datetime or ISO string"""
    if isinstance(value, date):
        return value.isoformat()[:10]
    return str(value).split("T")[0][:10]


def effective_slot_hours(slot, target_date: date, exception=None) -> SlotHours:
    """Apply a slot exception for target_date, if one is given and matches"""
    hours = SlotHours(
        start_time=slot.start_time,
        end_time=slot.end_time,
        slot_duration=slot.slot_duration,
        is_holiday=bool(slot.is_holiday),
        slot_id=getattr(slot, "id", None),
    )
    if exception is None or date_key(exception.date) != date_key(target_date):
        return hours

    return SlotHours(
        start_time=exception.new_start_time or hours.start_time,
        end_time=exception.new_end_time or hours.end_time,
        slot_duration=hours.slot_duration,
        is_holiday=hours.is_holiday or bool(exception.is_holiday),
        slot_id=hours.slot_id,
    )


def generate_time_windows(slot, target_date: date, exception=None) -> list[TimeWindow]:
    """
    Split a slot's hours on target_date into consecutive windows of slot_duration minutes.

    A trailing remainder shorter than the duration is dropped. Holidays, empty
    ranges and non-positive durations produce no windows.
    """
    hours = effective_slot_hours(slot, target_date, exception)
    if hours.is_holiday:
        return []

    duration = hours.slot_duration or 0
    if duration <= 0:
        return []

    start = to_minutes(hours.start_time)
    end = to_minutes(hours.end_time)
    day = date_key(target_date)

    windows = []
    current = start
    while current + duration <= end:
        windows.append(
            TimeWindow(
                date=day,
                start_time=format_minutes(current),
                end_time=format_minutes(current + duration),
                slot_id=hours.slot_id,
            )
        )
        current += duration

    return windows
