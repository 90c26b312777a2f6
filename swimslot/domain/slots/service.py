"""Slot service - Calendar management and availability lookups"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import ANALYSIS_DAYS
from ...models import Booking, Slot, SlotException
from ...shared.timeutils import consecutive_dates, iter_dates
from ..bookings.repository import BookingRepository
from .availability import DayAvailability, SpanAvailability, build_day, evaluate_span, is_active
from .repository import SlotRepository
from .schemas import SlotCreate, SlotExceptionCreate, SlotUpdate
from .windows import generate_time_windows, normalize_time

logger = logging.getLogger(__name__)


class SlotService:
    """Service layer for slot business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()
        self.bookings = BookingRepository()

    def get_slot(self, slot_id: str) -> Slot:
        slot = self.repo.get_by_id(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        return slot

    def list_slots(self, from_date: Optional[date] = None, to_date: Optional[date] = None) -> list[Slot]:
        return self.repo.list_slots(self.db, from_date, to_date)

    def get_slot_for_date(self, target_date: date) -> Optional[Slot]:
        return self.repo.get_for_date(self.db, target_date)

    def _ensure_no_overlap(self, start_date: date, end_date: Optional[date], exclude_id: Optional[str] = None):
        overlapping = self.repo.find_overlapping(self.db, start_date, end_date, exclude_id)
        if overlapping:
            dates = ", ".join(s.start_date.isoformat() for s in overlapping)
            logger.warning(f"Slot range {start_date}..{end_date or start_date} overlaps slots on {dates}")
            raise HTTPException(
                status_code=409, detail=f"A slot already exists for these dates ({dates})"
            )

    def create_slot(self, data: SlotCreate, created_by: Optional[str] = None) -> Slot:
        self._ensure_no_overlap(data.start_date, data.end_date)
        slot = self.repo.create(self.db, **data.model_dump(), created_by=created_by)
        logger.info(f"Slot {slot.id} created for {slot.start_date} {slot.start_time}-{slot.end_time}")
        return slot

    def update_slot(self, slot_id: str, data: SlotUpdate) -> tuple[Slot, list[Booking]]:
        """Update a slot and return it with the active bookings its new hours no longer fit"""
        slot = self.get_slot(slot_id)
        updates = data.model_dump(exclude_unset=True)

        start_date = updates.get("start_date", slot.start_date)
        end_date = updates.get("end_date", slot.end_date)
        if end_date is not None and end_date < start_date:
            raise HTTPException(status_code=400, detail="end_date must be on or after start_date")
        start_time = updates.get("start_time", slot.start_time)
        end_time = updates.get("end_time", slot.end_time)
        if end_time < start_time:
            raise HTTPException(status_code=400, detail="end_time must not be before start_time")

        self._ensure_no_overlap(start_date, end_date, exclude_id=slot.id)
        slot = self.repo.update(self.db, slot, **updates)

        conflicts = self.find_conflicting_bookings(slot)
        if conflicts:
            logger.warning(f"Slot {slot.id} update leaves {len(conflicts)} bookings outside its windows")
        return slot, conflicts

    def find_conflicting_bookings(self, slot: Slot) -> list[Booking]:
        """Active bookings on this slot whose start time is not a window of the slot any more"""
        conflicts = []
        for booking in self.bookings.get_by_slot(self.db, slot.id):
            if not is_active(booking) or booking.status in ("completed", "rescheduled"):
                continue
            exception = self.repo.get_exception(self.db, slot.id, booking.booking_date)
            windows = generate_time_windows(slot, booking.booking_date, exception)
            starts = {w.start_time for w in windows}
            covered = slot.start_date <= booking.booking_date <= (slot.end_date or slot.start_date)
            if not covered or normalize_time(booking.start_time) not in starts:
                conflicts.append(booking)
        return conflicts

    def delete_slot(self, slot_id: str) -> dict:
        """Delete a slot that no booking references; history keeps its slot"""
        slot = self.get_slot(slot_id)
        bookings = self.bookings.get_by_slot(self.db, slot.id)
        if bookings:
            active = sum(1 for b in bookings if is_active(b))
            logger.warning(f"Refusing to delete slot {slot.id}: {len(bookings)} bookings ({active} active)")
            raise HTTPException(
                status_code=409,
                detail=f"Slot has {len(bookings)} bookings ({active} active); it cannot be deleted",
            )
        self.repo.delete(self.db, slot)
        logger.info(f"Slot {slot_id} deleted")
        return {"message": "Slot deleted"}

    # ------------------------------------------------------------------
    # Exceptions
    # ------------------------------------------------------------------

    def add_exception(self, slot_id: str, data: SlotExceptionCreate) -> SlotException:
        slot = self.get_slot(slot_id)
        last_day = slot.end_date or slot.start_date
        if not slot.start_date <= data.date <= last_day:
            raise HTTPException(status_code=400, detail="Exception date is outside the slot's dates")
        if self.repo.get_exception(self.db, slot.id, data.date):
            raise HTTPException(status_code=409, detail="An exception already exists for this date")
        return self.repo.create_exception(self.db, slot_id=slot.id, **data.model_dump())

    def list_exceptions(self, slot_id: Optional[str] = None) -> list[SlotException]:
        return self.repo.list_exceptions(self.db, slot_id)

    def delete_exception(self, exception_id: str) -> dict:
        exception = self.repo.get_exception_by_id(self.db, exception_id)
        if not exception:
            raise HTTPException(status_code=404, detail="Slot exception not found")
        self.repo.delete_exception(self.db, exception)
        return {"message": "Slot exception deleted"}

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def get_day_availability(self, target_date: date) -> DayAvailability:
        """Windows for a date marked against that date's bookings"""
        slot = self.repo.get_for_date(self.db, target_date)
        if slot is None:
            logger.debug(f"No slot configured for {target_date}")
            return build_day(target_date, None, [])

        exception = self.repo.get_exception(self.db, slot.id, target_date)
        bookings = self.bookings.get_by_date(self.db, target_date)
        return build_day(target_date, slot, bookings, exception)

    def check_span(
        self, start_date: date, start_time: Optional[str] = None, days: int = ANALYSIS_DAYS
    ) -> SpanAvailability:
        """Availability of start_date and the following days, optionally at one shared time"""
        day_results = [self.get_day_availability(d) for d in consecutive_dates(start_date, days)]
        span = evaluate_span(day_results, start_time)
        logger.info(
            f"Span from {start_date} ({days} days, time={start_time}): bookable={span.is_bookable}"
        )
        return span

    def calendar(self, from_date: date, to_date: date) -> list[DayAvailability]:
        """Per-day availability over a range, for the admin calendar"""
        if to_date < from_date:
            raise HTTPException(status_code=400, detail="to_date must be on or after from_date")
        return [self.get_day_availability(d) for d in iter_dates(from_date, to_date)]
