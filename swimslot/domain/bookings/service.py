"""Booking service - Booking, cancellation and rescheduling workflows"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import ANALYSIS_DAYS, ANALYSIS_PRICE
from ...models import Booking, BookingGroup, Payment, User
from ...services.notification_service import send_notification
from ..payments.repository import PaymentRepository
from ..slots.availability import find_conflict
from ..slots.repository import SlotRepository
from ..slots.service import SlotService
from ..slots.windows import generate_time_windows, normalize_time
from ..users.schemas import UserProfile
from ..users.service import UserService
from .repository import BookingRepository

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.slots = SlotRepository()
        self.payments = PaymentRepository()
        self.users = UserService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_group(self, group_id: str) -> BookingGroup:
        group = self.repo.get_group(self.db, group_id)
        if not group:
            raise HTTPException(status_code=404, detail="Booking group not found")
        return group

    def get_user_bookings(self, user_id: str) -> list[Booking]:
        return self.repo.get_by_user(self.db, user_id)

    def get_user_groups(self, user_id: str) -> list[BookingGroup]:
        return self.repo.get_groups_by_user(self.db, user_id)

    def get_bookings_by_date(self, booking_date: date) -> list[Booking]:
        return self.repo.get_by_date(self.db, booking_date)

    def search(
        self,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        return self.repo.search(self.db, status, start_date, end_date, user_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _ensure_window(self, slot, booking_date: date, start_time: str):
        """The date must fall inside the slot and the start time must be one of its windows"""
        last_day = slot.end_date or slot.start_date
        if not slot.start_date <= booking_date <= last_day:
            raise HTTPException(
                status_code=400, detail=f"{booking_date.isoformat()} is outside the slot's dates"
            )
        exception = self.slots.get_exception(self.db, slot.id, booking_date)
        starts = {w.start_time for w in generate_time_windows(slot, booking_date, exception)}
        if normalize_time(start_time) not in starts:
            raise HTTPException(
                status_code=400,
                detail=f"{normalize_time(start_time)} is not a session time on {booking_date.isoformat()}",
            )

    def _ensure_free(self, booking_date: date, start_time: str, exclude_id: Optional[str] = None):
        existing = self.repo.get_by_date(self.db, booking_date)
        conflict = find_conflict(existing, booking_date, start_time, exclude_id=exclude_id)
        if conflict:
            logger.warning(
                f"Booking conflict on {booking_date} at {start_time}: held by booking {conflict.id}"
            )
            raise HTTPException(
                status_code=409,
                detail=f"{booking_date.isoformat()} at {normalize_time(start_time)} is already booked",
            )

    def create_booking(
        self,
        user_profile: UserProfile,
        slot_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        group_id: Optional[str] = None,
        status: str = "booked",
    ) -> Booking:
        """
        Book one window for a customer

        The customer is looked up by email and created if new. Raises 404 for an
        unknown slot and 409 when an active booking already holds the date and time.
        """
        slot = self.slots.get_by_id(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        self._ensure_window(slot, booking_date, start_time)
        self._ensure_free(booking_date, start_time)

        user = self.users.find_or_create(user_profile)
        booking = self.repo.create(
            self.db,
            user_id=user.id,
            slot_id=slot.id,
            group_id=group_id,
            booking_date=booking_date,
            start_time=normalize_time(start_time),
            end_time=normalize_time(end_time),
            status=status,
        )
        logger.info(f"Booking {booking.id} created for user {user.id} on {booking_date} at {booking.start_time}")
        return booking

    def create_group_booking(
        self,
        user_profile: UserProfile,
        start_date: date,
        start_time: str,
        days: int = ANALYSIS_DAYS,
        amount: float = ANALYSIS_PRICE,
        status: str = "payment_pending",
    ) -> BookingGroup:
        """Reserve the same time of day on consecutive dates as one purchase"""
        span = SlotService(self.db).check_span(start_date, start_time, days)
        if not span.is_bookable:
            detail = f"{days} consecutive days from {start_date.isoformat()} are not available"
            if span.start_time:
                detail += f" at {span.start_time}"
            raise HTTPException(status_code=409, detail=detail)

        user = self.users.find_or_create(user_profile)
        first_window = span.days[0].window_at(span.start_time)
        group = self.repo.create_group(
            self.db,
            user_id=user.id,
            start_date=start_date,
            days=days,
            start_time=first_window.start_time,
            end_time=first_window.end_time,
            amount=amount,
            status="confirmed" if status == "booked" else "payment_pending",
        )

        for day in span.days:
            window = day.window_at(span.start_time)
            self.repo.create(
                self.db,
                user_id=user.id,
                slot_id=day.slot_id,
                group_id=group.id,
                booking_date=date.fromisoformat(day.date),
                start_time=window.start_time,
                end_time=window.end_time,
                status=status,
            )

        self.db.refresh(group)
        logger.info(
            f"Booking group {group.id} created for user {user.id}: {days} days from {start_date} at {group.start_time}"
        )
        return group

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def _refund(self, payment: Optional[Payment], user: Optional[User]) -> bool:
        """Mark a successful payment refunded and tell the customer; other payments are left alone"""
        if payment is None or payment.status != "success":
            return False

        self.payments.update(self.db, payment, status="refunded")
        logger.info(f"Payment {payment.transaction_id} marked refunded ({payment.amount} {payment.currency})")
        if user:
            send_notification(
                self.db,
                user,
                "refund",
                f"Your booking has been cancelled and a refund of {payment.amount} "
                f"{payment.currency} has been initiated.",
            )
        return True

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.status == "cancelled":
            logger.info(f"Booking {booking.id} already cancelled")
            return booking

        booking = self.repo.update(self.db, booking, status="cancelled", cancel_reason=reason)
        logger.info(f"Booking {booking.id} cancelled: {reason}")

        self._refund(self.payments.get_by_booking(self.db, booking.id), booking.user)
        if booking.group_id:
            group = self.repo.get_group(self.db, booking.group_id)
            if group and all(b.status == "cancelled" for b in group.bookings):
                self._close_group(group)

        return booking

    def cancel_group(self, group_id: str, reason: Optional[str] = None) -> BookingGroup:
        """Cancel every day of a purchase and refund its payment once"""
        group = self.get_group(group_id)
        for booking in group.bookings:
            if booking.status != "cancelled":
                booking.status = "cancelled"
                booking.cancel_reason = reason
        self.db.commit()
        logger.info(f"Booking group {group.id} cancelled: {reason}")
        return self._close_group(group)

    def _close_group(self, group: BookingGroup) -> BookingGroup:
        if group.status != "cancelled":
            group = self.repo.update_group(self.db, group, status="cancelled")
        self._refund(self.payments.get_by_group(self.db, group.id), group.user)
        return group

    # ------------------------------------------------------------------
    # Rescheduling
    # ------------------------------------------------------------------

    def reschedule_booking(
        self, booking_id: str, new_date: date, new_start_time: str, new_end_time: str
    ) -> Booking:
        """Move a booking: a new booking is created and the original points at it"""
        original = self.get_booking(booking_id)
        if original.status in ("cancelled", "rescheduled"):
            raise HTTPException(
                status_code=400, detail=f"Cannot reschedule a booking that is {original.status}"
            )

        slot = self.slots.get_for_date(self.db, new_date)
        if not slot:
            raise HTTPException(status_code=404, detail=f"No slot configured for {new_date.isoformat()}")
        self._ensure_window(slot, new_date, new_start_time)
        self._ensure_free(new_date, new_start_time, exclude_id=original.id)

        new_booking = self.repo.create(
            self.db,
            user_id=original.user_id,
            slot_id=slot.id,
            group_id=original.group_id,
            booking_date=new_date,
            start_time=normalize_time(new_start_time),
            end_time=normalize_time(new_end_time),
            status="payment_pending" if original.status == "payment_pending" else "booked",
            amount_paid=original.amount_paid,
        )
        self.repo.update(self.db, original, status="rescheduled", rescheduled_to=new_booking.id)
        logger.info(f"Booking {original.id} rescheduled to {new_booking.id} on {new_date}")

        send_notification(
            self.db,
            original.user,
            "confirmation",
            f"Your booking has been rescheduled to {new_date.isoformat()} "
            f"from {new_booking.start_time} to {new_booking.end_time}.",
        )
        return new_booking

    # ------------------------------------------------------------------
    # Status automation
    # ------------------------------------------------------------------

    def complete_booking(self, booking_id: str) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.status != "booked":
            raise HTTPException(status_code=400, detail=f"Cannot complete a booking that is {booking.status}")
        return self.repo.update(self.db, booking, status="completed")

    def complete_past_bookings(self, before: date) -> int:
        """Mark booked sessions dated before `before` as completed"""
        past = [b for b in self.repo.search(self.db, status="booked") if b.booking_date < before]
        for booking in past:
            booking.status = "completed"
        self.db.commit()
        if past:
            logger.info(f"Marked {len(past)} past bookings completed")
        return len(past)

    def send_reminders(self, for_date: date) -> int:
        """Remind customers of their booked sessions on for_date"""
        bookings = self.repo.search(self.db, status="booked", start_date=for_date, end_date=for_date)
        for booking in bookings:
            send_notification(
                self.db,
                booking.user,
                "reminder",
                f"Reminder: your swim analysis session is on {for_date.isoformat()} "
                f"from {booking.start_time} to {booking.end_time}.",
            )
        logger.info(f"Sent {len(bookings)} reminders for {for_date}")
        return len(bookings)
