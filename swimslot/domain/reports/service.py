"""Report service - Fetches report inputs and hands them to the aggregation functions"""

import logging
from datetime import date, datetime, time, timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..bookings.repository import BookingRepository
from ..payments.repository import PaymentRepository
from .aggregation import booking_report, payments_for_purchases, revenue_report

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: Session):
        self.db = db
        self.bookings = BookingRepository()
        self.payments = PaymentRepository()

    @staticmethod
    def _check_range(start: date, end: date) -> None:
        if end < start:
            raise HTTPException(status_code=400, detail="end_date must be on or after start_date")

    def booking_report(self, start: date, end: date) -> dict:
        self._check_range(start, end)
        bookings = self.bookings.search(self.db, start_date=start, end_date=end)
        payments = self.payments.get_for_bookings(
            self.db,
            [b.id for b in bookings],
            list({b.group_id for b in bookings if b.group_id}),
        )
        report = booking_report(bookings, payments_for_purchases(bookings, payments), start, end)
        logger.info(
            f"Booking report {start}..{end}: {report['total_bookings']} bookings, revenue {report['revenue']}"
        )
        return report

    def revenue_report(self, start: date, end: date) -> dict:
        self._check_range(start, end)
        window_start = datetime.combine(start, time.min)
        window_end = datetime.combine(end + timedelta(days=1), time.min)
        payments = self.payments.get_in_range(self.db, window_start, window_end)
        return revenue_report(payments, start, end)
