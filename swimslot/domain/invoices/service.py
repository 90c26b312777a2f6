"""Invoice service - Invoice generation and delivery"""

import logging
import secrets
from datetime import date
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import NOTIFICATION_CHANNELS, Invoice
from ...services.notification_service import send_notification
from ...shared.timeutils import today
from ..bookings.repository import BookingRepository
from .repository import InvoiceRepository

logger = logging.getLogger(__name__)


def generate_invoice_number(on: Optional[date] = None) -> str:
    """INV-YYYYMMDD-NNNNNN with a random six digit suffix"""
    stamp = (on or today()).strftime("%Y%m%d")
    suffix = 100000 + secrets.randbelow(900000)
    return f"INV-{stamp}-{suffix}"


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()
        self.bookings = BookingRepository()

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.repo.get_by_id(self.db, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def get_by_booking(self, booking_id: str) -> Optional[Invoice]:
        return self.repo.get_by_booking(self.db, booking_id)

    def get_user_invoices(self, user_id: str) -> list[Invoice]:
        return self.repo.get_by_user(self.db, user_id)

    def list_invoices(self) -> list[Invoice]:
        return self.repo.list_invoices(self.db)

    def _unique_number(self) -> str:
        number = generate_invoice_number()
        while self.repo.get_by_number(self.db, number):
            number = generate_invoice_number()
        return number

    def generate_invoice(self, booking_id: str, generated_by: Optional[str], amount: float) -> Invoice:
        """Create the invoice for a booking; a booking that already has one gets it back"""
        booking = self.bookings.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")

        existing = self.repo.get_by_booking(self.db, booking_id)
        if existing:
            logger.info(f"Invoice {existing.invoice_number} already exists for booking {booking_id}")
            return existing

        invoice = self.repo.create(
            self.db,
            booking_id=booking_id,
            invoice_number=self._unique_number(),
            generated_by=generated_by,
            amount=amount,
        )
        logger.info(f"Invoice {invoice.invoice_number} generated for booking {booking_id} ({amount})")
        return invoice

    def send_invoice(self, invoice_id: str, channels: Iterable[str]) -> Invoice:
        """Notify the customer on each channel and flag the invoice as sent there"""
        channels = list(dict.fromkeys(channels))
        unknown = [c for c in channels if c not in NOTIFICATION_CHANNELS]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown channels: {', '.join(unknown)}")

        invoice = self.get_invoice(invoice_id)
        booking = self.bookings.get_by_id(self.db, invoice.booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        user = booking.user
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        message = (
            f"Invoice {invoice.invoice_number} for your booking on "
            f"{booking.booking_date.isoformat()}: amount {invoice.amount}."
        )
        send_notification(self.db, user, "invoice", message, channels)

        invoice = self.repo.mark_sent(self.db, invoice, channels)
        logger.info(f"Invoice {invoice.invoice_number} sent via {', '.join(channels)}")
        return invoice
