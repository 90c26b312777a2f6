"""Invoice repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, Invoice


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_by_id(db: Session, invoice_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.id == invoice_id).first()

    @staticmethod
    def get_by_number(db: Session, invoice_number: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()

    @staticmethod
    def get_by_booking(db: Session, booking_id: str) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.booking_id == booking_id)
            .order_by(Invoice.generated_at.asc())
            .first()
        )

    @staticmethod
    def get_by_user(db: Session, user_id: str) -> list[Invoice]:
        return (
            db.query(Invoice)
            .join(Booking, Invoice.booking_id == Booking.id)
            .filter(Booking.user_id == user_id)
            .order_by(Invoice.generated_at.desc())
            .all()
        )

    @staticmethod
    def list_invoices(db: Session) -> list[Invoice]:
        return db.query(Invoice).order_by(Invoice.generated_at.desc()).all()

    @staticmethod
    def create(db: Session, **invoice_data) -> Invoice:
        invoice = Invoice(**invoice_data)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def mark_sent(db: Session, invoice: Invoice, channels) -> Invoice:
        for channel in channels:
            setattr(invoice, f"sent_via_{channel}", True)
        db.commit()
        db.refresh(invoice)
        return invoice
