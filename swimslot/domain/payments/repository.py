"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_id(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def get_by_transaction_id(db: Session, transaction_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.transaction_id == transaction_id).first()

    @staticmethod
    def get_by_booking(db: Session, booking_id: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.desc())
            .first()
        )

    @staticmethod
    def get_by_group(db: Session, group_id: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.group_id == group_id)
            .order_by(Payment.created_at.desc())
            .first()
        )

    @staticmethod
    def list_payments(db: Session, status: Optional[str] = None) -> list[Payment]:
        query = db.query(Payment)
        if status:
            query = query.filter(Payment.status == status)
        return query.order_by(Payment.created_at.desc()).all()

    @staticmethod
    def get_in_range(db: Session, start: datetime, end: datetime) -> list[Payment]:
        """Payments paid (or, if unpaid, created) within [start, end)"""
        moment = func.coalesce(Payment.paid_at, Payment.created_at)
        return db.query(Payment).filter(moment >= start, moment < end).all()

    @staticmethod
    def get_for_bookings(db: Session, booking_ids: list[str], group_ids: list[str]) -> list[Payment]:
        if not booking_ids and not group_ids:
            return []
        query = db.query(Payment)
        clauses = []
        if booking_ids:
            clauses.append(Payment.booking_id.in_(booking_ids))
        if group_ids:
            clauses.append(Payment.group_id.in_(group_ids))
        return query.filter(or_(*clauses)).all()

    @staticmethod
    def get_pending_before(db: Session, cutoff: datetime) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.status == "pending", Payment.created_at < cutoff)
            .all()
        )

    @staticmethod
    def create(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def update(db: Session, payment: Payment, **updates) -> Payment:
        for key, value in updates.items():
            if hasattr(payment, key):
                setattr(payment, key, value)
        db.commit()
        db.refresh(payment)
        return payment
