"""Booking repository - Database operations for bookings and booking groups"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingGroup


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_user(db: Session, user_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
            .all()
        )

    @staticmethod
    def get_by_date(db: Session, booking_date: date) -> list[Booking]:
        return db.query(Booking).filter(Booking.booking_date == booking_date).all()

    @staticmethod
    def get_by_slot(db: Session, slot_id: str) -> list[Booking]:
        return db.query(Booking).filter(Booking.slot_id == slot_id).all()

    @staticmethod
    def search(
        db: Session,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        query = db.query(Booking)
        if status and status != "all":
            query = query.filter(Booking.status == status)
        if start_date:
            query = query.filter(Booking.booking_date >= start_date)
        if end_date:
            query = query.filter(Booking.booking_date <= end_date)
        if user_id:
            query = query.filter(Booking.user_id == user_id)
        return query.order_by(Booking.booking_date.asc(), Booking.start_time.asc()).all()

    @staticmethod
    def get_pending_before(db: Session, cutoff: datetime) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.status == "payment_pending", Booking.created_at < cutoff)
            .all()
        )

    @staticmethod
    def create(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update(db: Session, booking: Booking, **updates) -> Booking:
        for key, value in updates.items():
            if hasattr(booking, key):
                setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    # Booking Group Methods
    @staticmethod
    def get_group(db: Session, group_id: str) -> Optional[BookingGroup]:
        return db.query(BookingGroup).filter(BookingGroup.id == group_id).first()

    @staticmethod
    def get_groups_by_user(db: Session, user_id: str) -> list[BookingGroup]:
        return (
            db.query(BookingGroup)
            .filter(BookingGroup.user_id == user_id)
            .order_by(BookingGroup.start_date.desc())
            .all()
        )

    @staticmethod
    def create_group(db: Session, **group_data) -> BookingGroup:
        group = BookingGroup(**group_data)
        db.add(group)
        db.commit()
        db.refresh(group)
        return group

    @staticmethod
    def update_group(db: Session, group: BookingGroup, **updates) -> BookingGroup:
        for key, value in updates.items():
            if hasattr(group, key):
                setattr(group, key, value)
        db.commit()
        db.refresh(group)
        return group
