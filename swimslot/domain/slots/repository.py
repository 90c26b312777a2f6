"""Slot repository - Database operations for slots and slot exceptions"""

from datetime import date
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from ...models import Slot, SlotException


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_by_id(db: Session, slot_id: str) -> Optional[Slot]:
        return db.query(Slot).filter(Slot.id == slot_id).first()

    @staticmethod
    def list_slots(
        db: Session, from_date: Optional[date] = None, to_date: Optional[date] = None
    ) -> list[Slot]:
        query = db.query(Slot)
        if from_date:
            query = query.filter(func.coalesce(Slot.end_date, Slot.start_date) >= from_date)
        if to_date:
            query = query.filter(Slot.start_date <= to_date)
        return query.order_by(Slot.start_date.asc()).all()

    @staticmethod
    def get_for_date(db: Session, target_date: date) -> Optional[Slot]:
        """The slot covering target_date, either on its start date or within its repeat range"""
        return (
            db.query(Slot)
            .filter(
                Slot.start_date <= target_date,
                or_(
                    and_(Slot.end_date.is_(None), Slot.start_date == target_date),
                    Slot.end_date >= target_date,
                ),
            )
            .first()
        )

    @staticmethod
    def find_overlapping(
        db: Session, start_date: date, end_date: Optional[date], exclude_id: Optional[str] = None
    ) -> list[Slot]:
        last_day = end_date or start_date
        query = db.query(Slot).filter(
            Slot.start_date <= last_day,
            func.coalesce(Slot.end_date, Slot.start_date) >= start_date,
        )
        if exclude_id:
            query = query.filter(Slot.id != exclude_id)
        return query.all()

    @staticmethod
    def create(db: Session, **slot_data) -> Slot:
        slot = Slot(**slot_data)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def update(db: Session, slot: Slot, **updates) -> Slot:
        for key, value in updates.items():
            if hasattr(slot, key):
                setattr(slot, key, value)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def delete(db: Session, slot: Slot) -> None:
        db.delete(slot)
        db.commit()

    # Exception Methods
    @staticmethod
    def get_exception(db: Session, slot_id: str, target_date: date) -> Optional[SlotException]:
        return (
            db.query(SlotException)
            .filter(SlotException.slot_id == slot_id, SlotException.date == target_date)
            .first()
        )

    @staticmethod
    def get_exception_by_id(db: Session, exception_id: str) -> Optional[SlotException]:
        return db.query(SlotException).filter(SlotException.id == exception_id).first()

    @staticmethod
    def list_exceptions(db: Session, slot_id: Optional[str] = None) -> list[SlotException]:
        query = db.query(SlotException)
        if slot_id:
            query = query.filter(SlotException.slot_id == slot_id)
        return query.order_by(SlotException.date.asc()).all()

    @staticmethod
    def create_exception(db: Session, **exception_data) -> SlotException:
        exception = SlotException(**exception_data)
        db.add(exception)
        db.commit()
        db.refresh(exception)
        return exception

    @staticmethod
    def delete_exception(db: Session, exception: SlotException) -> None:
        db.delete(exception)
        db.commit()
