"""Camp repository - Read access to camp registrations"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import CampBooking


class CampBookingRepository:
    @staticmethod
    def get_by_id(db: Session, camp_booking_id: str) -> Optional[CampBooking]:
        return db.query(CampBooking).filter(CampBooking.id == camp_booking_id).first()

    @staticmethod
    def list_bookings(db: Session, payment_status: Optional[str] = None) -> list[CampBooking]:
        query = db.query(CampBooking)
        if payment_status:
            query = query.filter(CampBooking.payment_status == payment_status)
        return query.order_by(CampBooking.created_at.desc()).all()
