"""Camp router - Admin view of summer camp registrations"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ...auth import SessionContext, require_admin
from ...database import get_db
from .repository import CampBookingRepository

router = APIRouter(prefix="/camp-bookings", tags=["Camp"])


class CampBookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    participant_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    camp_batch: Optional[str] = None
    amount: Optional[float] = None
    payment_status: Optional[str] = None
    created_at: Optional[datetime] = None


@router.get("", response_model=list[CampBookingResponse])
async def list_camp_bookings(
    payment_status: Optional[str] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Camp registrations, newest first"""
    return CampBookingRepository.list_bookings(db, payment_status)


@router.get("/{camp_booking_id}", response_model=CampBookingResponse)
async def get_camp_booking(
    camp_booking_id: str,
    _admin: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    booking = CampBookingRepository.get_by_id(db, camp_booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Camp booking not found")
    return booking
