"""Booking router - Customer bookings and admin booking management"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, require_admin
from ...database import get_db
from .schemas import (
    BookingCreate,
    BookingGroupResponse,
    BookingResponse,
    CancelRequest,
    GroupBookingCreate,
    RescheduleRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _ensure_owner_or_admin(context: SessionContext, user_id: str) -> None:
    if not context.is_admin and context.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not allowed to access this booking")


# ============================================================================
# CUSTOMER ENDPOINTS
# ============================================================================


@router.get("/me", response_model=list[BookingResponse])
async def my_bookings(
    context: SessionContext = Depends(get_current_session),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_user_bookings(context.user_id)


@router.get("/me/groups", response_model=list[BookingGroupResponse])
async def my_booking_groups(
    context: SessionContext = Depends(get_current_session),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_user_groups(context.user_id)


@router.get("/groups/{group_id}", response_model=BookingGroupResponse)
async def get_booking_group(
    group_id: str,
    context: SessionContext = Depends(get_current_session),
    service: BookingService = Depends(get_booking_service),
):
    group = service.get_group(group_id)
    _ensure_owner_or_admin(context, group.user_id)
    return group


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    context: SessionContext = Depends(get_current_session),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id)
    _ensure_owner_or_admin(context, booking.user_id)
    return booking


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


@router.get("", response_model=list[BookingResponse])
async def search_bookings(
    status: Optional[str] = Query(None, description="Booking status, or 'all'"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: Optional[str] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.search(status, start_date, end_date, user_id)


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Book a single window directly, without a payment"""
    return service.create_booking(
        data.user, data.slot_id, data.booking_date, data.start_time, data.end_time
    )


@router.post("/groups", response_model=BookingGroupResponse, status_code=201)
async def create_group_booking(
    data: GroupBookingCreate,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Book consecutive days directly, without a payment"""
    return service.create_group_booking(
        data.user, data.start_date, data.start_time, data.days, data.amount, status="booked"
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    data: CancelRequest,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_booking(booking_id, data.reason)


@router.post("/groups/{group_id}/cancel", response_model=BookingGroupResponse)
async def cancel_group(
    group_id: str,
    data: CancelRequest,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_group(group_id, data.reason)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: str,
    data: RescheduleRequest,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.reschedule_booking(
        booking_id, data.new_date, data.new_start_time, data.new_end_time
    )


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    _admin: SessionContext = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.complete_booking(booking_id)
