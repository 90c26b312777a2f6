"""Slot router - Calendar administration and public availability"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, require_admin
from ...config import ANALYSIS_DAYS
from ...database import get_db
from ...shared.validators import validate_time
from .schemas import (
    DayAvailabilityResponse,
    SlotCreate,
    SlotExceptionCreate,
    SlotExceptionResponse,
    SlotResponse,
    SlotUpdate,
    SpanAvailabilityResponse,
)
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


def _day_response(day) -> dict:
    return {
        "date": day.date,
        "slot_id": day.slot_id,
        "is_available": day.is_available,
        "windows": [w.to_dict() for w in day.windows],
    }


# ============================================================================
# AVAILABILITY (public)
# ============================================================================


@router.get("/availability/{target_date}", response_model=DayAvailabilityResponse)
async def get_day_availability(target_date: date, service: SlotService = Depends(get_slot_service)):
    """Time windows for a date with their availability"""
    return _day_response(service.get_day_availability(target_date))


@router.get("/span", response_model=SpanAvailabilityResponse)
async def check_span(
    start_date: date = Query(...),
    start_time: Optional[str] = Query(None, description="HH:MM that must be free on every day"),
    days: int = Query(ANALYSIS_DAYS, ge=1, le=14),
    service: SlotService = Depends(get_slot_service),
):
    """Whether a run of consecutive days can be booked"""
    try:
        start_time = validate_time(start_time)
    except ValueError as e:
        logger.warning(f"Rejected span check with start_time={start_time!r}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    return service.check_span(start_date, start_time, days).to_dict()


@router.get("/calendar", response_model=list[DayAvailabilityResponse])
async def get_calendar(
    from_date: date = Query(...),
    to_date: date = Query(...),
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return [_day_response(day) for day in service.calendar(from_date, to_date)]


# ============================================================================
# SLOT CRUD (admin)
# ============================================================================


@router.get("", response_model=list[SlotResponse])
async def list_slots(
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    return service.list_slots(from_date, to_date)


@router.post("", response_model=SlotResponse, status_code=201)
async def create_slot(
    data: SlotCreate,
    admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return service.create_slot(data, created_by=admin.user_id)


@router.get("/exceptions", response_model=list[SlotExceptionResponse])
async def list_exceptions(
    slot_id: Optional[str] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return service.list_exceptions(slot_id)


@router.delete("/exceptions/{exception_id}")
async def delete_exception(
    exception_id: str,
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return service.delete_exception(exception_id)


@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(slot_id: str, service: SlotService = Depends(get_slot_service)):
    return service.get_slot(slot_id)


@router.patch("/{slot_id}")
async def update_slot(
    slot_id: str,
    data: SlotUpdate,
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    """Update a slot; bookings that no longer fit its windows are reported back"""
    slot, conflicts = service.update_slot(slot_id, data)
    return {
        "slot": SlotResponse.model_validate(slot),
        "conflicting_bookings": [
            {
                "id": b.id,
                "user_id": b.user_id,
                "booking_date": b.booking_date.isoformat(),
                "start_time": b.start_time,
                "status": b.status,
            }
            for b in conflicts
        ],
    }


@router.delete("/{slot_id}")
async def delete_slot(
    slot_id: str,
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return service.delete_slot(slot_id)


@router.post("/{slot_id}/exceptions", response_model=SlotExceptionResponse, status_code=201)
async def add_exception(
    slot_id: str,
    data: SlotExceptionCreate,
    _admin: SessionContext = Depends(require_admin),
    service: SlotService = Depends(get_slot_service),
):
    return service.add_exception(slot_id, data)
