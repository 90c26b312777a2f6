"""Report router - Admin booking and revenue reports"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, require_admin
from ...database import get_db
from .service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get("/bookings")
async def get_booking_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    _admin: SessionContext = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    """Bookings in a date range grouped by status, day, week, month and year"""
    return service.booking_report(start_date, end_date)


@router.get("/revenue")
async def get_revenue_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    _admin: SessionContext = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    return service.revenue_report(start_date, end_date)
