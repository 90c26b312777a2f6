"""Notification router - Notification history"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, require_admin
from ...database import get_db
from .repository import NotificationRepository
from .schemas import NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/me", response_model=list[NotificationResponse])
async def my_notifications(
    type: Optional[str] = Query(None),
    context: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return NotificationRepository.get_by_user(db, context.user_id, type)


@router.get("/user/{user_id}", response_model=list[NotificationResponse])
async def user_notifications(
    user_id: str,
    type: Optional[str] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return NotificationRepository.get_by_user(db, user_id, type)
