"""User router - Registration, passcode login, sessions and profiles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, get_current_user, require_admin, revoke_session
from ...config import OTP_EXPIRY_MINUTES
from ...database import get_db
from ...models import User
from .schemas import (
    EmailRequest,
    ProfileUpdate,
    SessionResponse,
    UserProfile,
    UserResponse,
    VerifyOTPRequest,
)
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Auth"])
router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# REGISTRATION AND PASSCODE LOGIN
# ============================================================================


@auth_router.post("/register", status_code=201)
async def register(data: UserProfile, service: UserService = Depends(get_user_service)):
    """Register a customer and send a verification passcode"""
    user = service.register(data)
    return {
        "user": UserResponse.model_validate(user),
        "message": "Verification code sent",
        "expires_in_minutes": OTP_EXPIRY_MINUTES,
    }


@auth_router.post("/verify-otp", response_model=SessionResponse)
async def verify_otp(data: VerifyOTPRequest, service: UserService = Depends(get_user_service)):
    """Verify a passcode and open a session"""
    session = service.verify_otp(data.email, data.otp)
    return SessionResponse(
        token=session.token,
        expires_at=session.expires_at,
        user=UserResponse.model_validate(session.user),
    )


@auth_router.post("/resend-otp")
async def resend_otp(data: EmailRequest, service: UserService = Depends(get_user_service)):
    service.resend_otp(data.email)
    return {"message": "Verification code sent", "expires_in_minutes": OTP_EXPIRY_MINUTES}


@auth_router.post("/login")
async def request_login_code(data: EmailRequest, service: UserService = Depends(get_user_service)):
    """Send a login passcode to a registered email"""
    service.resend_otp(data.email)
    return {"message": "Login code sent", "expires_in_minutes": OTP_EXPIRY_MINUTES}


@auth_router.post("/logout")
async def logout(
    context: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    revoke_session(db, context.token)
    return {"message": "Logged out"}


@auth_router.get("/session")
async def current_session(context: SessionContext = Depends(get_current_session)):
    return {
        "user_id": context.user_id,
        "name": context.name,
        "email": context.email,
        "is_admin": context.is_admin,
        "expires_at": context.expires_at,
    }


# ============================================================================
# PROFILES
# ============================================================================


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.update_profile(current_user, data)


@router.get("", response_model=list[UserResponse])
async def list_users(
    is_admin: Optional[bool] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """List all users (admin)"""
    return service.list_users(is_admin)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _admin: SessionContext = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.get_user(user_id)
