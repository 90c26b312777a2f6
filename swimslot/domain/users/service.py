"""User service - Registration, passcode verification and profiles"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import open_session
from ...config import ADMIN_EMAILS
from ...models import AuthSession, User
from ...passcodes import PasscodeDelivery, get_passcode_delivery
from .repository import UserRepository
from .schemas import ProfileUpdate, UserProfile

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session, passcodes: Optional[PasscodeDelivery] = None):
        self.db = db
        self.repo = UserRepository()
        self.passcodes = passcodes or get_passcode_delivery()

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def get_by_email(self, email: str) -> User:
        user = self.repo.get_by_email(self.db, email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def list_users(self, is_admin: Optional[bool] = None) -> list[User]:
        return self.repo.list_users(self.db, is_admin)

    def find_or_create(self, profile: UserProfile) -> User:
        """Return the user with this email, creating an unverified customer if none exists"""
        existing = self.repo.get_by_email(self.db, profile.email)
        if existing:
            return existing

        logger.info(f"Creating customer record for {profile.email}")
        return self.repo.create(
            self.db,
            **profile.model_dump(),
            is_admin=profile.email in ADMIN_EMAILS,
            is_verified=False,
        )

    def register(self, profile: UserProfile) -> User:
        if self.repo.get_by_email(self.db, profile.email):
            logger.warning(f"Registration rejected, email already registered: {profile.email}")
            raise HTTPException(status_code=409, detail="User with this email already exists")

        user = self.find_or_create(profile)
        self.issue_passcode(user)
        return user

    def issue_passcode(self, user: User) -> None:
        code = self.passcodes.generate()
        self.passcodes.deliver(self.db, user, code)

    def resend_otp(self, email: str) -> User:
        user = self.get_by_email(email)
        self.issue_passcode(user)
        return user

    def verify_otp(self, email: str, otp: str) -> AuthSession:
        """Mark the user verified and open a session, or raise 400 on a bad code"""
        user = self.get_by_email(email)

        if not self.passcodes.verify(user, otp):
            logger.warning(f"Invalid passcode for {email}")
            raise HTTPException(status_code=400, detail="Invalid or expired OTP")

        user.is_verified = True
        user.otp_code = None
        user.otp_expiry = None
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} verified")

        return open_session(self.db, user)

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        return self.repo.update(self.db, user, **data.model_dump(exclude_unset=True))
