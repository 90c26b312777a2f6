"""
One-time passcode delivery

Registration and login both go through a PasscodeDelivery:
generate a code, deliver it to the user, and later verify what they typed.
"""

import hmac
import logging
import secrets
import string
from datetime import timedelta
from typing import Protocol

from sqlalchemy.orm import Session

from .config import OTP_EXPIRY_MINUTES, OTP_FIXED_CODE, OTP_LENGTH, OTP_MODE
from .models import User
from .services.notification_service import send_notification
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)


class PasscodeDelivery(Protocol):
    def generate(self) -> str: ...

    def deliver(self, db: Session, user: User, code: str) -> None: ...

    def verify(self, user: User, code: str) -> bool: ...


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Generate a cryptographically secure random numeric code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


class NotificationPasscodeDelivery:
    """Random codes stored on the user and sent as an otp notification"""

    def __init__(self, expiry_minutes: int = OTP_EXPIRY_MINUTES, length: int = OTP_LENGTH):
        self.expiry_minutes = expiry_minutes
        self.length = length

    def generate(self) -> str:
        return generate_otp(self.length)

    def deliver(self, db: Session, user: User, code: str) -> None:
        user.otp_code = code
        user.otp_expiry = utcnow() + timedelta(minutes=self.expiry_minutes)
        db.commit()

        send_notification(
            db,
            user,
            "otp",
            f"Your OTP is {code}. It is valid for {self.expiry_minutes} minutes.",
            channels=("email",),
        )
        logger.info(f"Passcode issued for user {user.id}")

    def verify(self, user: User, code: str) -> bool:
        if not user.otp_code or not code:
            return False
        if user.otp_expiry is None or user.otp_expiry <= utcnow():
            logger.info(f"Passcode for user {user.id} has expired")
            return False
        return hmac.compare_digest(user.otp_code, code.strip())


class FixedPasscodeDelivery(NotificationPasscodeDelivery):
    """Development stub: every user gets the same code and it always verifies"""

    def __init__(self, code: str = OTP_FIXED_CODE, expiry_minutes: int = OTP_EXPIRY_MINUTES):
        super().__init__(expiry_minutes=expiry_minutes, length=len(code))
        self.code = code

    def generate(self) -> str:
        return self.code

    def verify(self, user: User, code: str) -> bool:
        return hmac.compare_digest(self.code, (code or "").strip())


def get_passcode_delivery() -> PasscodeDelivery:
    if OTP_MODE == "fixed":
        logger.warning("Fixed passcode mode is enabled - only use in development")
        return FixedPasscodeDelivery()
    return NotificationPasscodeDelivery()
