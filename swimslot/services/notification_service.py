"""
Unified Notification Service
Records every workflow message and hands it to the channel senders
Every requested channel gets a notification row, sent or failed
"""

import logging
from typing import Callable, Iterable

from sqlalchemy.orm import Session

from ..models import NOTIFICATION_CHANNELS, Notification, User
from ..shared.validators import validate_phone

logger = logging.getLogger(__name__)

ChannelSender = Callable[[User, str], None]


def _send_email(user: User, message: str) -> None:
    if not user.email:
        raise ValueError("No email address on file")
    logger.info(f"Email recorded for {user.email}: {message[:60]}")


def _send_phone_message(channel: str) -> ChannelSender:
    def sender(user: User, message: str) -> None:
        formatted_phone = validate_phone(user.phone)
        if not formatted_phone:
            raise ValueError("No phone number on file")
        logger.info(f"{channel} message recorded for {formatted_phone}: {message[:60]}")

    return sender


CHANNEL_SENDERS: dict[str, ChannelSender] = {
    "email": _send_email,
    "sms": _send_phone_message("sms"),
    "whatsapp": _send_phone_message("whatsapp"),
}


def send_notification(
    db: Session,
    user: User,
    notification_type: str,
    message: str,
    channels: Iterable[str] = ("email",),
) -> dict:
    """
    Send a message to a user on each channel and record the outcome

    Args:
        db: Database session
        user: Recipient
        notification_type: otp, confirmation, reminder, invoice, refund, cancellation
        message: Free-text body
        channels: Channels to use

    Returns:
        Dict mapping channel to "sent" or "failed"
    """
    result = {}

    for channel in channels:
        if channel not in NOTIFICATION_CHANNELS:
            raise ValueError(f"Unknown notification channel: {channel}")

        status = "sent"
        try:
            CHANNEL_SENDERS[channel](user, message)
            logger.info(f"{notification_type} {channel} notification sent to user {user.id}")
        except Exception as e:
            status = "failed"
            logger.error(f"Failed to send {notification_type} {channel} to user {user.id}: {e}")

        db.add(
            Notification(
                user_id=user.id,
                channel=channel,
                type=notification_type,
                message=message,
                status=status,
            )
        )
        result[channel] = status

    db.commit()
    return result
