"""Notification repository - Read access to notification records"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Notification


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_by_id(db: Session, notification_id: str) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.id == notification_id).first()

    @staticmethod
    def get_by_user(db: Session, user_id: str, notification_type: Optional[str] = None) -> list[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if notification_type:
            query = query.filter(Notification.type == notification_type)
        return query.order_by(Notification.sent_at.desc()).all()
