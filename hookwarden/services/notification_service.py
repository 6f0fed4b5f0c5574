"""
In-app notification store.
"""
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import NotificationNotFoundError, StorageError
from hookwarden.core.logging_config import log_error
from hookwarden.models.enums import NotificationType
from hookwarden.models.notification import Notification


class NotificationService:
    """Persists and reads in-app notifications."""

    def __init__(self, session: Session):
        self.session = session

    def create_notification(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        metadata: Optional[dict] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title[:255],
            message=message,
            type=NotificationType(type).value,
            metadata_=metadata or None,
        )
        try:
            self.session.add(notification)
            self.session.commit()
            self.session.refresh(notification)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, user_id=str(user_id))
            raise StorageError("Failed to store notification") from exc
        return notification

    def list_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        statement = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            statement = statement.where(Notification.is_read == False)  # noqa: E712
        statement = statement.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        return list(self.session.exec(statement).all())

    def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        notification = self.session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFoundError("Notification not found")
        notification.is_read = True
        try:
            self.session.add(notification)
            self.session.commit()
            self.session.refresh(notification)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, notification_id=str(notification_id))
            raise StorageError("Failed to update notification") from exc
        return notification
