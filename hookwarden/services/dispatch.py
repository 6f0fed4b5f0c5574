"""
Dispatch transports for routed notifications.

The router only enqueues; it never waits for delivery. Transports:
- InAppDispatchTransport: writes the notification row right away
- CeleryDispatchTransport: hands the message to a Celery worker
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from sqlmodel import Session

from hookwarden.core.config import settings
from hookwarden.core.exceptions import StorageError
from hookwarden.core.logging_config import log_debug, log_error
from hookwarden.models.enums import NotificationType
from hookwarden.services.notification_service import NotificationService


@dataclass(frozen=True)
class DispatchMessage:
    recipient_id: uuid.UUID
    title: str
    body: str
    type: NotificationType = NotificationType.INFO
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe form for the task queue."""
        return {
            "recipient_id": str(self.recipient_id),
            "title": self.title,
            "body": self.body,
            "type": NotificationType(self.type).value,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DispatchMessage":
        return cls(
            recipient_id=uuid.UUID(payload["recipient_id"]),
            title=payload["title"],
            body=payload.get("body", ""),
            type=NotificationType(payload.get("type", NotificationType.INFO.value)),
            metadata=payload.get("metadata") or {},
        )


class DispatchTransport(Protocol):
    def enqueue(self, message: DispatchMessage) -> None:
        ...


def deliver(session: Session, message: DispatchMessage) -> None:
    """Write a message to the recipient's in-app notifications."""
    NotificationService(session).create_notification(
        user_id=message.recipient_id,
        title=message.title,
        message=message.body,
        type=message.type,
        metadata=message.metadata,
    )


class InAppDispatchTransport:
    """Delivers synchronously into the notification table."""

    def __init__(self, session: Session):
        self.session = session

    def enqueue(self, message: DispatchMessage) -> None:
        try:
            deliver(self.session, message)
        except StorageError as exc:
            # Delivery problems never fail the webhook that produced the message
            log_error(exc, recipient_id=str(message.recipient_id))


class CeleryDispatchTransport:
    """Queues delivery on a Celery worker."""

    def enqueue(self, message: DispatchMessage) -> None:
        from hookwarden.tasks.notification_tasks import deliver_notification

        try:
            deliver_notification.delay(message.to_payload())
            log_debug("Notification queued", recipient_id=str(message.recipient_id))
        except Exception as exc:
            log_error(exc, recipient_id=str(message.recipient_id))


def get_dispatch_transport(session: Session) -> DispatchTransport:
    """Transport selected by NOTIFICATION_TRANSPORT."""
    if settings.use_celery_transport:
        return CeleryDispatchTransport()
    return InAppDispatchTransport(session)
