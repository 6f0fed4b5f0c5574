"""
Pydantic schemas for notification settings and in-app notifications.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from hookwarden.models.notification import Notification, UserIntegrationSetting, UserNotificationSettings


class NotificationSettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    sound: Optional[bool] = None
    receive_unmatched: Optional[bool] = Field(
        default=None,
        description="Administrators only: receive events whose sender could not be matched to a user",
    )


class IntegrationSubscriptionUpdate(BaseModel):
    enabled: bool
    events: List[str] = Field(default_factory=list)


class IntegrationSubscriptionResponse(BaseModel):
    integration_id: str
    enabled: bool
    events: List[str]
    active_events: List[str] = Field(
        default_factory=list,
        description="Selected events still offered by the integration",
    )

    @classmethod
    def from_model(cls, setting: UserIntegrationSetting, active_events) -> "IntegrationSubscriptionResponse":
        return cls(
            integration_id=setting.integration_id,
            enabled=setting.enabled,
            events=list(setting.events or []),
            active_events=sorted(active_events),
        )


class NotificationSettingsResponse(BaseModel):
    enabled: bool
    sound: bool
    receive_unmatched: bool
    integrations: List[IntegrationSubscriptionResponse] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        settings: UserNotificationSettings,
        integrations: List[IntegrationSubscriptionResponse],
    ) -> "NotificationSettingsResponse":
        return cls(
            enabled=settings.enabled,
            sound=settings.sound,
            receive_unmatched=settings.receive_unmatched,
            integrations=integrations,
        )


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    message: str
    metadata: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: datetime

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            type=str(getattr(notification.type, "value", notification.type)),
            title=notification.title,
            message=notification.message,
            metadata=notification.metadata_,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )
