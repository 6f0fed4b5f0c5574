"""
Database models.
"""
from .base import BaseModel, TimestampMixin
from .enums import LinkMethod, NotificationType, ShareMode, UserRole
from .identity_link import IdentityLink
from .integration import Integration, WebhookCredential
from .notification import Notification, UserIntegrationSetting, UserNotificationSettings
from .user import User

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "LinkMethod",
    "NotificationType",
    "ShareMode",
    "UserRole",
    "IdentityLink",
    "Integration",
    "WebhookCredential",
    "Notification",
    "UserIntegrationSetting",
    "UserNotificationSettings",
    "User",
]
