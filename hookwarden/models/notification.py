"""
Notification preferences and the in-app notification store.
"""
import uuid
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Column, ForeignKey, String, Text, UniqueConstraint
from sqlmodel import Field, Index, Relationship

from hookwarden.models.base import BaseModel
from hookwarden.models.enums import NotificationType

if TYPE_CHECKING:
    from hookwarden.models.integration import Integration
    from hookwarden.models.user import User


class UserNotificationSettings(BaseModel, table=True):
    """
    Global notification switches for a user.

    receive_unmatched only has an effect for administrators.
    """
    __tablename__ = "user_notification_settings"

    user_id: uuid.UUID = Field(
        sa_column=Column(
            ForeignKey("user.id", ondelete="CASCADE"),
            unique=True,
            nullable=False
        )
    )
    enabled: bool = Field(default=True)
    sound: bool = Field(default=True)
    receive_unmatched: bool = Field(default=True)

    user: "User" = Relationship(back_populates="notification_settings")


class UserIntegrationSetting(BaseModel, table=True):
    """
    A user's subscription to one integration.

    events may hold ids that are no longer in the integration's user_events;
    those are kept as-is and ignored when routing.
    """
    __tablename__ = "user_integration_setting"

    user_id: uuid.UUID = Field(
        sa_column=Column(
            ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
    )
    integration_id: str = Field(
        sa_column=Column(
            String(64),
            ForeignKey("integration.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
    )
    enabled: bool = Field(default=False)
    events: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    user: "User" = Relationship(back_populates="integration_settings")
    integration: "Integration" = Relationship(back_populates="user_settings")

    __table_args__ = (
        UniqueConstraint("user_id", "integration_id", name="uq_user_integration_setting"),
    )


class Notification(BaseModel, table=True):
    """In-app notification delivered to one user."""
    __tablename__ = "notification"

    user_id: uuid.UUID = Field(
        sa_column=Column(
            ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False
        )
    )
    type: NotificationType = Field(
        default=NotificationType.INFO,
        sa_column=Column(String(20), nullable=False, default=NotificationType.INFO.value)
    )
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    metadata_: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column("metadata", JSON, nullable=True)
    )
    is_read: bool = Field(default=False)

    user: "User" = Relationship(back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read"),
    )
