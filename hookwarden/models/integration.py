"""
Database models for integrations and their webhook credentials.

Models:
- Integration: an administrator-owned connection to an external service. Holds the
  share rule (share_mode + share_targets) and the event allowlist
  (admin_events + user_events) as separate column groups so each can be
  replaced on its own.
- WebhookCredential: the single bearer token gating inbound webhooks for an
  integration. Only a SHA-256 digest and a short display prefix are stored.

Extension Points:
- New integration types only need a catalog entry (hookwarden/integrations/catalog.py)
- Always reference integration.id with CASCADE delete from dependent tables
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlmodel import Field, Index, Relationship

from hookwarden.core.time_utils import utc_now
from hookwarden.models.base import BaseModel, TimestampMixin
from hookwarden.models.enums import ShareMode

if TYPE_CHECKING:
    from hookwarden.models.notification import UserIntegrationSetting


class Integration(TimestampMixin, table=True):
    """
    A configured connection to an external service.

    Fields:
        id: Stable string key (e.g. "overseerr"), also used in webhook URLs
        integration_type: Catalog key deciding valid events and identity fields
        display_name: Used as the notification title prefix
        is_enabled: Disabled integrations reject every webhook
        connection: Opaque connection parameters (URL, API key, ...)
        share_mode / share_targets: The share rule; targets are group ids or user ids
        admin_events / user_events: The event allowlist
    """
    __tablename__ = "integration"

    id: str = Field(sa_column=Column(String(64), primary_key=True))
    integration_type: str = Field(
        sa_column=Column(String(50), nullable=False, index=True)
    )
    display_name: str = Field(sa_column=Column(String(100), nullable=False))
    is_enabled: bool = Field(default=True)
    connection: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict)
    )

    # Share rule
    share_mode: ShareMode = Field(
        default=ShareMode.NONE,
        sa_column=Column(String(20), nullable=False, default=ShareMode.NONE.value)
    )
    share_targets: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    # Event allowlist
    admin_events: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )
    user_events: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    # Relationships
    webhook_credential: Optional["WebhookCredential"] = Relationship(
        back_populates="integration",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "uselist": False}
    )
    user_settings: List["UserIntegrationSetting"] = Relationship(
        back_populates="integration",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    __table_args__ = (
        Index("idx_integration_type_enabled", "integration_type", "is_enabled"),
    )


class WebhookCredential(BaseModel, table=True):
    """
    Bearer token for inbound webhooks. At most one row per integration.

    Rotation rewrites token_hash in place, so the previous token stops
    validating in the same commit that makes the new one valid.
    """
    __tablename__ = "webhook_credential"

    integration_id: str = Field(
        sa_column=Column(
            String(64),
            ForeignKey("integration.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        )
    )
    token_hash: str = Field(sa_column=Column(String(64), nullable=False))
    token_hint: str = Field(
        default="",
        sa_column=Column(String(16), nullable=False, default="")
    )
    is_enabled: bool = Field(default=True)
    issued_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    integration: Optional[Integration] = Relationship(back_populates="webhook_credential")
