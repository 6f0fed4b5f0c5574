"""
External identity links used to match webhook actors to internal users.
"""
import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlmodel import Field, Index, Relationship

from hookwarden.core.time_utils import utc_now
from hookwarden.models.base import BaseModel
from hookwarden.models.enums import LinkMethod

if TYPE_CHECKING:
    from hookwarden.models.user import User


def normalize_external_username(value: str) -> str:
    """Key used for case-insensitive matching of external usernames."""
    return (value or "").strip().casefold()


class IdentityLink(BaseModel, table=True):
    """
    Association between a user and their username on an external service.

    One link per (user, service). The same external username may be claimed by
    several users through manual links; resolution treats that as ambiguous.
    """
    __tablename__ = "identity_link"

    user_id: uuid.UUID = Field(
        sa_column=Column(
            ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
    )
    service: str = Field(sa_column=Column(String(50), nullable=False))
    external_username: str = Field(sa_column=Column(String(255), nullable=False))
    username_key: str = Field(sa_column=Column(String(255), nullable=False))
    external_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )
    external_email: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )
    method: LinkMethod = Field(
        default=LinkMethod.MANUAL,
        sa_column=Column(String(10), nullable=False, default=LinkMethod.MANUAL.value)
    )
    linked_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    user: "User" = Relationship(back_populates="identity_links")

    __table_args__ = (
        UniqueConstraint("user_id", "service", name="uq_identity_link_user_service"),
        Index("idx_identity_link_lookup", "service", "username_key"),
    )

    @property
    def is_sso(self) -> bool:
        return LinkMethod(self.method) == LinkMethod.SSO
