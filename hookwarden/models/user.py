"""
User-related models.

The user table doubles as the user/group directory: role decides administrator
status and group_id is the single group a user belongs to.
"""
from typing import List, Optional, TYPE_CHECKING, Union

from pydantic import field_validator
from sqlalchemy import Column, Enum as SQLAlchemyEnum, text
from sqlmodel import Field, Relationship, Index, CheckConstraint, String

from .base import BaseModel
from .enums import UserRole

if TYPE_CHECKING:
    from .identity_link import IdentityLink
    from .notification import Notification, UserIntegrationSetting, UserNotificationSettings


class User(BaseModel, table=True):
    """
    User model
    """
    __tablename__ = "user"

    username: str = Field(
        sa_column=Column(String(100), unique=True, nullable=False)
    )
    email: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )
    display_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = Field(
        default=UserRole.USER,
        sa_column=Column(
            SQLAlchemyEnum(
                UserRole,
                name="user_role_enum",
                native_enum=True,
                values_callable=lambda x: [e.value for e in x]
            ),
            nullable=False,
            server_default=text("'user'")
        )
    )
    group_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True, index=True)
    )
    is_active: bool = Field(default=True)

    # Relations
    notification_settings: Optional["UserNotificationSettings"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "uselist": False}
    )
    integration_settings: List["UserIntegrationSetting"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    identity_links: List["IdentityLink"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    notifications: List["Notification"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    __table_args__ = (
        Index('idx_user_active_role', 'is_active', 'role'),
        CheckConstraint("length(username) > 0", name='check_username_not_empty'),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v: Union[str, UserRole]) -> UserRole:
        """Coerce string role values to UserRole enum."""
        if isinstance(v, UserRole):
            return v
        if isinstance(v, str):
            try:
                return UserRole(v)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid role: {v}. Must be one of: {[r.value for r in UserRole]}"
                ) from exc
        raise ValueError(f"Role must be a string or UserRole enum, got {type(v)}")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Username cannot be empty')
        return v.strip().lower()
