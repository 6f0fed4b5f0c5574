"""
Shared base classes for database models.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from hookwarden.core.time_utils import utc_now


class TimestampMixin(SQLModel):
    """Adds UTC created/updated timestamps."""
    # sa_type rather than sa_column: a shared Column object cannot be bound to several tables
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utc_now},
    )


class BaseModel(TimestampMixin):
    """Base model with a UUID primary key and timestamps."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
