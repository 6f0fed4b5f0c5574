"""
Pydantic schemas for linked external accounts.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hookwarden.models.identity_link import IdentityLink


class IdentityLinkUpdate(BaseModel):
    external_username: str = Field(..., min_length=1, max_length=255)
    external_email: Optional[str] = Field(default=None, max_length=255)

    @field_validator('external_username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('External username cannot be empty')
        return v.strip()


class IdentityLinkResponse(BaseModel):
    service: str
    external_username: str
    external_email: Optional[str] = None
    method: str
    editable: bool
    linked_at: datetime

    @classmethod
    def from_model(cls, link: IdentityLink) -> "IdentityLinkResponse":
        return cls(
            service=link.service,
            external_username=link.external_username,
            external_email=link.external_email,
            method=str(getattr(link.method, "value", link.method)),
            editable=not link.is_sso,
            linked_at=link.linked_at,
        )
