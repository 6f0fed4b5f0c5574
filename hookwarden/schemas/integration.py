"""
Pydantic schemas for integration API requests and responses.

Request Schemas:
- IntegrationCreate: Register an integration of a catalog type
- ShareRuleSchema: Replace the share rule
- EventAllowlistUpdate: Replace admin and/or user events

Response Schemas:
- IntegrationResponse, VisibilityResponse, EventAllowlistResponse,
  EffectiveEventsResponse, CatalogResponse
- WebhookTokenIssuedResponse: full token, returned only once
- WebhookTokenResponse: masked token for every later read

Design Principles:
- Never expose connection secrets or token digests in responses
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from hookwarden.integrations.catalog import IntegrationTypeDefinition
from hookwarden.models.enums import ShareMode
from hookwarden.models.integration import Integration
from hookwarden.services.share_service import ShareRule


# ================================================================================
# REQUEST SCHEMAS
# ================================================================================

class IntegrationCreate(BaseModel):
    """
    Request to register an integration.

    Examples:
        {"id": "overseerr"}
        {"id": "radarr-4k", "integration_type": "radarr", "display_name": "Radarr 4K"}
    """
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
    integration_type: Optional[str] = Field(default=None, description="Catalog type, defaults to id")
    display_name: Optional[str] = Field(default=None, max_length=100)
    connection: Dict[str, Any] = Field(default_factory=dict)
    is_enabled: bool = True


class ShareRuleSchema(BaseModel):
    """
    Share rule in wire form.

    targets are group ids for mode=groups and user ids for mode=users.
    An empty target list is valid and kept as-is.
    """
    mode: ShareMode
    targets: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_targets(self):
        if self.mode in (ShareMode.NONE, ShareMode.EVERYONE) and self.targets:
            raise ValueError(f"mode '{self.mode.value}' does not take targets")
        return self

    def to_rule(self) -> ShareRule:
        if self.mode == ShareMode.GROUPS:
            return ShareRule.groups(self.targets)
        if self.mode == ShareMode.USERS:
            return ShareRule.users(self.targets)
        return ShareRule(self.mode)

    @classmethod
    def from_rule(cls, rule: ShareRule) -> "ShareRuleSchema":
        return cls(mode=rule.mode, targets=sorted(rule.targets))


class EventAllowlistUpdate(BaseModel):
    """Either set may be omitted to leave it unchanged."""
    admin_events: Optional[List[str]] = None
    user_events: Optional[List[str]] = None

    @field_validator('admin_events', 'user_events')
    @classmethod
    def strip_events(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [event.strip() for event in v if event and event.strip()]


# ================================================================================
# RESPONSE SCHEMAS
# ================================================================================

class IntegrationResponse(BaseModel):
    id: str
    integration_type: str
    display_name: str
    is_enabled: bool
    created_at: datetime

    @classmethod
    def from_model(cls, integration: Integration) -> "IntegrationResponse":
        return cls(
            id=integration.id,
            integration_type=integration.integration_type,
            display_name=integration.display_name,
            is_enabled=integration.is_enabled,
            created_at=integration.created_at,
        )


class VisibilityResponse(BaseModel):
    integration_id: str
    visible: bool


class EventAllowlistResponse(BaseModel):
    integration_id: str
    admin_events: List[str]
    user_events: List[str]


class EffectiveEventsResponse(BaseModel):
    integration_id: str
    events: List[str]


class CatalogEventResponse(BaseModel):
    key: str
    label: str
    default_admin: bool
    default_user: bool


class CatalogResponse(BaseModel):
    integration_type: str
    display_name: str
    admin_only: bool
    identity_services: List[str]
    events: List[CatalogEventResponse]

    @classmethod
    def from_definition(cls, definition: IntegrationTypeDefinition) -> "CatalogResponse":
        return cls(
            integration_type=definition.type,
            display_name=definition.display_name,
            admin_only=definition.admin_only,
            identity_services=list(definition.identity_services),
            events=[
                CatalogEventResponse(
                    key=event.key,
                    label=event.label,
                    default_admin=event.default_admin,
                    default_user=event.default_user,
                )
                for event in definition.events
            ],
        )


class WebhookTokenIssuedResponse(BaseModel):
    integration_id: str
    token: str = Field(..., description="Full token. Shown only in this response.")
    masked: str
    issued_at: datetime
    webhook_path: str


class WebhookTokenResponse(BaseModel):
    integration_id: str
    configured: bool
    masked: Optional[str] = None
    is_enabled: bool = False
    issued_at: Optional[datetime] = None
