"""
Integration endpoints: registration, sharing, event allowlists and webhook tokens.
"""
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from hookwarden.api.dependencies import get_current_admin_user, get_current_principal
from hookwarden.core.database import get_session
from hookwarden.core.exceptions import (
    IntegrationAlreadyExistsError,
    IntegrationNotFoundError,
    InvalidEventError,
    StorageError,
    UnknownIntegrationTypeError,
)
from hookwarden.core.logging_config import log_user_action
from hookwarden.integrations.catalog import get_definition
from hookwarden.models.integration import Integration
from hookwarden.models.user import User
from hookwarden.schemas.integration import (
    CatalogResponse,
    EffectiveEventsResponse,
    EventAllowlistResponse,
    EventAllowlistUpdate,
    IntegrationCreate,
    IntegrationResponse,
    ShareRuleSchema,
    VisibilityResponse,
    WebhookTokenIssuedResponse,
    WebhookTokenResponse,
)
from hookwarden.services.event_allowlist_service import Allowlist, EventAllowlistService
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.share_service import ShareService
from hookwarden.services.user_service import Principal
from hookwarden.services.webhook_token_service import WebhookTokenService

router = APIRouter(prefix="/integrations", tags=["integrations"])


def _not_found(exc: IntegrationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _unavailable(exc: StorageError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


def _invalid_events(exc: InvalidEventError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(exc), "invalid_events": exc.event_ids},
    )


def _visible_integration(session: Session, integration_id: str, principal: Principal) -> Integration:
    try:
        integration = IntegrationService(session).get_integration(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    if not ShareService.is_integration_visible(integration, principal):
        # Same answer as a missing integration
        raise HTTPException(status_code=404, detail=f"Integration '{integration_id}' not found")
    return integration


def _allowlist_response(integration_id: str, allowlist: Allowlist) -> EventAllowlistResponse:
    return EventAllowlistResponse(
        integration_id=integration_id,
        admin_events=sorted(allowlist.admin_events),
        user_events=sorted(allowlist.user_events),
    )


# ================================================================================
# REGISTRATION & VISIBILITY
# ================================================================================

@router.get("", response_model=List[IntegrationResponse])
async def list_visible_integrations(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[Session, Depends(get_session)],
):
    """Integrations the current user can see. Administrators see all of them."""
    integrations = ShareService(session).visible_integrations(principal)
    return [IntegrationResponse.from_model(i) for i in integrations]


@router.post(
    "",
    response_model=IntegrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Unknown integration type"},
        403: {"description": "Admin access required"},
        409: {"description": "Integration id already exists"},
    }
)
async def create_integration(
    data: IntegrationCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        integration = IntegrationService(session).create_integration(
            integration_id=data.id,
            integration_type=data.integration_type,
            display_name=data.display_name,
            connection=data.connection,
            is_enabled=data.is_enabled,
        )
    except UnknownIntegrationTypeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrationAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except StorageError as e:
        raise _unavailable(e) from e

    log_user_action(admin.username, f"created integration {integration.id}")
    return IntegrationResponse.from_model(integration)


@router.get("/{integration_id}", response_model=IntegrationResponse)
async def get_integration(
    integration_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[Session, Depends(get_session)],
):
    return IntegrationResponse.from_model(_visible_integration(session, integration_id, principal))


@router.delete("/{integration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_integration(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    """Delete an integration, its webhook token and every user subscription to it."""
    try:
        IntegrationService(session).delete_integration(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    except StorageError as e:
        raise _unavailable(e) from e
    log_user_action(admin.username, f"deleted integration {integration_id}")


@router.get("/{integration_id}/visibility", response_model=VisibilityResponse)
async def get_visibility(
    integration_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[Session, Depends(get_session)],
):
    """Whether the caller can see the integration. Non-admins get false for unknown ids too."""
    try:
        visible = ShareService(session).is_visible(integration_id, principal)
    except IntegrationNotFoundError as e:
        if principal.is_admin:
            raise _not_found(e) from e
        visible = False
    return VisibilityResponse(integration_id=integration_id, visible=visible)


@router.get("/{integration_id}/catalog", response_model=CatalogResponse)
async def get_catalog(
    integration_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[Session, Depends(get_session)],
):
    """Event catalog for the integration's type (feeds event pickers)."""
    integration = _visible_integration(session, integration_id, principal)
    return CatalogResponse.from_definition(get_definition(integration.integration_type))


# ================================================================================
# SHARING (admin)
# ================================================================================

@router.get("/{integration_id}/share", response_model=ShareRuleSchema)
async def get_share_rule(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        return ShareRuleSchema.from_rule(ShareService(session).get_rule(integration_id))
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e


@router.put("/{integration_id}/share", response_model=ShareRuleSchema)
async def set_share_rule(
    integration_id: str,
    rule: ShareRuleSchema,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        stored = ShareService(session).set_rule(integration_id, rule.to_rule())
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    except StorageError as e:
        raise _unavailable(e) from e
    log_user_action(admin.username, f"set share rule for {integration_id}", mode=stored.mode.value)
    return ShareRuleSchema.from_rule(stored)


# ================================================================================
# EVENT ALLOWLIST
# ================================================================================

@router.get("/{integration_id}/events", response_model=EventAllowlistResponse)
async def get_event_allowlist(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        allowlist = EventAllowlistService(session).get_allowlist(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    return _allowlist_response(integration_id, allowlist)


@router.put(
    "/{integration_id}/events",
    response_model=EventAllowlistResponse,
    responses={422: {"description": "Event id not in the integration's catalog"}},
)
async def update_event_allowlist(
    integration_id: str,
    data: EventAllowlistUpdate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    """Replace admin_events and/or user_events. Nothing is stored unless every id is valid."""
    try:
        allowlist = EventAllowlistService(session).set_allowlist(
            integration_id,
            admin_events=data.admin_events,
            user_events=data.user_events,
        )
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    except InvalidEventError as e:
        raise _invalid_events(e) from e
    except StorageError as e:
        raise _unavailable(e) from e

    log_user_action(admin.username, f"updated event allowlist for {integration_id}")
    return _allowlist_response(integration_id, allowlist)


@router.get("/{integration_id}/events/effective", response_model=EffectiveEventsResponse)
async def get_effective_events(
    integration_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[Session, Depends(get_session)],
):
    """Events the current user may receive or subscribe to."""
    try:
        events = EventAllowlistService(session).effective_events_for(integration_id, principal)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    return EffectiveEventsResponse(integration_id=integration_id, events=sorted(events))


# ================================================================================
# WEBHOOK TOKEN (admin)
# ================================================================================

@router.post(
    "/{integration_id}/webhook-token",
    response_model=WebhookTokenIssuedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_webhook_token(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    """Issue a new token, replacing any existing one. The full token is only returned here."""
    try:
        issued = WebhookTokenService(session).issue(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    except StorageError as e:
        raise _unavailable(e) from e

    log_user_action(admin.username, f"issued webhook token for {integration_id}")
    return WebhookTokenIssuedResponse(
        integration_id=integration_id,
        token=issued.token,
        masked=issued.masked,
        issued_at=issued.issued_at,
        webhook_path=f"/webhooks/{integration_id}",
    )


@router.get("/{integration_id}/webhook-token", response_model=WebhookTokenResponse)
async def get_webhook_token(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        info = WebhookTokenService(session).describe(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    if info is None:
        return WebhookTokenResponse(integration_id=integration_id, configured=False)
    return WebhookTokenResponse(
        integration_id=integration_id,
        configured=True,
        masked=info.masked,
        is_enabled=info.is_enabled,
        issued_at=info.issued_at,
    )


@router.delete("/{integration_id}/webhook-token", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_webhook_token(
    integration_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        WebhookTokenService(session).revoke(integration_id)
    except IntegrationNotFoundError as e:
        raise _not_found(e) from e
    except StorageError as e:
        raise _unavailable(e) from e
    log_user_action(admin.username, f"revoked webhook token for {integration_id}")
