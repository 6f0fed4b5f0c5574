"""
Notification settings and in-app notification endpoints.
"""
import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from hookwarden.api.dependencies import get_current_user
from hookwarden.core.database import get_session
from hookwarden.core.exceptions import (
    IntegrationNotFoundError,
    InvalidEventError,
    NotificationNotFoundError,
    StorageError,
)
from hookwarden.core.logging_config import log_user_action
from hookwarden.models.user import User
from hookwarden.schemas.notification import (
    IntegrationSubscriptionResponse,
    IntegrationSubscriptionUpdate,
    NotificationResponse,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
)
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.notification_service import NotificationService
from hookwarden.services.share_service import ShareService
from hookwarden.services.subscription_service import SubscriptionService
from hookwarden.services.user_service import Principal

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _subscription_responses(session: Session, user: User) -> List[IntegrationSubscriptionResponse]:
    service = SubscriptionService(session)
    integrations = {i.id: i for i in ShareService(session).visible_integrations(Principal.from_user(user))}
    responses = []
    for setting in service.list_integration_settings(user.id):
        integration = integrations.get(setting.integration_id)
        if integration is None:
            # No longer shared with the user
            continue
        responses.append(
            IntegrationSubscriptionResponse.from_model(setting, service.active_events(setting, integration))
        )
    return responses


@router.get("/settings", response_model=NotificationSettingsResponse)
async def get_notification_settings(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    settings = SubscriptionService(session).get_settings(current_user.id)
    return NotificationSettingsResponse.build(settings, _subscription_responses(session, current_user))


@router.put(
    "/settings",
    response_model=NotificationSettingsResponse,
    responses={403: {"description": "receive_unmatched is reserved for administrators"}},
)
async def update_notification_settings(
    data: NotificationSettingsUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    if data.receive_unmatched is not None and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can change unmatched event delivery",
        )
    try:
        settings = SubscriptionService(session).update_settings(
            current_user.id,
            enabled=data.enabled,
            sound=data.sound,
            receive_unmatched=data.receive_unmatched,
        )
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    log_user_action(current_user.username, "updated notification settings")
    return NotificationSettingsResponse.build(settings, _subscription_responses(session, current_user))


@router.put(
    "/settings/integrations/{integration_id}",
    response_model=IntegrationSubscriptionResponse,
    responses={
        404: {"description": "Integration not found or not shared with the user"},
        422: {"description": "Event not allowed for the user"},
    }
)
async def update_integration_subscription(
    integration_id: str,
    data: IntegrationSubscriptionUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    not_found = HTTPException(status_code=404, detail=f"Integration '{integration_id}' not found")
    try:
        integration = IntegrationService(session).get_integration(integration_id)
    except IntegrationNotFoundError as e:
        raise not_found from e
    if not ShareService.is_integration_visible(integration, Principal.from_user(current_user)):
        raise not_found

    service = SubscriptionService(session)
    try:
        setting = service.set_integration_setting(current_user, integration_id, data.enabled, data.events)
    except InvalidEventError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "invalid_events": e.event_ids},
        ) from e
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    log_user_action(current_user.username, f"updated subscription for {integration_id}")
    return IntegrationSubscriptionResponse.from_model(setting, service.active_events(setting, integration))


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    notifications = NotificationService(session).list_notifications(
        current_user.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return [NotificationResponse.from_model(n) for n in notifications]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        notification = NotificationService(session).mark_read(current_user.id, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    return NotificationResponse.from_model(notification)
