"""
Inbound webhook endpoint.

The token may arrive as an Authorization bearer header or as the last path
segment, for senders that cannot set headers. Every authentication failure
gets the same 401 body so callers cannot tell which check failed.
"""
import json
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from hookwarden.api.dependencies import get_request_id, get_transport
from hookwarden.core.database import get_session
from hookwarden.core.logging_config import log_webhook
from hookwarden.schemas.webhook import WebhookResponse
from hookwarden.services.dispatch import DispatchTransport
from hookwarden.services.notification_router import NotificationRouter, RoutingStatus

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

UNAUTHORIZED_BODY = {"error": "unauthorized"}


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def _read_payload(request: Request) -> Dict[str, Any]:
    body = await request.body()
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


async def _handle(
    integration_id: str,
    token: Optional[str],
    request: Request,
    session: Session,
    transport: DispatchTransport,
    request_id: str,
):
    payload = await _read_payload(request)
    outcome = NotificationRouter(session, transport).handle_webhook(integration_id, token, payload)
    if outcome.status == RoutingStatus.REJECTED:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=UNAUTHORIZED_BODY)

    log_webhook(
        f"Webhook {outcome.status.value}",
        request_id=request_id,
        integration_id=integration_id,
        event_type=outcome.event_type,
        notifications_sent=outcome.notifications_sent,
    )
    return WebhookResponse(
        status=outcome.status.value,
        event_type=outcome.event_type,
        notifications_sent=outcome.notifications_sent,
    )


@router.post(
    "/{integration_id}",
    response_model=WebhookResponse,
    responses={401: {"description": "Missing or invalid webhook token"}},
)
async def receive_webhook(
    integration_id: str,
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    transport: Annotated[DispatchTransport, Depends(get_transport)],
    request_id: Annotated[str, Depends(get_request_id)],
    authorization: Annotated[Optional[str], Header()] = None,
):
    return await _handle(integration_id, bearer_token(authorization), request, session, transport, request_id)


@router.post(
    "/{integration_id}/{token}",
    response_model=WebhookResponse,
    responses={401: {"description": "Missing or invalid webhook token"}},
)
async def receive_webhook_with_path_token(
    integration_id: str,
    token: str,
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    transport: Annotated[DispatchTransport, Depends(get_transport)],
    request_id: Annotated[str, Depends(get_request_id)],
):
    return await _handle(integration_id, token, request, session, transport, request_id)
