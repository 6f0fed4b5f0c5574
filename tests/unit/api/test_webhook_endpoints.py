import json

import pytest
from fastapi.responses import JSONResponse
from starlette.requests import Request

from hookwarden.api.v1.endpoints import webhooks as endpoints
from hookwarden.models.enums import UserRole
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.notification_service import NotificationService
from hookwarden.services.user_service import UserService
from hookwarden.services.webhook_token_service import WebhookTokenService


def _request(body: bytes) -> Request:
    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request({"type": "http", "method": "POST", "path": "/", "headers": []}, receive)


def _setup(session):
    IntegrationService(session).create_integration("overseerr")
    admin = UserService(session).create_user("root", role=UserRole.ADMIN)
    token = WebhookTokenService(session).issue("overseerr").token
    return admin, token


PAYLOAD = json.dumps({"notification_type": "MEDIA_PENDING", "subject": "Dune"}).encode()


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer  abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        (None, None),
    ],
)
def test_bearer_token(header, expected):
    assert endpoints.bearer_token(header) == expected


@pytest.mark.asyncio
async def test_bearer_header_webhook_is_processed(session, transport):
    admin, token = _setup(session)

    response = await endpoints.receive_webhook(
        "overseerr",
        _request(PAYLOAD),
        session=session,
        transport=transport,
        request_id="req-1",
        authorization=f"Bearer {token}",
    )

    assert response.status == "processed"
    assert response.event_type == "request.pending"
    assert response.notifications_sent == 1
    assert transport.recipients() == [admin.id]


@pytest.mark.asyncio
async def test_path_token_webhook_is_processed(session, transport):
    _, token = _setup(session)

    response = await endpoints.receive_webhook_with_path_token(
        "overseerr", token, _request(PAYLOAD), session=session, transport=transport, request_id="req-1"
    )

    assert response.notifications_sent == 1


@pytest.mark.asyncio
async def test_invalid_token_gets_fixed_401(session, transport):
    _setup(session)

    missing = await endpoints.receive_webhook(
        "overseerr", _request(PAYLOAD), session=session, transport=transport, request_id="req-1", authorization=None
    )
    wrong = await endpoints.receive_webhook_with_path_token(
        "overseerr", "wrong", _request(PAYLOAD), session=session, transport=transport, request_id="req-1"
    )
    unknown = await endpoints.receive_webhook_with_path_token(
        "missing", "wrong", _request(PAYLOAD), session=session, transport=transport, request_id="req-1"
    )

    for response in (missing, wrong, unknown):
        assert isinstance(response, JSONResponse)
        assert response.status_code == 401
        assert json.loads(response.body) == {"error": "unauthorized"}
    assert transport.messages == []


@pytest.mark.asyncio
async def test_malformed_body_is_ignored(session, transport):
    _, token = _setup(session)

    response = await endpoints.receive_webhook_with_path_token(
        "overseerr", token, _request(b"not json"), session=session, transport=transport, request_id="req-1"
    )

    assert response.status == "ignored"
    assert response.notifications_sent == 0


@pytest.mark.asyncio
async def test_in_app_delivery_end_to_end(session):
    from hookwarden.services.dispatch import InAppDispatchTransport

    admin, token = _setup(session)

    await endpoints.receive_webhook_with_path_token(
        "overseerr",
        token,
        _request(PAYLOAD),
        session=session,
        transport=InAppDispatchTransport(session),
        request_id="req-1",
    )

    notifications = NotificationService(session).list_notifications(admin.id)
    assert [n.title for n in notifications] == ["Overseerr: Dune"]
