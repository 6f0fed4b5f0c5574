import uuid

import pytest
from fastapi import HTTPException
from jose import ExpiredSignatureError
from unittest.mock import MagicMock, patch

from hookwarden.models.enums import UserRole
from hookwarden.models.user import User


def _user(role=UserRole.USER, is_active=True) -> User:
    return User(
        id=uuid.uuid4(),
        username="alice",
        role=role,
        group_id="family",
        is_active=is_active,
    )


@pytest.mark.asyncio
async def test_get_current_user_success():
    from hookwarden.api import dependencies

    user = _user()
    with patch("hookwarden.api.dependencies.verify_token") as mock_verify, patch(
        "hookwarden.api.dependencies.UserService"
    ) as mock_user_service:
        mock_verify.return_value = {"sub": str(user.id), "type": "access"}
        mock_user_service.return_value.get_user_by_id.return_value = user

        result = await dependencies.get_current_user(token="token", session=MagicMock())

    assert result.id == user.id
    mock_user_service.return_value.get_user_by_id.assert_called_once_with(str(user.id))


@pytest.mark.asyncio
async def test_get_current_user_without_token():
    from hookwarden.api import dependencies

    with pytest.raises(HTTPException) as exc_info:
        await dependencies.get_current_user(token=None, session=MagicMock())
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_expired_token():
    from hookwarden.api import dependencies

    with patch("hookwarden.api.dependencies.verify_token", side_effect=ExpiredSignatureError("expired")):
        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_current_user(token="token", session=MagicMock())
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_unknown_user():
    from hookwarden.api import dependencies

    with patch("hookwarden.api.dependencies.verify_token") as mock_verify, patch(
        "hookwarden.api.dependencies.UserService"
    ) as mock_user_service:
        mock_verify.return_value = {"sub": str(uuid.uuid4())}
        mock_user_service.return_value.get_user_by_id.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_current_user(token="token", session=MagicMock())
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_inactive():
    from hookwarden.api import dependencies

    user = _user(is_active=False)
    with patch("hookwarden.api.dependencies.verify_token") as mock_verify, patch(
        "hookwarden.api.dependencies.UserService"
    ) as mock_user_service:
        mock_verify.return_value = {"sub": str(user.id)}
        mock_user_service.return_value.get_user_by_id.return_value = user

        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_current_user(token="token", session=MagicMock())
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_get_current_admin_user_rejects_regular_user():
    from hookwarden.api import dependencies

    with pytest.raises(HTTPException) as exc_info:
        await dependencies.get_current_admin_user(current_user=_user())
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_get_current_admin_user_accepts_admin():
    from hookwarden.api import dependencies

    admin = _user(role=UserRole.ADMIN)
    assert await dependencies.get_current_admin_user(current_user=admin) is admin


def test_get_current_principal():
    from hookwarden.api import dependencies

    user = _user()
    principal = dependencies.get_current_principal(current_user=user)

    assert principal.user_id == user.id
    assert principal.group_id == "family"
    assert principal.is_admin is False
