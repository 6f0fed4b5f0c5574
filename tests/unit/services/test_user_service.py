import uuid

import pytest

from hookwarden.core.exceptions import UserAlreadyExistsError, UserNotFoundError
from hookwarden.models.enums import UserRole
from hookwarden.services.user_service import Principal, UserService


def test_create_user_normalizes_username(session):
    user = UserService(session).create_user("  Alice ", group_id="family")

    assert user.username == "alice"
    assert UserService(session).get_user_by_username("ALICE").id == user.id


def test_duplicate_username_raises(session):
    service = UserService(session)
    service.create_user("alice")

    with pytest.raises(UserAlreadyExistsError):
        service.create_user("Alice")


def test_get_user_by_id_accepts_strings(session):
    service = UserService(session)
    user = service.create_user("alice")

    assert service.get_user_by_id(str(user.id)).id == user.id
    assert service.get_user_by_id("not-a-uuid") is None


def test_require_user_raises_for_unknown_id(session):
    with pytest.raises(UserNotFoundError):
        UserService(session).require_user(uuid.uuid4())


def test_list_active_admins_skips_inactive_and_regular_users(session):
    service = UserService(session)
    admin = service.create_user("root", role=UserRole.ADMIN)
    retired = service.create_user("old-admin", role=UserRole.ADMIN)
    service.create_user("alice")
    retired.is_active = False
    session.add(retired)
    session.commit()

    assert [u.id for u in service.list_active_admins()] == [admin.id]


def test_principal_for_user(session):
    service = UserService(session)
    user = service.create_user("alice", group_id="family")

    principal = service.principal_for(user.id)

    assert principal == Principal(user_id=user.id, group_id="family", is_admin=False)
