import uuid
from unittest.mock import patch

from sqlmodel import Session, select

from hookwarden.core.database import build_engine
from hookwarden.models.base import BaseModel
from hookwarden.models.notification import Notification
from hookwarden.services.dispatch import DispatchMessage
from hookwarden.services.user_service import UserService
from hookwarden.tasks.notification_tasks import deliver_notification


def _engine_with_user():
    engine = build_engine("sqlite:///:memory:")
    BaseModel.metadata.create_all(engine)
    with Session(engine) as session:
        user_id = UserService(session).create_user("alice").id
    return engine, user_id


def test_deliver_notification_persists_message():
    engine, user_id = _engine_with_user()
    message = DispatchMessage(recipient_id=user_id, title="Sonarr: Andor", body="Episode Downloaded")

    with patch("hookwarden.tasks.notification_tasks.get_session_context", lambda: Session(engine)):
        result = deliver_notification.run(message.to_payload())

    assert result == {"delivered": True}
    with Session(engine) as session:
        stored = session.exec(select(Notification)).all()
    assert [n.title for n in stored] == ["Sonarr: Andor"]


def test_deliver_notification_reports_storage_failure():
    engine, _ = _engine_with_user()
    # Unknown recipient violates the user foreign key
    message = DispatchMessage(recipient_id=uuid.uuid4(), title="Lost", body="")

    with patch("hookwarden.tasks.notification_tasks.get_session_context", lambda: Session(engine)):
        result = deliver_notification.run(message.to_payload())

    assert result == {"delivered": False}
