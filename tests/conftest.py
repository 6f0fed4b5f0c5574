"""
Shared pytest setup.

Environment is configured before anything from hookwarden is imported so the
module-level settings and engine point at an in-memory database and a
throwaway log directory.
"""
import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="hookwarden-logs-"))
os.environ.setdefault("NOTIFICATION_TRANSPORT", "inapp")

import pytest  # noqa: E402
from sqlmodel import Session  # noqa: E402

from hookwarden.core.database import build_engine  # noqa: E402
from hookwarden.models.base import BaseModel  # noqa: E402
import hookwarden.models  # noqa: E402,F401


class RecordingTransport:
    """Dispatch transport that keeps every enqueued message."""

    def __init__(self):
        self.messages = []

    def enqueue(self, message):
        self.messages.append(message)

    def recipients(self):
        return [m.recipient_id for m in self.messages]


@pytest.fixture
def session():
    engine = build_engine("sqlite:///:memory:")
    BaseModel.metadata.create_all(engine)
    with Session(engine) as db:
        yield db
    engine.dispose()


@pytest.fixture
def transport():
    return RecordingTransport()
