from unittest.mock import patch

import pytest

from hookwarden.core.exceptions import IntegrationNotFoundError
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.webhook_token_service import WebhookTokenService


def _service(session) -> WebhookTokenService:
    IntegrationService(session).create_integration("overseerr")
    return WebhookTokenService(session)


def test_issued_token_validates(session):
    service = _service(session)

    issued = service.issue("overseerr")

    assert service.validate("overseerr", issued.token) is True


def test_token_is_high_entropy(session):
    issued = _service(session).issue("overseerr")
    # 32 random bytes, urlsafe base64 without padding
    assert len(issued.token) >= 43


def test_rotation_invalidates_previous_token(session):
    service = _service(session)
    first = service.issue("overseerr")

    second = service.issue("overseerr")

    assert first.token != second.token
    assert service.validate("overseerr", first.token) is False
    assert service.validate("overseerr", second.token) is True


def test_revoke_disables_token(session):
    service = _service(session)
    issued = service.issue("overseerr")

    service.revoke("overseerr")

    assert service.validate("overseerr", issued.token) is False
    assert service.describe("overseerr").is_enabled is False


def test_issue_after_revoke_enables_new_token(session):
    service = _service(session)
    service.issue("overseerr")
    service.revoke("overseerr")

    issued = service.issue("overseerr")

    assert service.validate("overseerr", issued.token) is True


def test_validate_rejects_bad_input(session):
    service = _service(session)
    issued = service.issue("overseerr")

    assert service.validate("overseerr", None) is False
    assert service.validate("overseerr", "") is False
    assert service.validate("overseerr", issued.token + "x") is False
    assert service.validate("missing", issued.token) is False
    assert service.validate("", issued.token) is False


def test_validate_without_token_configured(session):
    service = _service(session)
    assert service.validate("overseerr", "anything") is False


def test_token_does_not_validate_for_other_integration(session):
    IntegrationService(session).create_integration("sonarr")
    service = _service(session)
    issued = service.issue("overseerr")
    service.issue("sonarr")

    assert service.validate("sonarr", issued.token) is False


def test_disabled_integration_rejects_valid_token(session):
    service = _service(session)
    issued = service.issue("overseerr")

    IntegrationService(session).set_enabled("overseerr", False)

    assert service.validate("overseerr", issued.token) is False


def test_describe_returns_masked_form_only(session):
    service = _service(session)
    issued = service.issue("overseerr")

    info = service.describe("overseerr")

    assert info.masked == issued.masked
    assert issued.token not in info.masked
    assert info.masked.startswith(issued.token[:6])
    assert info.masked.endswith("*" * 12)


def test_hint_length_follows_settings(session):
    service = _service(session)
    with patch("hookwarden.services.webhook_token_service.settings.webhook_token_hint_length", 0):
        issued = service.issue("overseerr")
    assert issued.masked == "*" * 12


def test_describe_without_token(session):
    assert _service(session).describe("overseerr") is None


def test_issue_for_unknown_integration_raises(session):
    with pytest.raises(IntegrationNotFoundError):
        WebhookTokenService(session).issue("missing")
