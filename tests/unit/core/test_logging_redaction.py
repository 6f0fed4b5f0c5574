from hookwarden.core.logging_config import MASK, _sanitize_data
from hookwarden.middleware.request_logging import redact_path


def test_sensitive_keys_are_masked():
    data = {"token": "abc", "nested": {"authorization": "Bearer abc"}, "integration_id": "overseerr"}

    sanitized = _sanitize_data(data)

    assert sanitized["token"] == MASK
    assert sanitized["nested"]["authorization"] == MASK
    assert sanitized["integration_id"] == "overseerr"


def test_long_opaque_strings_are_masked():
    opaque = "A" * 43
    assert _sanitize_data({"value": opaque})["value"] == MASK


def test_webhook_path_token_is_redacted():
    assert redact_path("/api/v1/webhooks/overseerr/secret-token") == "/api/v1/webhooks/overseerr/***"
    assert redact_path("/api/v1/webhooks/overseerr") == "/api/v1/webhooks/overseerr"
    assert redact_path("/api/v1/integrations") == "/api/v1/integrations"
