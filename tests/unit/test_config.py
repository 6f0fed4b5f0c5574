"""
Unit tests for hookwarden.core.config.
"""
import pytest
from pydantic import ValidationError

from hookwarden.core.config import DEFAULT_SQLITE_URL, Settings


def make_settings(**kwargs):
    """Create Settings without loading values from .env or environment."""
    kwargs.setdefault("secret_key", "test-secret-key-for-testing-only-32-chars")
    return Settings(_env_file=None, **kwargs)


class TestDatabaseSettings:
    def test_blank_database_url_falls_back_to_sqlite(self):
        settings = make_settings(database_url="  ")
        assert settings.database_url == DEFAULT_SQLITE_URL
        assert settings.database_type == "sqlite"

    def test_postgres_components_build_url(self):
        settings = make_settings(
            postgres_host="db",
            postgres_user="hookwarden",
            postgres_password="pw",
            postgres_db="hookwarden",
        )
        assert settings.database_type == "postgresql"
        assert settings.effective_database_url == "postgresql://hookwarden:pw@db:5432/hookwarden"

    def test_postgres_url_must_be_postgres(self):
        with pytest.raises(ValidationError):
            make_settings(postgres_url="mysql://user@host/db")


class TestSecuritySettings:
    def test_missing_secret_key_in_production_fails(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", secret_key="")

    def test_missing_secret_key_in_development_is_generated(self):
        settings = Settings(_env_file=None, environment="development", secret_key="")
        assert len(settings.secret_key) >= 32


class TestNotificationSettings:
    def test_auto_transport_uses_celery_only_with_broker(self):
        assert make_settings(notification_transport="auto").use_celery_transport is False
        assert make_settings(
            notification_transport="auto", celery_broker_url="redis://localhost:6379/0"
        ).use_celery_transport is True

    def test_explicit_transport(self):
        assert make_settings(notification_transport="celery").use_celery_transport is True
        assert make_settings(
            notification_transport="inapp", celery_broker_url="redis://localhost:6379/0"
        ).use_celery_transport is False

    def test_unknown_transport_is_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(notification_transport="smtp")

    @pytest.mark.parametrize("length", [-1, 9])
    def test_hint_length_bounds(self, length):
        with pytest.raises(ValidationError):
            make_settings(webhook_token_hint_length=length)


class TestCorsSettings:
    def test_comma_separated_origins(self):
        settings = make_settings(enable_cors=True, cors_origins="https://a.example, https://b.example")
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_production_requires_origins_when_enabled(self):
        with pytest.raises(ValidationError):
            make_settings(environment="production", enable_cors=True, cors_origins="")
