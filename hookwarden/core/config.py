"""
Application configuration using pydantic-settings.
"""
import logging
import secrets
from typing import List, Literal, Optional

from pydantic import field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Insecure default that should never be used in production
_INSECURE_DEFAULT_SECRET = "your-super-secret-key-change-in-production"
DEFAULT_SQLITE_URL = "sqlite:////data/hookwarden.db"


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Hookwarden"
    app_version: str = "0.4.0"
    debug: bool = False
    environment: str = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    enable_cors: bool = False
    cors_origins: Optional[List[str]] = None

    # Database Configuration
    database_url: str = DEFAULT_SQLITE_URL

    # PostgreSQL override (optional)
    postgres_url: Optional[str] = None
    postgres_user: Optional[str] = None
    postgres_password: Optional[str] = None
    postgres_db: Optional[str] = None
    postgres_host: Optional[str] = None
    postgres_port: Optional[int] = None

    # Security
    secret_key: str = ""  # Must be set via environment variable
    access_token_expire_minutes: int = 15
    algorithm: str = "HS256"

    # Celery Configuration
    celery_broker_url: Optional[str] = None  # e.g., "redis://localhost:6379/0"
    celery_result_backend: Optional[str] = None
    celery_task_serializer: str = "json"
    celery_result_serializer: str = "json"
    celery_accept_content: List[str] = ["json"]
    celery_timezone: str = "UTC"
    celery_enable_utc: bool = True

    # Notification delivery: "auto" uses Celery when a broker is configured
    notification_transport: Literal["auto", "inapp", "celery"] = "auto"

    # Webhooks
    webhook_token_hint_length: int = 6

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/data/logs"
    log_sql_requests: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_type(self) -> str:
        """Detect database type from configuration."""
        if self.postgres_url or (self.postgres_host and self.postgres_user):
            return "postgresql"
        if self.database_url.startswith(("postgresql", "postgres")):
            return "postgresql"
        return "sqlite"

    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL based on configuration hierarchy."""
        # Priority 1: Explicit PostgreSQL URL
        if self.postgres_url:
            return self.postgres_url

        # Priority 2: PostgreSQL components (Docker environment)
        if self.postgres_host and self.postgres_user and self.postgres_db:
            password = self.postgres_password or ""
            port = self.postgres_port or 5432
            return f"postgresql://{self.postgres_user}:{password}@{self.postgres_host}:{port}/{self.postgres_db}"

        # Priority 3: Primary database URL (defaults to SQLite)
        return self.database_url

    @property
    def use_celery_transport(self) -> bool:
        """Whether notifications are handed to Celery instead of written inline."""
        if self.notification_transport == "celery":
            return True
        if self.notification_transport == "inapp":
            return False
        return bool(self.celery_broker_url)

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v: str, info: ValidationInfo) -> str:
        """Validate SECRET_KEY is set and secure."""
        if not v:
            env = info.data.get('environment', 'development')
            if env == 'production':
                raise ValueError(
                    "SECRET_KEY must be set in production! "
                    "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
                )
            logger.warning(
                "SECRET_KEY not set! Using auto-generated key for development. "
                "This key will change on restart. Set SECRET_KEY in .env for persistence."
            )
            return secrets.token_urlsafe(32)

        if v == _INSECURE_DEFAULT_SECRET:
            logger.warning(
                "Using insecure default SECRET_KEY! "
                "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        elif len(v) < 32:
            logger.warning(
                f"SECRET_KEY is only {len(v)} characters long. "
                "Recommend at least 32 characters for security."
            )
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            # Comma-separated string from env
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        if isinstance(v, list):
            return v
        return []

    @field_validator('cors_origins')
    @classmethod
    def validate_cors_origins(cls, v: Optional[List[str]], info: ValidationInfo) -> List[str]:
        """Validate CORS origins for production."""
        v = v or []
        env = info.data.get('environment', 'development')
        enable_cors = info.data.get('enable_cors', False)

        if env == 'production':
            if not enable_cors:
                return []
            if not v:
                raise ValueError(
                    "CORS_ORIGINS must be configured in production! "
                    "Set to your frontend domain(s), e.g., CORS_ORIGINS=https://yourdomain.com"
                )
            if '*' in v:
                logger.error(
                    "Wildcard (*) CORS origin not allowed in production! "
                    "Specify exact domains, e.g., https://yourdomain.com"
                )
        elif enable_cors and not v:
            return ["http://localhost:3000", "http://localhost:8080"]

        return v

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str, info: ValidationInfo) -> str:
        """Validate primary database URL."""
        if not v or not v.strip():
            logger.info(
                "DATABASE_URL not provided; defaulting to SQLite at %s", DEFAULT_SQLITE_URL
            )
            return DEFAULT_SQLITE_URL

        url = v.strip()
        if url.startswith(("sqlite", "postgresql", "postgres")):
            return url

        logger.warning(
            "DATABASE_URL uses unsupported or untested dialect '%s'. Proceed with caution.",
            url.split("://", 1)[0]
        )
        return url

    @field_validator('postgres_url')
    @classmethod
    def validate_postgres_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate PostgreSQL override URL."""
        if not v or not v.strip():
            return None
        url = v.strip()
        if not url.startswith(("postgresql", "postgres")):
            raise ValueError(
                "POSTGRES_URL must be a PostgreSQL URL (postgresql:// or postgres://)"
            )
        return url

    @field_validator('webhook_token_hint_length')
    @classmethod
    def validate_hint_length(cls, v: int) -> int:
        """Validate the length of the token prefix shown in masked reads."""
        if v < 0 or v > 8:
            raise ValueError("WEBHOOK_TOKEN_HINT_LENGTH must be between 0 and 8")
        return v


settings = Settings()
