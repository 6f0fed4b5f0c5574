"""
Webhook token manager.

One bearer token per integration gates inbound webhooks. Only a SHA-256 digest
and a short prefix are persisted, so the full token is shown exactly once, when
it is issued.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.config import settings
from hookwarden.core.exceptions import StorageError
from hookwarden.core.logging_config import LogCategory, log_error, log_info
from hookwarden.core.security import generate_webhook_token, hash_token, mask_token, token_matches
from hookwarden.core.time_utils import ensure_utc, utc_now
from hookwarden.models.integration import Integration, WebhookCredential
from hookwarden.services.integration_service import require_integration


security_logger = logging.getLogger(LogCategory.SECURITY)


@dataclass(frozen=True)
class IssuedToken:
    integration_id: str
    token: str
    masked: str
    issued_at: datetime


@dataclass(frozen=True)
class TokenInfo:
    integration_id: str
    masked: str
    is_enabled: bool
    issued_at: datetime


class WebhookTokenService:
    """Issues, rotates, revokes and validates webhook tokens."""

    def __init__(self, session: Session):
        self.session = session

    def _credential_query(self, integration_id: str, for_update: bool = False):
        statement = select(WebhookCredential).where(WebhookCredential.integration_id == integration_id)
        bind = self.session.get_bind()
        if for_update and bind is not None and bind.dialect.name != "sqlite":
            statement = statement.with_for_update()
        return statement

    def _rotate(self, integration_id: str, token_hash: str, hint: str, issued_at: datetime) -> None:
        credential = self.session.exec(self._credential_query(integration_id, for_update=True)).first()
        if credential is None:
            credential = WebhookCredential(integration_id=integration_id, token_hash=token_hash)
        credential.token_hash = token_hash
        credential.token_hint = hint
        credential.is_enabled = True
        credential.issued_at = issued_at
        self.session.add(credential)
        self.session.commit()

    def issue(self, integration_id: str) -> IssuedToken:
        """
        Generate a new token and make it the only valid one.

        The existing credential row is rewritten in place, so the old token
        stops validating in the same commit.
        """
        require_integration(self.session, integration_id)
        token = generate_webhook_token()
        hint = token[: settings.webhook_token_hint_length]
        issued_at = utc_now()

        try:
            try:
                self._rotate(integration_id, hash_token(token), hint, issued_at)
            except IntegrityError:
                # A concurrent issue created the row first; overwrite it
                self.session.rollback()
                self._rotate(integration_id, hash_token(token), hint, issued_at)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to issue webhook token") from exc

        log_info(f"Webhook token issued for {integration_id}", hint=hint)
        return IssuedToken(
            integration_id=integration_id,
            token=token,
            masked=mask_token(hint),
            issued_at=issued_at,
        )

    def validate(self, integration_id: str, presented_token: Optional[str]) -> bool:
        """
        Check a presented token. Never raises; every failure is just False.
        """
        if not integration_id or not isinstance(presented_token, str) or not presented_token:
            return False
        try:
            integration = self.session.get(Integration, integration_id)
            if integration is None or not integration.is_enabled:
                return False
            credential = self.session.exec(self._credential_query(integration_id)).first()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            return False

        if credential is None or not credential.is_enabled or not credential.token_hash:
            return False
        valid = token_matches(presented_token, credential.token_hash)
        if not valid:
            security_logger.warning("Webhook token mismatch for integration %s", integration_id)
        return valid

    def revoke(self, integration_id: str) -> None:
        """Disable the current token without issuing a replacement."""
        require_integration(self.session, integration_id)
        try:
            credential = self.session.exec(self._credential_query(integration_id, for_update=True)).first()
            if credential is None:
                return
            credential.is_enabled = False
            self.session.add(credential)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to revoke webhook token") from exc
        log_info(f"Webhook token revoked for {integration_id}")

    def describe(self, integration_id: str) -> Optional[TokenInfo]:
        """Masked view of the current credential, if any."""
        require_integration(self.session, integration_id)
        credential = self.session.exec(self._credential_query(integration_id)).first()
        if credential is None:
            return None
        return TokenInfo(
            integration_id=integration_id,
            masked=mask_token(credential.token_hint),
            is_enabled=credential.is_enabled,
            issued_at=ensure_utc(credential.issued_at),
        )
