"""
Security utilities: JWT access tokens and opaque webhook tokens.
"""
import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from hookwarden.core.config import settings
from hookwarden.core.time_utils import utc_now

# 32 random bytes -> 256 bits of entropy, 43 urlsafe characters
WEBHOOK_TOKEN_BYTES = 32


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """Create a signed access token for a user id."""
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode: Dict[str, Any] = {"sub": subject, "exp": expire, "type": "access", **claims}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """
    Decode and verify a JWT.

    Raises:
        JWTError: signature, expiry or type mismatch (ExpiredSignatureError is a subclass)
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") != token_type:
        raise JWTError(f"Expected {token_type} token")
    return payload


def generate_webhook_token() -> str:
    """Generate a new opaque webhook bearer token."""
    return secrets.token_urlsafe(WEBHOOK_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Digest used to store webhook tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(presented: str, stored_hash: str) -> bool:
    """Constant-time check of a presented token against a stored digest."""
    return hmac.compare_digest(hash_token(presented), stored_hash)


def mask_token(hint: str) -> str:
    """Masked display form built from the stored prefix."""
    return f"{hint}{'*' * 12}" if hint else "*" * 12
