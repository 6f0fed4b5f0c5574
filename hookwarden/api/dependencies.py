"""
Shared API dependencies.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError
from sqlmodel import Session

from hookwarden.core.database import get_session
from hookwarden.core.security import verify_token
from hookwarden.middleware.request_logging import request_id_ctx
from hookwarden.models.enums import UserRole
from hookwarden.models.user import User
from hookwarden.services.dispatch import DispatchTransport, get_dispatch_transport
from hookwarden.services.user_service import Principal, UserService

logger = logging.getLogger(__name__)

# Tokens come from the dashboard's auth service or `hookwarden-admin users token`; this only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


def get_request_id() -> str:
    """
    Dependency to get the current request ID from context.

    Returns:
        The current request ID, or 'unknown' if not in a request context.
    """
    return request_id_ctx.get()


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: Annotated[Session, Depends(get_session)],
) -> User:
    """
    Dependency to get the current authenticated user from the token.
    Raises HTTPException with status 401 if authentication fails.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    try:
        payload = verify_token(token, "access")
        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise credentials_exception
    except ExpiredSignatureError:
        logger.info("Expired token presented")
        raise credentials_exception
    except JWTError as e:
        logger.warning("JWT error during token validation", extra={"error": str(e)})
        raise credentials_exception

    user = UserService(session).get_user_by_id(user_id)
    if user is None:
        raise credentials_exception

    if not user.is_active:
        logger.info("Inactive user access attempt", extra={"user_id": user_id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )
    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Dependency to verify that the current user is an admin.
    Raises HTTPException with status 403 if user is not an admin.
    """
    if current_user.role != UserRole.ADMIN:
        logger.warning(
            "Non-admin user attempted to access admin endpoint",
            extra={"user_id": str(current_user.id)}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def get_current_principal(
    current_user: Annotated[User, Depends(get_current_user)]
) -> Principal:
    return Principal.from_user(current_user)


def get_transport(
    session: Annotated[Session, Depends(get_session)]
) -> DispatchTransport:
    return get_dispatch_transport(session)


