"""
Linked external account endpoints.

Users manage their own manual links. Links created by single sign-on are
read-only for the user; administrators can remove any link.
"""
import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from hookwarden.api.dependencies import get_current_admin_user, get_current_user
from hookwarden.core.database import get_session
from hookwarden.core.exceptions import (
    IdentityLinkLockedError,
    IdentityLinkNotFoundError,
    StorageError,
    UnauthorizedError,
    UserNotFoundError,
)
from hookwarden.core.logging_config import log_user_action
from hookwarden.models.enums import LinkMethod
from hookwarden.models.user import User
from hookwarden.schemas.identity_link import IdentityLinkResponse, IdentityLinkUpdate
from hookwarden.services.identity_link_service import IdentityLinkService
from hookwarden.services.user_service import Principal, UserService

router = APIRouter(tags=["linked-accounts"])


def _unlink(session: Session, user_id: uuid.UUID, service: str, actor: Principal) -> None:
    try:
        IdentityLinkService(session).unlink(user_id, service, actor=actor)
    except IdentityLinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (UnauthorizedError, IdentityLinkLockedError) as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e


@router.get("/linked-accounts", response_model=List[IdentityLinkResponse])
async def list_linked_accounts(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    links = IdentityLinkService(session).list_links(current_user.id)
    return [IdentityLinkResponse.from_model(link) for link in links]


@router.put(
    "/linked-accounts/{service}",
    response_model=IdentityLinkResponse,
    responses={403: {"description": "Link is managed by single sign-on"}},
)
async def set_linked_account(
    service: str,
    data: IdentityLinkUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        link = IdentityLinkService(session).link(
            current_user.id,
            service,
            data.external_username,
            method=LinkMethod.MANUAL,
            external_email=data.external_email,
        )
    except IdentityLinkLockedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    log_user_action(current_user.username, f"linked {link.service} account")
    return IdentityLinkResponse.from_model(link)


@router.delete(
    "/linked-accounts/{service}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Link is managed by single sign-on"},
        404: {"description": "No link for this service"},
    }
)
async def delete_linked_account(
    service: str,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session)],
):
    _unlink(session, current_user.id, service, Principal.from_user(current_user))
    log_user_action(current_user.username, f"unlinked {service} account")


@router.delete(
    "/admin/users/{user_id}/linked-accounts/{service}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Admin access required"},
        404: {"description": "User or link not found"},
    }
)
async def admin_delete_linked_account(
    user_id: uuid.UUID,
    service: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    session: Annotated[Session, Depends(get_session)],
):
    try:
        UserService(session).require_user(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    _unlink(session, user_id, service, Principal.from_user(admin))
    log_user_action(admin.username, f"removed {service} link of user {user_id}")
