"""
Identity link resolver.

Maps an external username, scoped to a service, onto at most one internal user.
Resolution never guesses: when the same username is linked by more than one
user the result is ambiguous, and callers route the event as unmatched.
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import (
    AmbiguousIdentityError,
    IdentityLinkLockedError,
    IdentityLinkNotFoundError,
    StorageError,
    UnauthorizedError,
)
from hookwarden.core.logging_config import log_debug, log_error, log_info
from hookwarden.core.time_utils import utc_now
from hookwarden.models.enums import LinkMethod
from hookwarden.models.identity_link import IdentityLink, normalize_external_username
from hookwarden.models.user import User
from hookwarden.services.user_service import Principal


class ResolutionStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class ResolutionResult:
    status: ResolutionStatus
    user_id: Optional[uuid.UUID] = None
    service: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.status == ResolutionStatus.MATCHED


UNMATCHED = ResolutionResult(ResolutionStatus.UNMATCHED)


def _normalize_service(service: str) -> str:
    return (service or "").strip().lower()


class IdentityLinkService:
    """Stores identity links and resolves external usernames."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _matching_user_id(self, service: str, username_key: str) -> Optional[uuid.UUID]:
        """
        The single user linked to username_key for service.

        Raises:
            AmbiguousIdentityError: more than one user holds the link
        """
        user_ids = set(self.session.exec(
            select(IdentityLink.user_id).where(
                IdentityLink.service == service,
                IdentityLink.username_key == username_key,
            )
        ).all())
        if len(user_ids) > 1:
            raise AmbiguousIdentityError(
                f"{len(user_ids)} users linked to the same {service} username"
            )
        return next(iter(user_ids), None)

    def resolve(self, service: str, external_username: Optional[str]) -> ResolutionResult:
        """Case-insensitive exact match of an external username for one service."""
        service = _normalize_service(service)
        username_key = normalize_external_username(external_username or "")
        if not service or not username_key:
            return UNMATCHED

        try:
            user_id = self._matching_user_id(service, username_key)
        except AmbiguousIdentityError as exc:
            log_info(f"Identity resolution ambiguous: {exc}", service=service)
            return ResolutionResult(ResolutionStatus.AMBIGUOUS, service=service)

        if user_id is None:
            log_debug("Identity resolution found no link", service=service)
            return ResolutionResult(ResolutionStatus.UNMATCHED, service=service)
        return ResolutionResult(ResolutionStatus.MATCHED, user_id=user_id, service=service)

    def resolve_first(self, services: Iterable[str], external_username: Optional[str]) -> ResolutionResult:
        """
        Try each service in order and stop at the first that matches or is ambiguous.

        An ambiguous service ends the search instead of falling through to a
        later service.
        """
        result = UNMATCHED
        for service in services:
            result = self.resolve(service, external_username)
            if result.status != ResolutionStatus.UNMATCHED:
                return result
        return result

    # ------------------------------------------------------------------
    # Link management
    # ------------------------------------------------------------------

    def get_link(self, user_id: uuid.UUID, service: str) -> Optional[IdentityLink]:
        return self.session.exec(
            select(IdentityLink).where(
                IdentityLink.user_id == user_id,
                IdentityLink.service == _normalize_service(service),
            )
        ).first()

    def list_links(self, user_id: uuid.UUID) -> List[IdentityLink]:
        return list(self.session.exec(
            select(IdentityLink)
            .where(IdentityLink.user_id == user_id)
            .order_by(IdentityLink.service)
        ).all())

    def link(
        self,
        user_id: uuid.UUID,
        service: str,
        external_username: str,
        method: LinkMethod = LinkMethod.MANUAL,
        external_id: Optional[str] = None,
        external_email: Optional[str] = None,
    ) -> IdentityLink:
        """
        Create or replace the user's link for a service.

        SSO links overwrite manual ones. A manual write over an SSO link raises
        IdentityLinkLockedError.
        """
        service = _normalize_service(service)
        display_username = (external_username or "").strip()
        if not service:
            raise ValueError("Service name cannot be empty")
        if not display_username:
            raise ValueError("External username cannot be empty")

        link = self.get_link(user_id, service)
        if link is not None and link.is_sso and method == LinkMethod.MANUAL:
            raise IdentityLinkLockedError(
                f"The {service} link is managed by single sign-on and cannot be edited"
            )

        if link is None:
            link = IdentityLink(user_id=user_id, service=service, external_username=display_username,
                                username_key=normalize_external_username(display_username))
        link.external_username = display_username
        link.username_key = normalize_external_username(display_username)
        link.external_id = external_id
        link.external_email = external_email.strip().lower() if external_email else None
        link.method = method.value
        link.linked_at = utc_now()

        try:
            self.session.add(link)
            self.session.commit()
            self.session.refresh(link)
        except IntegrityError as exc:
            self.session.rollback()
            log_error(exc, user_id=str(user_id), service=service)
            raise StorageError("Concurrent identity link update, retry the request") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, user_id=str(user_id), service=service)
            raise StorageError("Failed to save identity link") from exc

        log_info(
            f"Identity linked for {service}",
            user_id=str(user_id),
            method=method.value,
        )
        return link

    def link_from_sso(
        self,
        user: User,
        service: str,
        external_username: str,
        external_id: Optional[str] = None,
        external_email: Optional[str] = None,
    ) -> IdentityLink:
        """Record the identity asserted by a successful SSO login."""
        return self.link(
            user.id,
            service,
            external_username,
            method=LinkMethod.SSO,
            external_id=external_id,
            external_email=external_email or user.email,
        )

    def unlink(self, user_id: uuid.UUID, service: str, actor: Optional[Principal] = None) -> None:
        """
        Remove a user's link for a service.

        actor=None means the system itself. Manual links can be removed by their
        owner or an administrator; SSO links only by an administrator or the system.
        """
        link = self.get_link(user_id, service)
        if link is None:
            raise IdentityLinkNotFoundError(f"No {_normalize_service(service)} link for user")

        if actor is not None and not actor.is_admin:
            if actor.user_id != user_id:
                raise UnauthorizedError("Cannot remove another user's identity link")
            if link.is_sso:
                raise IdentityLinkLockedError(
                    "Single sign-on links can only be removed by an administrator"
                )

        try:
            self.session.delete(link)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, user_id=str(user_id), service=service)
            raise StorageError("Failed to remove identity link") from exc

        log_info(f"Identity unlinked for {link.service}", user_id=str(user_id))
