"""
Event allowlist: which event types administrators receive and which
non-administrators may subscribe to.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from hookwarden.core.exceptions import InvalidEventError, StorageError
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.integrations.catalog import get_definition
from hookwarden.models.integration import Integration
from hookwarden.services.integration_service import require_integration
from hookwarden.services.share_service import ShareService
from hookwarden.services.user_service import Principal


@dataclass(frozen=True)
class Allowlist:
    admin_events: FrozenSet[str]
    user_events: FrozenSet[str]

    @classmethod
    def from_integration(cls, integration: Integration) -> "Allowlist":
        return cls(
            admin_events=frozenset(integration.admin_events or []),
            user_events=frozenset(integration.user_events or []),
        )


class EventAllowlistService:
    """Admin and user event sets per integration."""

    def __init__(self, session: Session):
        self.session = session

    def get_allowlist(self, integration_id: str) -> Allowlist:
        return Allowlist.from_integration(require_integration(self.session, integration_id))

    def effective_events_for(self, integration_id: str, principal: Principal) -> FrozenSet[str]:
        integration = require_integration(self.session, integration_id)
        return self.effective_events_for_integration(integration, principal)

    @staticmethod
    def effective_events_for_integration(integration: Integration, principal: Principal) -> FrozenSet[str]:
        """Admins get admin_events; others get user_events, or nothing when not shared with them."""
        allowlist = Allowlist.from_integration(integration)
        if principal.is_admin:
            return allowlist.admin_events
        if not ShareService.is_integration_visible(integration, principal):
            return frozenset()
        return allowlist.user_events

    def set_admin_events(self, integration_id: str, events: Iterable[str]) -> Allowlist:
        return self.set_allowlist(integration_id, admin_events=events)

    def set_user_events(self, integration_id: str, events: Iterable[str]) -> Allowlist:
        """
        Replace the user-selectable events.

        Users' stored selections are left untouched; ids removed here simply stop
        counting when notifications are routed.
        """
        return self.set_allowlist(integration_id, user_events=events)

    def set_allowlist(
        self,
        integration_id: str,
        admin_events: Optional[Iterable[str]] = None,
        user_events: Optional[Iterable[str]] = None,
    ) -> Allowlist:
        """
        Replace either or both event sets in one commit.

        Every requested id is checked against the catalog before anything is
        written, so a rejected update leaves both sets as they were.
        """
        integration = require_integration(self.session, integration_id)
        definition = get_definition(integration.integration_type)

        changes: Dict[str, FrozenSet[str]] = {}
        if admin_events is not None:
            changes["admin_events"] = frozenset(str(e).strip() for e in admin_events)
        if user_events is not None:
            changes["user_events"] = frozenset(str(e).strip() for e in user_events)
        if not changes:
            return Allowlist.from_integration(integration)

        unknown = definition.unknown_events(frozenset().union(*changes.values()))
        if unknown:
            raise InvalidEventError(unknown, integration.integration_type)

        for column, requested in changes.items():
            setattr(integration, column, sorted(requested))
        try:
            self.session.add(integration)
            self.session.commit()
            self.session.refresh(integration)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError(f"Failed to update {', '.join(changes)}") from exc

        for column, requested in changes.items():
            log_info(f"Updated {column} for {integration_id}", count=len(requested))
        return Allowlist.from_integration(integration)
