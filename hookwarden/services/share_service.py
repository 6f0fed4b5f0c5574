"""
Share registry: which principals can see an integration.
"""
import uuid
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import StorageError
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.models.enums import ShareMode
from hookwarden.models.integration import Integration
from hookwarden.services.integration_service import require_integration
from hookwarden.services.user_service import Principal


def _normalize_user_target(value: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        return str(value).strip()


@dataclass(frozen=True)
class ShareRule:
    """
    Tagged share rule: none, everyone, a set of groups or a set of users.

    An empty groups/users rule grants nothing but is kept distinct from none.
    """
    mode: ShareMode
    targets: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if self.mode in (ShareMode.NONE, ShareMode.EVERYONE) and self.targets:
            raise ValueError(f"Share mode '{self.mode.value}' does not take targets")

    @classmethod
    def none(cls) -> "ShareRule":
        return cls(ShareMode.NONE)

    @classmethod
    def everyone(cls) -> "ShareRule":
        return cls(ShareMode.EVERYONE)

    @classmethod
    def groups(cls, group_ids: Iterable[str]) -> "ShareRule":
        return cls(ShareMode.GROUPS, frozenset(str(g).strip() for g in group_ids if str(g).strip()))

    @classmethod
    def users(cls, user_ids: Iterable[str]) -> "ShareRule":
        return cls(ShareMode.USERS, frozenset(_normalize_user_target(u) for u in user_ids))

    @classmethod
    def from_integration(cls, integration: Integration) -> "ShareRule":
        mode = ShareMode(integration.share_mode)
        if mode in (ShareMode.NONE, ShareMode.EVERYONE):
            return cls(mode)
        return cls(mode, frozenset(integration.share_targets or []))

    def grants(self, principal: Principal) -> bool:
        """Rule evaluation without the administrator override."""
        if self.mode == ShareMode.EVERYONE:
            return True
        if self.mode == ShareMode.GROUPS:
            return principal.group_id is not None and principal.group_id in self.targets
        if self.mode == ShareMode.USERS:
            return str(principal.user_id) in self.targets
        return False


class ShareService:
    """Stores share rules and answers visibility questions."""

    def __init__(self, session: Session):
        self.session = session

    def get_rule(self, integration_id: str) -> ShareRule:
        return ShareRule.from_integration(require_integration(self.session, integration_id))

    def set_rule(self, integration_id: str, rule: ShareRule) -> ShareRule:
        """Replace the share rule. Referenced groups/users are not checked against the directory."""
        integration = require_integration(self.session, integration_id)
        integration.share_mode = rule.mode.value
        integration.share_targets = sorted(rule.targets)
        try:
            self.session.add(integration)
            self.session.commit()
            self.session.refresh(integration)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to update share rule") from exc

        log_info(
            f"Share rule updated for {integration_id}",
            mode=rule.mode.value,
            targets=len(rule.targets),
        )
        return ShareRule.from_integration(integration)

    def is_visible(self, integration_id: str, principal: Principal) -> bool:
        integration = require_integration(self.session, integration_id)
        return self.is_integration_visible(integration, principal)

    @staticmethod
    def is_integration_visible(integration: Integration, principal: Principal) -> bool:
        if principal.is_admin:
            return True
        return ShareRule.from_integration(integration).grants(principal)

    def visible_integrations(self, principal: Principal) -> List[Integration]:
        integrations = self.session.exec(select(Integration).order_by(Integration.id)).all()
        return [i for i in integrations if self.is_integration_visible(i, principal)]
