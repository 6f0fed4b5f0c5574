"""
User subscription store: global notification switches and per-integration
event selections.
"""
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import InvalidEventError, StorageError
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.models.integration import Integration
from hookwarden.models.notification import UserIntegrationSetting, UserNotificationSettings
from hookwarden.models.user import User
from hookwarden.services.event_allowlist_service import EventAllowlistService
from hookwarden.services.integration_service import require_integration
from hookwarden.services.share_service import ShareService
from hookwarden.services.user_service import Principal


class SubscriptionService:
    """Reads and writes what each user wants to be notified about."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Global settings
    # ------------------------------------------------------------------

    def get_settings(self, user_id: uuid.UUID) -> UserNotificationSettings:
        """Stored settings, or unsaved defaults when the user never changed them."""
        settings = self.session.exec(
            select(UserNotificationSettings).where(UserNotificationSettings.user_id == user_id)
        ).first()
        return settings or UserNotificationSettings(user_id=user_id)

    def get_settings_for_users(self, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, UserNotificationSettings]:
        ids = list(user_ids)
        if not ids:
            return {}
        rows = self.session.exec(
            select(UserNotificationSettings).where(UserNotificationSettings.user_id.in_(ids))
        ).all()
        found = {row.user_id: row for row in rows}
        return {user_id: found.get(user_id) or UserNotificationSettings(user_id=user_id) for user_id in ids}

    def update_settings(
        self,
        user_id: uuid.UUID,
        enabled: Optional[bool] = None,
        sound: Optional[bool] = None,
        receive_unmatched: Optional[bool] = None,
    ) -> UserNotificationSettings:
        settings = self.get_settings(user_id)
        if enabled is not None:
            settings.enabled = enabled
        if sound is not None:
            settings.sound = sound
        if receive_unmatched is not None:
            settings.receive_unmatched = receive_unmatched
        self._save(settings, user_id=str(user_id))
        return settings

    # ------------------------------------------------------------------
    # Per-integration subscriptions
    # ------------------------------------------------------------------

    def get_integration_setting(self, user_id: uuid.UUID, integration_id: str) -> Optional[UserIntegrationSetting]:
        return self.session.exec(
            select(UserIntegrationSetting).where(
                UserIntegrationSetting.user_id == user_id,
                UserIntegrationSetting.integration_id == integration_id,
            )
        ).first()

    def list_integration_settings(self, user_id: uuid.UUID) -> List[UserIntegrationSetting]:
        return list(self.session.exec(
            select(UserIntegrationSetting)
            .where(UserIntegrationSetting.user_id == user_id)
            .order_by(UserIntegrationSetting.integration_id)
        ).all())

    def set_integration_setting(
        self,
        user: User,
        integration_id: str,
        enabled: bool,
        events: Iterable[str],
    ) -> UserIntegrationSetting:
        """
        Store a user's subscription to an integration.

        Selected events must currently be allowed for the user (user_events of a
        visible integration, or admin_events for administrators).
        """
        integration = require_integration(self.session, integration_id)
        requested = frozenset(str(e).strip() for e in events)
        allowed = EventAllowlistService.effective_events_for_integration(integration, Principal.from_user(user))
        not_allowed = requested - allowed
        if not_allowed:
            raise InvalidEventError(not_allowed, integration.integration_type)

        setting = self.get_integration_setting(user.id, integration_id)
        if setting is None:
            setting = UserIntegrationSetting(user_id=user.id, integration_id=integration_id)
        setting.enabled = enabled
        setting.events = sorted(requested)
        self._save(setting, user_id=str(user.id), integration_id=integration_id)

        log_info(
            f"Subscription updated for {integration_id}",
            user_id=str(user.id),
            enabled=enabled,
            events=len(requested),
        )
        return setting

    def active_events(self, setting: Optional[UserIntegrationSetting], integration: Integration) -> frozenset:
        """Selected events still inside the integration's user_events."""
        if setting is None or not setting.enabled:
            return frozenset()
        return frozenset(setting.events or []) & frozenset(integration.user_events or [])

    def is_subscribed(self, user: User, integration: Integration, event_type: str) -> bool:
        """
        Whether a user should receive a personalized notification for an event.

        Requires an active account, global notifications on, the integration shared
        with the user, an enabled subscription and the event both selected and
        still present in user_events.
        """
        if not user.is_active:
            return False
        if not self.get_settings(user.id).enabled:
            return False
        if not ShareService.is_integration_visible(integration, Principal.from_user(user)):
            return False
        setting = self.get_integration_setting(user.id, integration.id)
        return event_type in self.active_events(setting, integration)

    def _save(self, row, **context) -> None:
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except IntegrityError as exc:
            # Concurrent first write for the same key
            self.session.rollback()
            log_error(exc, **context)
            raise StorageError("Conflicting notification settings write, retry the request") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, **context)
            raise StorageError("Failed to save notification settings") from exc
