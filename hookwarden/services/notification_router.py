"""
Notification router: turns an authenticated inbound webhook event into
notifications for administrators and, when the actor can be identified, for
the user who triggered it.

Flow per event:
1. Authenticate the webhook token; failures stop here with no side effects.
2. Admin fan-out when the event is in admin_events.
3. User fan-out when the event is in user_events: resolve the external actor,
   notify the matched user if subscribed, otherwise fall back to administrators
   who opted into unmatched events.

The router keeps no state between events and does not deduplicate.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from sqlmodel import Session

from hookwarden.core.logging_config import log_webhook
from hookwarden.integrations.catalog import TEST_EVENT, IntegrationTypeDefinition, get_definition
from hookwarden.models.enums import NotificationType
from hookwarden.models.integration import Integration
from hookwarden.models.user import User
from hookwarden.services.dispatch import DispatchMessage, DispatchTransport
from hookwarden.services.event_allowlist_service import Allowlist
from hookwarden.services.identity_link_service import IdentityLinkService, ResolutionStatus
from hookwarden.services.subscription_service import SubscriptionService
from hookwarden.services.user_service import UserService
from hookwarden.services.webhook_token_service import WebhookTokenService

UNMATCHED_TITLE_PREFIX = "[Unmatched] "
TEST_TITLE_PREFIX = "[Test] "


class RoutingStatus(str, Enum):
    REJECTED = "rejected"
    IGNORED = "ignored"
    PROCESSED = "processed"


@dataclass(frozen=True)
class InboundEvent:
    integration_id: str
    event_type: Optional[str]
    external_actor: Optional[str] = None
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class RoutingOutcome:
    status: RoutingStatus
    event_type: Optional[str] = None
    resolution: Optional[ResolutionStatus] = None
    admin_recipients: List[uuid.UUID] = field(default_factory=list)
    user_recipients: List[uuid.UUID] = field(default_factory=list)
    unmatched_recipients: List[uuid.UUID] = field(default_factory=list)
    test_recipients: List[uuid.UUID] = field(default_factory=list)

    @property
    def notifications_sent(self) -> int:
        return (
            len(self.admin_recipients)
            + len(self.user_recipients)
            + len(self.unmatched_recipients)
            + len(self.test_recipients)
        )


class NotificationRouter:
    """Routes inbound webhook events to recipients through a dispatch transport."""

    def __init__(self, session: Session, transport: DispatchTransport):
        self.session = session
        self.transport = transport
        self.tokens = WebhookTokenService(session)
        self.users = UserService(session)
        self.identities = IdentityLinkService(session)
        self.subscriptions = SubscriptionService(session)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_webhook(self, integration_id: str, token: Optional[str], payload: Mapping[str, Any]) -> RoutingOutcome:
        """Authenticate a raw webhook body, extract event and actor, and route it."""
        if not self.tokens.validate(integration_id, token):
            log_webhook("Webhook rejected", integration_id=integration_id)
            return RoutingOutcome(RoutingStatus.REJECTED)

        integration = self.session.get(Integration, integration_id)
        definition = get_definition(integration.integration_type)
        event = InboundEvent(
            integration_id=integration_id,
            event_type=definition.extract_event_type(payload),
            external_actor=definition.extract_actor(payload),
            payload=payload,
        )
        return self._route(integration, definition, event)

    def process(self, event: InboundEvent, token: Optional[str]) -> RoutingOutcome:
        """Authenticate and route an already-parsed event."""
        if not self.tokens.validate(event.integration_id, token):
            log_webhook("Webhook rejected", integration_id=event.integration_id)
            return RoutingOutcome(RoutingStatus.REJECTED)

        integration = self.session.get(Integration, event.integration_id)
        return self._route(integration, get_definition(integration.integration_type), event)

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _route(self, integration: Integration, definition: IntegrationTypeDefinition, event: InboundEvent) -> RoutingOutcome:
        event_type = event.event_type
        if event_type == TEST_EVENT:
            return self._route_test(integration, definition, event)

        if event_type not in definition.event_ids:
            log_webhook("Webhook ignored: unknown event type", integration_id=integration.id)
            return RoutingOutcome(RoutingStatus.IGNORED, event_type=event_type)

        outcome = RoutingOutcome(RoutingStatus.PROCESSED, event_type=event_type)
        allowlist = Allowlist.from_integration(integration)
        title, body = definition.build_content(event_type, event.payload, integration.display_name)
        metadata = {
            "integration_id": integration.id,
            "event_type": event_type,
            "external_actor": event.external_actor,
        }

        if event_type in allowlist.admin_events:
            for admin in self._admins(require_unmatched=False):
                self._enqueue(admin.id, title, body, metadata)
                outcome.admin_recipients.append(admin.id)

        if event_type in allowlist.user_events and not definition.admin_only:
            resolution = self.identities.resolve_first(definition.identity_services, event.external_actor)
            outcome.resolution = resolution.status
            if resolution.is_matched:
                user = self.users.get_user_by_id(resolution.user_id)
                if user is not None and self.subscriptions.is_subscribed(user, integration, event_type):
                    self._enqueue(user.id, title, body, {**metadata, "personal": True})
                    outcome.user_recipients.append(user.id)
            else:
                unmatched_title = f"{UNMATCHED_TITLE_PREFIX}{title}"
                unmatched_body = f"From: {event.external_actor or 'unknown'}\n{body}"
                for admin in self._admins(require_unmatched=True):
                    self._enqueue(admin.id, unmatched_title, unmatched_body, {**metadata, "unmatched": True})
                    outcome.unmatched_recipients.append(admin.id)

        log_webhook(
            "Webhook processed",
            integration_id=integration.id,
            event_type=event_type,
            resolution=outcome.resolution.value if outcome.resolution else None,
            admins=len(outcome.admin_recipients),
            users=len(outcome.user_recipients),
            unmatched=len(outcome.unmatched_recipients),
        )
        return outcome

    def _route_test(self, integration: Integration, definition: IntegrationTypeDefinition, event: InboundEvent) -> RoutingOutcome:
        """Test pings go to every active administrator regardless of preferences."""
        outcome = RoutingOutcome(RoutingStatus.PROCESSED, event_type=TEST_EVENT)
        title, _ = definition.build_content(TEST_EVENT, event.payload, integration.display_name)
        for admin in self.users.list_active_admins():
            self._enqueue(
                admin.id,
                f"{TEST_TITLE_PREFIX}{title}",
                "Test notification received successfully!",
                {"integration_id": integration.id, "event_type": TEST_EVENT},
                type=NotificationType.SUCCESS,
            )
            outcome.test_recipients.append(admin.id)
        log_webhook("Webhook test delivered", integration_id=integration.id, admins=len(outcome.test_recipients))
        return outcome

    def _admins(self, require_unmatched: bool) -> List[User]:
        admins = self.users.list_active_admins()
        settings_by_user = self.subscriptions.get_settings_for_users(admin.id for admin in admins)
        selected = []
        for admin in admins:
            settings = settings_by_user[admin.id]
            if not settings.enabled:
                continue
            if require_unmatched and not settings.receive_unmatched:
                continue
            selected.append(admin)
        return selected

    def _enqueue(
        self,
        recipient_id: uuid.UUID,
        title: str,
        body: str,
        metadata: Dict[str, Any],
        type: NotificationType = NotificationType.INFO,
    ) -> None:
        self.transport.enqueue(DispatchMessage(
            recipient_id=recipient_id,
            title=title,
            body=body,
            type=type,
            metadata=metadata,
        ))
