"""
Routing tests for NotificationRouter using a recording transport.
"""
from dataclasses import dataclass

from sqlmodel import Session, select

from hookwarden.models.enums import NotificationType, UserRole
from hookwarden.models.integration import WebhookCredential
from hookwarden.models.notification import Notification, UserIntegrationSetting, UserNotificationSettings
from hookwarden.models.user import User
from hookwarden.services.event_allowlist_service import EventAllowlistService
from hookwarden.services.dispatch import InAppDispatchTransport
from hookwarden.services.identity_link_service import IdentityLinkService, ResolutionStatus
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.notification_router import InboundEvent, NotificationRouter, RoutingStatus
from hookwarden.services.share_service import ShareRule, ShareService
from hookwarden.services.subscription_service import SubscriptionService
from hookwarden.services.user_service import UserService
from hookwarden.services.webhook_token_service import WebhookTokenService


@dataclass
class World:
    session: Session
    admin: User
    alice: User
    token: str


def _available_payload(actor="Alice_O"):
    payload = {
        "notification_type": "MEDIA_AVAILABLE",
        "subject": "Dune",
        "message": "Dune is now available",
    }
    if actor is not None:
        payload["request"] = {"requestedBy_username": actor}
    return payload


def _world(session) -> World:
    """Overseerr shared with the family group; alice is linked and subscribed."""
    IntegrationService(session).create_integration("overseerr")
    ShareService(session).set_rule("overseerr", ShareRule.groups(["family"]))
    users = UserService(session)
    admin = users.create_user("root", role=UserRole.ADMIN)
    alice = users.create_user("alice", group_id="family")
    IdentityLinkService(session).link(alice.id, "overseerr", "alice_o")
    SubscriptionService(session).set_integration_setting(alice, "overseerr", True, ["request.available"])
    token = WebhookTokenService(session).issue("overseerr").token
    return World(session=session, admin=admin, alice=alice, token=token)


def _route(world, transport, payload, token=None):
    router = NotificationRouter(world.session, transport)
    return router.handle_webhook("overseerr", token or world.token, payload)


class TestAuthentication:
    def test_invalid_token_is_rejected_without_side_effects(self, session, transport):
        world = _world(session)

        outcome = _route(world, transport, _available_payload(), token="wrong-token")

        assert outcome.status == RoutingStatus.REJECTED
        assert outcome.notifications_sent == 0
        assert transport.messages == []

    def test_rejected_webhook_leaves_stored_state_untouched(self, session):
        world = _world(session)

        def snapshot():
            session.expire_all()
            credential = session.exec(select(WebhookCredential)).one()
            return (
                len(session.exec(select(Notification)).all()),
                len(session.exec(select(UserNotificationSettings)).all()),
                [(s.enabled, sorted(s.events)) for s in session.exec(select(UserIntegrationSetting)).all()],
                (credential.token_hash, credential.is_enabled, credential.issued_at),
            )

        before = snapshot()
        outcome = _route(world, InAppDispatchTransport(session), _available_payload(), token="wrong-token")

        assert outcome.status == RoutingStatus.REJECTED
        assert snapshot() == before
        assert before[0] == 0

    def test_missing_token_is_rejected(self, session, transport):
        world = _world(session)

        outcome = NotificationRouter(session, transport).handle_webhook("overseerr", None, _available_payload())

        assert outcome.status == RoutingStatus.REJECTED
        assert transport.messages == []

    def test_unknown_integration_is_rejected(self, session, transport):
        world = _world(session)

        outcome = NotificationRouter(session, transport).handle_webhook("sonarr", world.token, {})

        assert outcome.status == RoutingStatus.REJECTED


class TestMatchedRouting:
    def test_available_event_reaches_admin_and_requester(self, session, transport):
        world = _world(session)

        outcome = _route(world, transport, _available_payload())

        assert outcome.status == RoutingStatus.PROCESSED
        assert outcome.event_type == "request.available"
        assert outcome.resolution == ResolutionStatus.MATCHED
        assert outcome.admin_recipients == [world.admin.id]
        assert outcome.user_recipients == [world.alice.id]
        assert outcome.unmatched_recipients == []
        assert outcome.notifications_sent == 2

        personal = [m for m in transport.messages if m.recipient_id == world.alice.id]
        assert len(personal) == 1
        assert personal[0].title == "Overseerr: Dune"
        assert personal[0].body == "Dune is now available"
        assert personal[0].metadata["personal"] is True

    def test_user_not_subscribed_to_event_gets_nothing_and_no_fallback(self, session, transport):
        world = _world(session)
        EventAllowlistService(session).set_user_events("overseerr", ["request.available", "request.approved"])

        payload = _available_payload()
        payload["notification_type"] = "MEDIA_APPROVED"
        outcome = _route(world, transport, payload)

        assert outcome.resolution == ResolutionStatus.MATCHED
        assert outcome.user_recipients == []
        assert outcome.unmatched_recipients == []
        assert transport.recipients() == [world.admin.id]

    def test_user_with_notifications_disabled_gets_nothing(self, session, transport):
        world = _world(session)
        SubscriptionService(session).update_settings(world.alice.id, enabled=False)

        outcome = _route(world, transport, _available_payload())

        assert outcome.user_recipients == []
        assert outcome.unmatched_recipients == []

    def test_user_no_longer_shared_gets_nothing(self, session, transport):
        world = _world(session)
        ShareService(session).set_rule("overseerr", ShareRule.none())

        outcome = _route(world, transport, _available_payload())

        assert outcome.user_recipients == []

    def test_inactive_matched_user_gets_nothing(self, session, transport):
        world = _world(session)
        world.alice.is_active = False
        session.add(world.alice)
        session.commit()

        outcome = _route(world, transport, _available_payload())

        assert outcome.resolution == ResolutionStatus.MATCHED
        assert outcome.user_recipients == []
        assert outcome.unmatched_recipients == []

    def test_event_outside_user_events_skips_user_routing(self, session, transport):
        world = _world(session)
        EventAllowlistService(session).set_user_events("overseerr", [])

        outcome = _route(world, transport, _available_payload())

        assert outcome.resolution is None
        assert outcome.admin_recipients == [world.admin.id]
        assert outcome.user_recipients == []

    def test_match_through_second_identity_service(self, session, transport):
        world = _world(session)
        bob = UserService(session).create_user("bob", group_id="family")
        IdentityLinkService(session).link(bob.id, "plex", "BobPlex")
        SubscriptionService(session).set_integration_setting(bob, "overseerr", True, ["request.available"])

        outcome = _route(world, transport, _available_payload(actor="bobplex"))

        assert outcome.user_recipients == [bob.id]


class TestUnmatchedRouting:
    def test_unknown_actor_goes_to_admins_with_prefix(self, session, transport):
        world = _world(session)

        outcome = _route(world, transport, _available_payload(actor="stranger"))

        assert outcome.resolution == ResolutionStatus.UNMATCHED
        assert outcome.unmatched_recipients == [world.admin.id]
        unmatched = [m for m in transport.messages if m.metadata.get("unmatched")]
        assert len(unmatched) == 1
        assert unmatched[0].title == "[Unmatched] Overseerr: Dune"
        assert unmatched[0].body.startswith("From: stranger\n")

    def test_missing_actor_is_unmatched(self, session, transport):
        world = _world(session)

        outcome = _route(world, transport, _available_payload(actor=None))

        assert outcome.resolution == ResolutionStatus.UNMATCHED
        unmatched = [m for m in transport.messages if m.metadata.get("unmatched")]
        assert unmatched[0].body.startswith("From: unknown\n")

    def test_ambiguous_actor_is_never_guessed(self, session, transport):
        world = _world(session)
        bob = UserService(session).create_user("bob", group_id="family")
        IdentityLinkService(session).link(bob.id, "overseerr", "ALICE_O")
        SubscriptionService(session).set_integration_setting(bob, "overseerr", True, ["request.available"])

        outcome = _route(world, transport, _available_payload())

        assert outcome.resolution == ResolutionStatus.AMBIGUOUS
        assert outcome.user_recipients == []
        assert outcome.unmatched_recipients == [world.admin.id]

    def test_unknown_actor_with_no_audience_sends_nothing(self, session, transport):
        world = _world(session)
        EventAllowlistService(session).set_admin_events("overseerr", ["request.pending"])
        SubscriptionService(session).update_settings(world.admin.id, receive_unmatched=False)

        outcome = _route(world, transport, _available_payload(actor="bob"))

        assert outcome.status == RoutingStatus.PROCESSED
        assert outcome.resolution == ResolutionStatus.UNMATCHED
        assert outcome.notifications_sent == 0
        assert transport.messages == []

    def test_ambiguous_actor_falls_back_once_per_opted_in_admin(self, session, transport):
        world = _world(session)
        second = UserService(session).create_user("second-admin", role=UserRole.ADMIN)
        bob = UserService(session).create_user("bob", group_id="family")
        IdentityLinkService(session).link(bob.id, "overseerr", "ALICE_O")

        outcome = _route(world, transport, _available_payload())

        assert outcome.resolution == ResolutionStatus.AMBIGUOUS
        assert outcome.user_recipients == []
        assert set(outcome.unmatched_recipients) == {world.admin.id, second.id}
        unmatched = [m.recipient_id for m in transport.messages if m.metadata.get("unmatched")]
        assert sorted(unmatched, key=str) == sorted([world.admin.id, second.id], key=str)

    def test_admin_opted_out_of_unmatched(self, session, transport):
        world = _world(session)
        SubscriptionService(session).update_settings(world.admin.id, receive_unmatched=False)

        outcome = _route(world, transport, _available_payload(actor="stranger"))

        assert outcome.admin_recipients == [world.admin.id]
        assert outcome.unmatched_recipients == []

    def test_unmatched_only_when_event_is_user_selectable(self, session, transport):
        world = _world(session)

        payload = _available_payload(actor="stranger")
        payload["notification_type"] = "MEDIA_PENDING"
        outcome = _route(world, transport, payload)

        assert outcome.event_type == "request.pending"
        assert outcome.unmatched_recipients == []
        assert outcome.admin_recipients == [world.admin.id]


class TestAdminRouting:
    def test_admin_with_notifications_disabled_gets_nothing(self, session, transport):
        world = _world(session)
        SubscriptionService(session).update_settings(world.admin.id, enabled=False)

        outcome = _route(world, transport, _available_payload(actor="stranger"))

        assert outcome.admin_recipients == []
        assert outcome.unmatched_recipients == []

    def test_event_outside_admin_events_skips_admins(self, session, transport):
        world = _world(session)
        EventAllowlistService(session).set_admin_events("overseerr", [])

        outcome = _route(world, transport, _available_payload())

        assert outcome.admin_recipients == []
        assert outcome.user_recipients == [world.alice.id]

    def test_every_active_admin_is_notified(self, session, transport):
        world = _world(session)
        second = UserService(session).create_user("second-admin", role=UserRole.ADMIN)

        outcome = _route(world, transport, _available_payload())

        assert set(outcome.admin_recipients) == {world.admin.id, second.id}

    def test_admin_only_type_skips_user_routing(self, session, transport):
        world = _world(session)
        IntegrationService(session).create_integration("radarr")
        EventAllowlistService(session).set_user_events("radarr", ["download"])
        token = WebhookTokenService(session).issue("radarr").token

        outcome = NotificationRouter(session, transport).handle_webhook(
            "radarr", token, {"eventType": "Download", "movie": {"title": "Dune"}}
        )

        assert outcome.event_type == "download"
        assert outcome.admin_recipients == [world.admin.id]
        assert outcome.resolution is None
        assert outcome.unmatched_recipients == []
        assert transport.messages[0].title == "Radarr: Dune"


class TestSpecialEvents:
    def test_unknown_event_is_ignored(self, session, transport):
        world = _world(session)

        outcome = _route(world, transport, {"notification_type": "SOMETHING_NEW"})

        assert outcome.status == RoutingStatus.IGNORED
        assert transport.messages == []

    def test_test_event_reaches_all_active_admins(self, session, transport):
        world = _world(session)
        SubscriptionService(session).update_settings(world.admin.id, enabled=False)

        outcome = _route(world, transport, {"notification_type": "TEST_NOTIFICATION"})

        assert outcome.status == RoutingStatus.PROCESSED
        assert outcome.test_recipients == [world.admin.id]
        assert transport.messages[0].title.startswith("[Test] ")
        assert transport.messages[0].type == NotificationType.SUCCESS

    def test_process_routes_parsed_event(self, session, transport):
        world = _world(session)
        event = InboundEvent(
            integration_id="overseerr",
            event_type="request.available",
            external_actor="alice_o",
            payload={"subject": "Dune"},
        )

        outcome = NotificationRouter(session, transport).process(event, world.token)

        assert outcome.user_recipients == [world.alice.id]
        assert outcome.admin_recipients == [world.admin.id]

    def test_repeated_event_is_routed_again(self, session, transport):
        world = _world(session)

        _route(world, transport, _available_payload())
        _route(world, transport, _available_payload())

        assert len(transport.messages) == 4
