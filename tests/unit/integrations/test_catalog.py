import pytest

from hookwarden.core.exceptions import UnknownIntegrationTypeError
from hookwarden.integrations import CATALOG, TEST_EVENT, get_definition


class TestCatalogLookup:
    def test_supported_types(self):
        assert set(CATALOG) == {"overseerr", "sonarr", "radarr"}

    def test_unknown_type_raises(self):
        with pytest.raises(UnknownIntegrationTypeError):
            get_definition("jellyfin")

    def test_event_keys_are_unique(self):
        for definition in CATALOG.values():
            keys = [event.key for event in definition.events]
            assert len(keys) == len(set(keys)), definition.type

    def test_default_user_events_are_subset_of_catalog(self):
        for definition in CATALOG.values():
            assert set(definition.default_user_events()) <= definition.event_ids

    def test_arr_types_are_admin_only(self):
        assert get_definition("sonarr").admin_only
        assert get_definition("radarr").admin_only
        assert not get_definition("overseerr").admin_only


class TestOverseerrExtraction:
    definition = get_definition("overseerr")

    @pytest.mark.parametrize(
        "native, expected",
        [
            ("MEDIA_AVAILABLE", "request.available"),
            ("media.available", "request.available"),
            ("request.available", "request.available"),
            ("ISSUE_CREATED", "issue.reported"),
            ("TEST_NOTIFICATION", TEST_EVENT),
            ("SOMETHING_ELSE", None),
        ],
    )
    def test_event_type(self, native, expected):
        assert self.definition.extract_event_type({"notification_type": native}) == expected

    def test_event_field_fallback(self):
        assert self.definition.extract_event_type({"event": "MEDIA_APPROVED"}) == "request.approved"

    def test_missing_event_type(self):
        assert self.definition.extract_event_type({}) is None
        assert self.definition.extract_event_type({"notification_type": 42}) is None

    def test_actor_from_request_or_issue(self):
        assert self.definition.extract_actor({"request": {"requestedBy_username": " alice "}}) == "alice"
        assert self.definition.extract_actor({"issue": {"reportedBy_username": "bob"}}) == "bob"
        assert self.definition.extract_actor({"request": "not-a-dict"}) is None
        assert self.definition.extract_actor({}) is None

    def test_content_uses_subject_and_message(self):
        title, body = self.definition.build_content(
            "request.available", {"subject": "Dune", "message": "Ready to watch"}, "Overseerr"
        )
        assert title == "Overseerr: Dune"
        assert body == "Ready to watch"

    def test_content_falls_back_to_event_label(self):
        title, body = self.definition.build_content("request.available", {}, "Requests")
        assert title == "Requests: Media Available"
        assert body == "Media Available"


class TestArrExtraction:
    def test_health_restored_is_derived_from_flag(self):
        sonarr = get_definition("sonarr")
        assert sonarr.extract_event_type({"eventType": "Health"}) == "health.issue"
        assert sonarr.extract_event_type({"eventType": "Health", "isHealthRestored": True}) == "health.restored"

    def test_media_specific_aliases(self):
        assert get_definition("sonarr").extract_event_type({"eventType": "SeriesAdd"}) == "series.add"
        assert get_definition("radarr").extract_event_type({"eventType": "MovieAdded"}) == "movie.add"
        assert get_definition("radarr").extract_event_type({"eventType": "MovieFileDelete"}) == "movie_file.delete"

    def test_test_ping(self):
        assert get_definition("radarr").extract_event_type({"eventType": "Test"}) == TEST_EVENT

    def test_arr_payloads_have_no_actor(self):
        assert get_definition("sonarr").extract_actor({"eventType": "Download"}) is None
