"""
Static catalog of supported integration types.

Each integration type declares:
- the event identifiers an administrator may allowlist, with default audiences
- where the event type lives in an inbound payload and how the sender's native
  names map onto catalog ids
- which identity services (and payload fields) carry the external actor
- how a notification title and body are derived from the payload

Design Principles:
- Read-only: nothing in the engine mutates the catalog at runtime
- Types without identity services are admin-only; user routing is skipped

Extension Points:
- Add a new IntegrationTypeDefinition and register it in CATALOG
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from hookwarden.core.exceptions import UnknownIntegrationTypeError

TEST_EVENT = "test"


@dataclass(frozen=True)
class EventDefinition:
    key: str
    label: str
    default_admin: bool = False
    default_user: bool = False


@dataclass(frozen=True)
class IntegrationTypeDefinition:
    """Catalog entry for one integration type."""
    type: str
    display_name: str
    events: Tuple[EventDefinition, ...]
    event_fields: Tuple[str, ...]
    event_aliases: Mapping[str, str] = field(default_factory=dict)
    # native name -> (boolean payload field, catalog id used when the field is true)
    conditional_aliases: Mapping[str, Tuple[str, str]] = field(default_factory=dict)
    identity_services: Tuple[str, ...] = ()
    identity_fields: Tuple[str, ...] = ()
    title_fields: Tuple[str, ...] = ()
    message_field: Optional[str] = None

    @property
    def event_ids(self) -> FrozenSet[str]:
        return frozenset(event.key for event in self.events)

    @property
    def admin_only(self) -> bool:
        return not self.identity_services

    def get_event(self, key: str) -> Optional[EventDefinition]:
        for event in self.events:
            if event.key == key:
                return event
        return None

    def default_admin_events(self) -> List[str]:
        return [event.key for event in self.events if event.default_admin]

    def default_user_events(self) -> List[str]:
        return [event.key for event in self.events if event.default_user]

    def unknown_events(self, event_ids: Iterable[str]) -> FrozenSet[str]:
        return frozenset(event_ids) - self.event_ids

    def extract_event_type(self, payload: Mapping[str, Any]) -> Optional[str]:
        """
        Map the sender's event name to a catalog id.

        Returns TEST_EVENT for test pings and None for events the catalog does
        not know about.
        """
        for path in self.event_fields:
            native = get_path(payload, path)
            if not isinstance(native, str) or not native.strip():
                continue
            native = native.strip()
            conditional = self.conditional_aliases.get(native)
            if conditional and get_path(payload, conditional[0]) is True:
                return conditional[1]
            if native in self.event_ids:
                return native
            mapped = self.event_aliases.get(native)
            if mapped:
                return mapped
        return None

    def extract_actor(self, payload: Mapping[str, Any]) -> Optional[str]:
        """First non-empty identity field in the payload, if any."""
        for path in self.identity_fields:
            value = get_path(payload, path)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def build_content(self, event_id: str, payload: Mapping[str, Any], integration_name: str) -> Tuple[str, str]:
        """Notification (title, body) for an event."""
        event = self.get_event(event_id)
        label = event.label if event else event_id

        subject = None
        for path in self.title_fields:
            value = get_path(payload, path)
            if isinstance(value, str) and value.strip():
                subject = value.strip()
                break
        title = f"{integration_name}: {subject}" if subject else f"{integration_name}: {label}"

        body = None
        if self.message_field:
            value = get_path(payload, self.message_field)
            if isinstance(value, str) and value.strip():
                body = value.strip()
        return title, body or label


def get_path(payload: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path ("request.requestedBy_username") from nested dicts."""
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _arr_events(kind: str, noun: str) -> Tuple[EventDefinition, ...]:
    """Sonarr and Radarr share an event set apart from the media-specific ones."""
    return (
        EventDefinition("grab", f"{noun} Grabbed"),
        EventDefinition("download", f"{noun} Downloaded", default_admin=True),
        EventDefinition("upgrade", f"{noun} Upgraded"),
        EventDefinition("import.complete", "Import Complete"),
        EventDefinition("rename", f"{kind.title()} Renamed"),
        EventDefinition(f"{kind}.add", f"{kind.title()} Added", default_admin=True),
        EventDefinition(f"{kind}.delete", f"{kind.title()} Deleted", default_admin=True),
        EventDefinition(f"{noun.lower()}_file.delete", f"{noun} File Deleted"),
        EventDefinition(f"{noun.lower()}_file.delete_for_upgrade", f"{noun} File Deleted for Upgrade"),
        EventDefinition("health.issue", "Health Issue", default_admin=True),
        EventDefinition("health.restored", "Health Restored", default_admin=True),
        EventDefinition("application.update", "Application Update", default_admin=True),
        EventDefinition("manual_interaction.required", "Manual Interaction Required", default_admin=True),
    )


def _arr_aliases(media_add: str, media_delete: str, kind: str, noun: str) -> Dict[str, str]:
    return {
        "Grab": "grab",
        "Download": "download",
        "Upgrade": "upgrade",
        "ImportComplete": "import.complete",
        "Rename": "rename",
        media_add: f"{kind}.add",
        media_delete: f"{kind}.delete",
        f"{noun}FileDelete": f"{noun.lower()}_file.delete",
        f"{noun}FileDeleteForUpgrade": f"{noun.lower()}_file.delete_for_upgrade",
        "Health": "health.issue",
        "HealthRestored": "health.restored",
        "ApplicationUpdate": "application.update",
        "ManualInteractionRequired": "manual_interaction.required",
        "Test": TEST_EVENT,
    }


OVERSEERR = IntegrationTypeDefinition(
    type="overseerr",
    display_name="Overseerr",
    events=(
        EventDefinition("request.pending", "Request Pending Approval", default_admin=True),
        EventDefinition("request.auto_approved", "Request Auto-Approved", default_admin=True, default_user=True),
        EventDefinition("request.approved", "Request Approved", default_admin=True, default_user=True),
        EventDefinition("request.declined", "Request Declined", default_admin=True, default_user=True),
        EventDefinition("request.available", "Media Available", default_admin=True, default_user=True),
        EventDefinition("request.failed", "Processing Failed", default_admin=True),
        EventDefinition("issue.reported", "Issue Reported", default_admin=True),
        EventDefinition("issue.comment", "Issue Comment"),
        EventDefinition("issue.resolved", "Issue Resolved", default_admin=True),
        EventDefinition("issue.reopened", "Issue Reopened"),
    ),
    event_fields=("notification_type", "event"),
    event_aliases={
        # Overseerr notification_type values
        "MEDIA_PENDING": "request.pending",
        "MEDIA_AUTO_APPROVED": "request.auto_approved",
        "MEDIA_APPROVED": "request.approved",
        "MEDIA_DECLINED": "request.declined",
        "MEDIA_AVAILABLE": "request.available",
        "MEDIA_FAILED": "request.failed",
        "ISSUE_CREATED": "issue.reported",
        "ISSUE_COMMENT": "issue.comment",
        "ISSUE_RESOLVED": "issue.resolved",
        "ISSUE_REOPENED": "issue.reopened",
        "TEST_NOTIFICATION": TEST_EVENT,
        # Dotted names used by custom webhook templates
        "media.pending": "request.pending",
        "media.auto_approved": "request.auto_approved",
        "media.approved": "request.approved",
        "media.declined": "request.declined",
        "media.available": "request.available",
        "media.failed": "request.failed",
        "issue.created": "issue.reported",
        "test": TEST_EVENT,
        "Test Notification": TEST_EVENT,
    },
    identity_services=("overseerr", "plex"),
    identity_fields=(
        "request.requestedBy_username",
        "issue.reportedBy_username",
        "comment.commentedBy_username",
    ),
    title_fields=("subject",),
    message_field="message",
)

SONARR = IntegrationTypeDefinition(
    type="sonarr",
    display_name="Sonarr",
    events=_arr_events("series", "Episode"),
    event_fields=("eventType",),
    event_aliases=_arr_aliases("SeriesAdd", "SeriesDelete", "series", "Episode"),
    conditional_aliases={"Health": ("isHealthRestored", "health.restored")},
    title_fields=("series.title",),
    message_field="message",
)

RADARR = IntegrationTypeDefinition(
    type="radarr",
    display_name="Radarr",
    events=_arr_events("movie", "Movie"),
    event_fields=("eventType",),
    event_aliases=_arr_aliases("MovieAdded", "MovieDelete", "movie", "Movie"),
    conditional_aliases={"Health": ("isHealthRestored", "health.restored")},
    title_fields=("movie.title",),
    message_field="message",
)

CATALOG: Dict[str, IntegrationTypeDefinition] = {
    definition.type: definition for definition in (OVERSEERR, SONARR, RADARR)
}


def get_definition(integration_type: str) -> IntegrationTypeDefinition:
    """Look up a catalog entry, raising for unknown types."""
    try:
        return CATALOG[integration_type]
    except KeyError:
        raise UnknownIntegrationTypeError(
            f"Unknown integration type '{integration_type}'. "
            f"Supported: {', '.join(sorted(CATALOG))}"
        ) from None
