"""
Custom application exceptions.
"""
from typing import Iterable


class HookwardenException(Exception):
    """Base exception for the notification engine."""
    pass


class NotFoundError(HookwardenException):
    """Raised when a referenced integration, user or record does not exist."""
    pass


class IntegrationNotFoundError(NotFoundError):
    """Raised when an integration is not found."""

    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Integration '{integration_id}' not found")


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""
    pass


class IdentityLinkNotFoundError(NotFoundError):
    """Raised when a user has no identity link for a service."""
    pass


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found."""
    pass


class IntegrationAlreadyExistsError(HookwardenException):
    """Raised when an integration id is already taken."""
    pass


class UnknownIntegrationTypeError(HookwardenException):
    """Raised when an integration type has no catalog entry."""
    pass


class InvalidEventError(HookwardenException):
    """Raised when event ids fall outside an integration's catalog."""

    def __init__(self, event_ids: Iterable[str], integration_type: str = ""):
        self.event_ids = sorted(set(event_ids))
        self.integration_type = integration_type
        target = f" for '{integration_type}'" if integration_type else ""
        super().__init__(f"Unknown event id(s){target}: {', '.join(self.event_ids)}")


class UnauthorizedError(HookwardenException):
    """Raised when a caller is not allowed to perform an action."""
    pass


class AmbiguousIdentityError(HookwardenException):
    """Raised internally when an external username maps to more than one user."""
    pass


class IdentityLinkLockedError(HookwardenException):
    """Raised when a manual change targets an SSO-managed identity link."""
    pass


class StorageError(HookwardenException):
    """Raised when the persistence layer is unavailable."""
    pass


class UserAlreadyExistsError(HookwardenException):
    """Raised when a username is already taken."""
    pass
