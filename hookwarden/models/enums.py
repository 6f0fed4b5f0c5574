"""
Enums and constants for the application.
"""
from enum import Enum


class UserRole(str, Enum):
    """User roles for authorization."""
    ADMIN = "admin"
    USER = "user"


class ShareMode(str, Enum):
    """Which variant of a share rule is active for an integration."""
    NONE = "none"
    EVERYONE = "everyone"
    GROUPS = "groups"
    USERS = "users"


class LinkMethod(str, Enum):
    """How an identity link was established."""
    SSO = "sso"  # system-managed, written on SSO login
    MANUAL = "manual"


class NotificationType(str, Enum):
    """Severity shown for an in-app notification."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
