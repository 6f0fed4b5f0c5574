"""
User directory service: user lookup, group membership and administrator status.
"""
import uuid
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import StorageError, UserAlreadyExistsError, UserNotFoundError
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.models.enums import UserRole
from hookwarden.models.user import User


@dataclass(frozen=True)
class Principal:
    """The identity an access decision is made for."""
    user_id: uuid.UUID
    group_id: Optional[str] = None
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(user_id=user.id, group_id=user.group_id, is_admin=user.is_admin)


def _coerce_uuid(user_id: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except (TypeError, ValueError):
        return None


class UserService:
    """User service class."""

    def __init__(self, session: Session):
        self.session = session

    def get_user_by_id(self, user_id: Union[str, uuid.UUID]) -> Optional[User]:
        """Get user by ID."""
        user_uuid = _coerce_uuid(user_id)
        if user_uuid is None:
            return None
        return self.session.get(User, user_uuid)

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username (case-insensitive)."""
        normalized = (username or "").strip().lower()
        if not normalized:
            return None
        return self.session.exec(select(User).where(User.username == normalized)).first()

    def require_user(self, user_id: Union[str, uuid.UUID]) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User '{user_id}' not found")
        return user

    def list_active_admins(self) -> List[User]:
        """All active administrators, oldest first."""
        statement = (
            select(User)
            .where(User.role == UserRole.ADMIN, User.is_active == True)  # noqa: E712
            .order_by(User.created_at)
        )
        return list(self.session.exec(statement).all())

    def create_user(
        self,
        username: str,
        role: UserRole = UserRole.USER,
        group_id: Optional[str] = None,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> User:
        """Create a directory entry. Usernames are stored lowercase."""
        user = User(
            username=username.strip().lower(),
            role=role,
            group_id=group_id,
            email=email.strip().lower() if email else None,
            display_name=display_name,
        )
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except IntegrityError as exc:
            self.session.rollback()
            raise UserAlreadyExistsError(f"User '{user.username}' already exists") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, username=user.username)
            raise StorageError("Failed to create user") from exc

        log_info(f"User created: {user.username}", user_id=str(user.id), role=role.value)
        return user

    def principal_for(self, user_id: Union[str, uuid.UUID]) -> Principal:
        return Principal.from_user(self.require_user(user_id))
