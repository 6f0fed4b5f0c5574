"""
Integration lifecycle: creation with catalog defaults, lookup and cascade delete.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from hookwarden.core.exceptions import (
    IntegrationAlreadyExistsError,
    IntegrationNotFoundError,
    StorageError,
)
from hookwarden.core.logging_config import log_error, log_info
from hookwarden.integrations.catalog import get_definition
from hookwarden.models.integration import Integration


def require_integration(session: Session, integration_id: str) -> Integration:
    """Load an integration or raise IntegrationNotFoundError."""
    integration = session.get(Integration, integration_id) if integration_id else None
    if integration is None:
        raise IntegrationNotFoundError(integration_id)
    return integration


class IntegrationService:
    """Administrator-facing integration management."""

    def __init__(self, session: Session):
        self.session = session

    def get_integration(self, integration_id: str) -> Integration:
        return require_integration(self.session, integration_id)

    def list_integrations(self) -> List[Integration]:
        return list(self.session.exec(select(Integration).order_by(Integration.id)).all())

    def create_integration(
        self,
        integration_id: str,
        integration_type: Optional[str] = None,
        display_name: Optional[str] = None,
        connection: Optional[Dict[str, Any]] = None,
        is_enabled: bool = True,
    ) -> Integration:
        """
        Create an integration seeded with the catalog's default event audiences.

        The type defaults to the id ("overseerr" -> overseerr catalog entry).
        New integrations are shared with nobody.
        """
        integration_id = integration_id.strip().lower()
        definition = get_definition(integration_type or integration_id)

        if self.session.get(Integration, integration_id) is not None:
            raise IntegrationAlreadyExistsError(f"Integration '{integration_id}' already exists")

        integration = Integration(
            id=integration_id,
            integration_type=definition.type,
            display_name=display_name or definition.display_name,
            is_enabled=is_enabled,
            connection=connection or {},
            admin_events=definition.default_admin_events(),
            user_events=definition.default_user_events(),
        )
        try:
            self.session.add(integration)
            self.session.commit()
            self.session.refresh(integration)
        except IntegrityError as exc:
            self.session.rollback()
            raise IntegrationAlreadyExistsError(f"Integration '{integration_id}' already exists") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to create integration") from exc

        log_info(f"Integration created: {integration_id}", integration_type=definition.type)
        return integration

    def set_enabled(self, integration_id: str, is_enabled: bool) -> Integration:
        integration = require_integration(self.session, integration_id)
        integration.is_enabled = is_enabled
        try:
            self.session.add(integration)
            self.session.commit()
            self.session.refresh(integration)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to update integration") from exc
        return integration

    def delete_integration(self, integration_id: str) -> None:
        """
        Delete an integration together with its webhook credential and every
        user subscription that references it.
        """
        integration = require_integration(self.session, integration_id)
        try:
            # ORM cascade covers dependents; FK ON DELETE CASCADE covers rows not loaded here
            self.session.delete(integration)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, integration_id=integration_id)
            raise StorageError("Failed to delete integration") from exc

        log_info(f"Integration deleted: {integration_id}")
