"""
Integration type definitions for services that send webhooks.

Architecture:
- hookwarden/models/integration.py: Database models for configured integrations
- catalog.py: Per-type event catalog, payload field mapping and identity services

Design Principles:
- The catalog is static and read-only
- Integration rows reference a catalog entry through integration_type
"""
from hookwarden.integrations.catalog import CATALOG, TEST_EVENT, get_definition

__all__ = [
    "CATALOG",
    "TEST_EVENT",
    "get_definition",
]
