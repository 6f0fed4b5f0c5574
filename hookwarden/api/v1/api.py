"""
API v1 router configuration.
"""
from fastapi import APIRouter

from hookwarden.api.v1.endpoints import health, integrations, linked_accounts, notifications, webhooks

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(integrations.router)
api_router.include_router(notifications.router)
api_router.include_router(linked_accounts.router)
api_router.include_router(webhooks.router)
