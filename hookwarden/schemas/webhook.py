"""
Pydantic schemas for the inbound webhook endpoint.
"""
from typing import Optional

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    """Returned to the sender. Carries no routing detail beyond counts."""
    status: str
    event_type: Optional[str] = None
    notifications_sent: int = 0
