"""
GameCollectors Backend: Webhook Schemas
=======================================

What:  Request and response models for /api/webhooks.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import Field, HttpUrl

from gamecollectors.schemas.common import CamelModel, Links


class WebhookIn(CamelModel):
    """
    What:  Body of POST /api/webhooks.

    Example:
        {"type": "on-create-game", "recipientUrl": "https://example.com/hooks/games"}
    """
    type: str = Field(description="Event type to subscribe to")
    recipient_url: HttpUrl = Field(description="URL that receives the POSTed JSON payload")


class WebhookResource(CamelModel):
    id: uuid.UUID
    type: str
    recipient_url: str
    owner: str
    created_at: datetime
    href: str


class WebhookResponse(CamelModel):
    message: str
    status: int
    links: Links
    resource: WebhookResource


class WebhookListResponse(CamelModel):
    message: str
    status: int
    links: Links
    resources: List[WebhookResource]
