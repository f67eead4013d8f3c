"""
GameCollectors Backend: Game Ad Schemas
=======================================

What:  Request and response models for /api/games.
How:   JSON keys are camelCase (`gameTitle`, `imageUrl`, ...), matching the
       payloads webhook recipients receive.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from gamecollectors.schemas.common import CamelModel, Links


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class GameIn(CamelModel):
    """
    What:  Body of POST /api/games and PUT /api/games/{console}/{slug}.
    How:   PUT replaces the whole ad, so both share one model.

    `console` accepts aliases ("Super Nintendo", "psx"); the service maps it
    to the canonical code before the identifier is allocated.
    """
    game_title: str = Field(min_length=1, max_length=1000, description="Title of the game")
    console: str = Field(min_length=1, max_length=1000, description="Console code or common name")
    condition: int = Field(ge=1, le=5, description="1 (poor) to 5 (mint)")
    image_url: str = Field(min_length=4, max_length=1000, description="Picture of the item")
    price: float = Field(ge=0.01, le=10_000_000_000, description="Asking price")
    city: Optional[str] = Field(default=None, max_length=1000)
    description: Optional[str] = Field(default=None, max_length=1000)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class GameResource(CamelModel):
    """
    What:  Public representation of one game ad.
    Who:   Embedded in every games response and in webhook payloads.
    """
    resource_id: str = Field(description="Unique identifier: <console>/<slug>[(n)]")
    game_title: str
    console: str
    condition: int
    image_url: str
    city: Optional[str] = None
    price: float
    description: Optional[str] = None
    owner: str = Field(description="Identity of the user who posted the ad")
    created_at: Optional[datetime] = None
    href: str = Field(description="Absolute URL of this ad")


class GameResponse(CamelModel):
    message: Optional[str] = None
    status: int
    links: Links
    resource: GameResource


class GameListResponse(CamelModel):
    message: str
    status: int
    links: Links
    resources: List[GameResource]
