"""
GameCollectors Backend: Game SQLAlchemy Model
=============================================

What:  ORM model representing the `games` table (one row per game ad).
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by GameService for CRUD operations and by Alembic for schema management.

Table Design:
    - resource_id: `<console>/<slug>[(n)]`, UNIQUE. The slug allocator picks a
      free value before insert; the unique constraint rejects the loser when
      two requests race to the same identifier.
    - owner: opaque identity (email) of the user who posted the ad, indexed
      for the "posted by" listing.
    - console: canonical console code, indexed for the per-console listing.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from gamecollectors.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Game(Base):
    """
    A game ad posted by a user.

    Lifecycle:
        1. Created by POST /api/games; resource_id allocated once
        2. Replaced in place by PUT; resource_id kept unless re-derivation is requested
        3. Deleted by its owner
    """

    __tablename__ = "games"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    resource_id: Mapped[str] = mapped_column(
        String(2100),
        nullable=False,
        comment="Human-readable unique identifier: <console>/<slug>[(n)]",
    )

    game_title: Mapped[str] = mapped_column(String(1000), nullable=False)

    console: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Canonical console code (nes, snes, n64, ...)",
    )

    condition: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1 (poor) to 5 (mint)",
    )

    image_url: Mapped[str] = mapped_column(String(1000), nullable=False)

    city: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    owner: Mapped[str] = mapped_column(String(320), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("resource_id", name="uq_games_resource_id"),
        Index("idx_games_owner", "owner"),
        Index("idx_games_console", "console"),
    )

    def __repr__(self) -> str:
        return f"<Game(resource_id='{self.resource_id}', owner='{self.owner}')>"
