"""
GameCollectors Backend: Webhook Registration Model
==================================================

What:  ORM model for the `webhook_registrations` table.
How:   One row per (owner, event type, recipient URL) subscription. The
       triple is UNIQUE; a duplicate registration is rejected by the service
       first and by the constraint if two requests race.

Registrations are created and deleted explicitly by their owner and never
mutated in place.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from gamecollectors.database import Base


class WebhookEventType(str, enum.Enum):
    """The fixed set of events a webhook can subscribe to."""

    ON_CREATE_GAME = "on-create-game"
    ON_UPDATE_GAME = "on-update-game"
    ON_DELETE_GAME = "on-delete-game"
    HOOK_TEST_0 = "hook-test-0"
    HOOK_TEST_1 = "hook-test-1"


class WebhookRegistration(Base):
    """A subscription of a recipient URL to one event type."""

    __tablename__ = "webhook_registrations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner: Mapped[str] = mapped_column(String(320), nullable=False)

    # Stored as the enum's string value so new event types need no migration
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)

    recipient_url: Mapped[str] = mapped_column(String(2000), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint(
            "owner", "event_type", "recipient_url",
            name="uq_webhook_owner_event_recipient",
        ),
        # Dispatch looks registrations up by event type on every game mutation
        Index("idx_webhook_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<WebhookRegistration(owner='{self.owner}', "
            f"event_type='{self.event_type}', recipient_url='{self.recipient_url}')>"
        )
