"""
GameCollectors Backend: Webhook Registration Service
====================================================

What:  Create, list, fetch and delete webhook registrations, and look them
       up by event type for the dispatcher.
How:   Plain SQLAlchemy queries against `webhook_registrations`.
Who:   Called by the /api/webhooks routes and by WebhookDispatcher.

Uniqueness:
    (owner, event_type, recipient_url) is unique. `register()` checks first
    and answers with ConflictError; if two identical registrations race past
    the check, the unique constraint raises IntegrityError on flush, which is
    translated to the same ConflictError.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from gamecollectors.models.webhook import WebhookEventType, WebhookRegistration

logger = logging.getLogger(__name__)


def parse_event_type(value: str) -> WebhookEventType:
    """Resolve an event type string, rejecting anything outside the fixed set."""
    try:
        return WebhookEventType(value)
    except ValueError:
        allowed = [e.value for e in WebhookEventType]
        raise ValidationError(
            message=f"Unknown webhook type '{value}'. Allowed types: {', '.join(allowed)}.",
            field="type",
            context={"allowed": allowed},
        )


class WebhookService:
    """Business logic for webhook registrations."""

    async def register(
        self,
        db: AsyncSession,
        owner: str,
        event_type: WebhookEventType,
        recipient_url: str,
    ) -> WebhookRegistration:
        """
        Store a new registration.

        Raises:
            ConflictError: the owner already registered this URL for this event.
        """
        existing = await db.execute(
            select(WebhookRegistration.id).where(
                WebhookRegistration.owner == owner,
                WebhookRegistration.event_type == event_type.value,
                WebhookRegistration.recipient_url == recipient_url,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                message=(
                    f"A webhook of type '{event_type.value}' is already registered "
                    f"for {recipient_url}."
                ),
                context={"type": event_type.value, "recipient_url": recipient_url},
            )

        registration = WebhookRegistration(
            owner=owner,
            event_type=event_type.value,
            recipient_url=recipient_url,
        )
        db.add(registration)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                message=(
                    f"A webhook of type '{event_type.value}' is already registered "
                    f"for {recipient_url}."
                ),
                context={"type": event_type.value, "recipient_url": recipient_url},
            )

        logger.info(
            "Webhook registered: owner=%s type=%s url=%s",
            owner, event_type.value, recipient_url,
        )
        return registration

    async def list_for_owner(self, db: AsyncSession, owner: str) -> List[WebhookRegistration]:
        result = await db.execute(
            select(WebhookRegistration)
            .where(WebhookRegistration.owner == owner)
            .order_by(WebhookRegistration.created_at)
        )
        return list(result.scalars().all())

    async def get_owned(
        self, db: AsyncSession, registration_id: UUID, owner: str
    ) -> WebhookRegistration:
        """
        Fetch a registration belonging to `owner`.

        A registration owned by someone else is reported as missing, so
        callers cannot probe for other users' webhooks.
        """
        result = await db.execute(
            select(WebhookRegistration).where(WebhookRegistration.id == registration_id)
        )
        registration = result.scalar_one_or_none()
        if registration is None or registration.owner != owner:
            raise NotFoundError(resource="webhook", resource_id=str(registration_id))
        return registration

    async def delete(self, db: AsyncSession, registration: WebhookRegistration) -> None:
        try:
            await db.delete(registration)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete webhook %s: %s", registration.id, str(e))
            raise DatabaseError(
                message="Could not delete the webhook. Please try again.",
                context={"webhook_id": str(registration.id)},
            )
        logger.info("Webhook %s deleted by %s", registration.id, registration.owner)

    async def find_by_event_type(
        self,
        db: AsyncSession,
        event_type: str,
        owner: Optional[str] = None,
    ) -> List[WebhookRegistration]:
        """
        All registrations subscribed to `event_type`.

        Args:
            owner: When given, only that owner's registrations are returned.

        Raises:
            StorageUnavailableError: the lookup query failed.
        """
        query = select(WebhookRegistration).where(WebhookRegistration.event_type == event_type)
        if owner is not None:
            query = query.where(WebhookRegistration.owner == owner)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Webhook lookup for %s failed: %s", event_type, str(e))
            raise StorageUnavailableError(
                message="Webhook registrations could not be loaded.",
                context={"event_type": event_type, "error_type": type(e).__name__},
            )
        return list(result.scalars().all())


webhook_service = WebhookService()
