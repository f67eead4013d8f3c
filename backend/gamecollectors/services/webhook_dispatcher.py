"""
GameCollectors Backend: Webhook Dispatcher
==========================================

What:  Broadcasts an event payload to every webhook registered for the event type.
How:   Loads the current registrations, then POSTs the JSON payload to each
       recipient concurrently through one httpx.AsyncClient with a bounded timeout.
Who:   Scheduled by the games and webhooks routes as a FastAPI background task,
       so it runs after the triggering response has been sent.

Delivery semantics:
    - Best effort, at most once per dispatch. No retry, no backoff, no queue.
    - Each recipient is independent: a non-2xx answer, a network error or a
      timeout is logged and counted as a failed delivery, and the remaining
      recipients are still attempted.
    - Delivery failures are never raised to the caller.
    - A failing registration lookup raises StorageUnavailableError from
      `dispatch()`; `dispatch_detached()` logs it instead, because by then the
      triggering request has already been answered.

Owner scoping:
    Event types are global: every owner's registrations for the event receive
    it. With WEBHOOK_OWNER_SCOPED=true, only the registrations of the owner
    passed to `dispatch()` are used.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

import httpx

from gamecollectors.config import settings
from gamecollectors.database import async_session_factory
from gamecollectors.exceptions import StorageUnavailableError, WebhookDeliveryError
from gamecollectors.models.webhook import WebhookEventType, WebhookRegistration
from gamecollectors.services.webhook_service import webhook_service

logger = logging.getLogger(__name__)

RegistrationLookup = Callable[[str, Optional[str]], Awaitable[Sequence[WebhookRegistration]]]


@dataclass
class DispatchResult:
    """Outcome of one dispatch, by recipient URL."""

    event_type: str
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


async def _lookup_registrations(
    event_type: str, owner: Optional[str]
) -> Sequence[WebhookRegistration]:
    # Own session: the request session is already closed when this runs
    async with async_session_factory() as session:
        return await webhook_service.find_by_event_type(session, event_type, owner=owner)


class WebhookDispatcher:
    """
    Fan-out of one event to its subscribed recipients.

    Args:
        lookup: Async `(event_type, owner_or_None) -> registrations`. Defaults
                to a database lookup through WebhookService.
        timeout: Seconds allowed per delivery, from connect to the end of the response.
        owner_scoped: Filter registrations by the triggering owner.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        lookup: Optional[RegistrationLookup] = None,
        timeout: Optional[float] = None,
        owner_scoped: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._lookup = lookup or _lookup_registrations
        self.timeout = settings.webhook_timeout_seconds if timeout is None else timeout
        self.owner_scoped = (
            settings.webhook_owner_scoped if owner_scoped is None else owner_scoped
        )
        self._transport = transport

    async def dispatch(
        self,
        event_type: Union[WebhookEventType, str],
        payload: Any,
        owner: Optional[str] = None,
    ) -> DispatchResult:
        """
        Deliver `payload` to every registration for `event_type`.

        Args:
            event_type: The event being broadcast.
            payload: Any JSON-serializable value.
            owner: Identity that triggered the event; only used when owner scoping is on.

        Returns:
            DispatchResult listing delivered and failed recipient URLs.

        Raises:
            StorageUnavailableError: registrations could not be loaded.
        """
        event = event_type.value if isinstance(event_type, WebhookEventType) else event_type
        result = DispatchResult(event_type=event)

        registrations = await self._lookup(event, owner if self.owner_scoped else None)
        if not registrations:
            logger.debug("No webhooks registered for %s", event)
            return result

        body = json.dumps(payload)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            outcomes = await asyncio.gather(
                *(self._deliver(client, r.recipient_url, event, body) for r in registrations),
                return_exceptions=True,
            )

        for registration, outcome in zip(registrations, outcomes):
            if outcome is True:
                result.delivered.append(registration.recipient_url)
                continue
            if isinstance(outcome, BaseException):
                logger.error(
                    "Unexpected error delivering %s to %s",
                    event, registration.recipient_url,
                    exc_info=outcome,
                )
            result.failed.append(registration.recipient_url)

        logger.info(
            "Webhook %s dispatched: %d delivered, %d failed",
            event, len(result.delivered), len(result.failed),
        )
        return result

    async def dispatch_detached(
        self,
        event_type: Union[WebhookEventType, str],
        payload: Any,
        owner: Optional[str] = None,
    ) -> None:
        """Background-task entry point: like `dispatch()` but never raises a lookup failure."""
        try:
            await self.dispatch(event_type, payload, owner=owner)
        except StorageUnavailableError as e:
            logger.error("Webhook dispatch for %s skipped: %s", event_type, e.message)

    async def _deliver(
        self, client: httpx.AsyncClient, recipient_url: str, event: str, body: str
    ) -> bool:
        """POST one payload. Returns True on a 2xx answer, False on any delivery failure."""
        try:
            # httpx times each phase separately; this bounds the whole exchange
            response = await asyncio.wait_for(
                client.post(
                    recipient_url,
                    content=body,
                    headers={"Content-Type": "application/json"},
                ),
                self.timeout,
            )
            if not response.is_success:
                raise WebhookDeliveryError(recipient_url, response.status_code)
        except WebhookDeliveryError as e:
            logger.warning("Webhook %s not accepted: %s", event, e.message)
            return False
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning(
                "Webhook %s to %s timed out after %.1fs", event, recipient_url, self.timeout
            )
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Webhook %s to %s failed: %s", event, recipient_url, str(e))
            return False
        return True


webhook_dispatcher = WebhookDispatcher()
