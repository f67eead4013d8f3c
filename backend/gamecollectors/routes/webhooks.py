"""
GameCollectors Backend: Webhook Route Handlers
==============================================

What:  Manage the caller's webhook registrations under /api/webhooks, and
       trigger the two test events.
How:   Delegates to WebhookService; test events go through the same
       WebhookDispatcher as real game events.
Who:   Called by API clients. Every route requires an identity except the
       test hooks, which anyone may fire.

Test hooks:
    POST /api/webhooks/hook-test-0 and /hook-test-1 broadcast the request's
    JSON body to every `hook-test-0` / `hook-test-1` registration. Clients
    use them to check their receiver before subscribing to game events.
"""

import logging
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.database import get_db_session
from gamecollectors.dependencies import get_current_user, get_optional_user
from gamecollectors.models.webhook import WebhookEventType, WebhookRegistration
from gamecollectors.schemas.common import ErrorResponse, MessageResponse
from gamecollectors.schemas.webhook import (
    WebhookIn,
    WebhookListResponse,
    WebhookResource,
    WebhookResponse,
)
from gamecollectors.services.links import build_links, resolve_base_url
from gamecollectors.services.webhook_dispatcher import webhook_dispatcher
from gamecollectors.services.webhook_service import parse_event_type, webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


def _to_resource(registration: WebhookRegistration, base_url: str) -> WebhookResource:
    return WebhookResource(
        id=registration.id,
        type=registration.event_type,
        recipient_url=registration.recipient_url,
        owner=registration.owner,
        created_at=registration.created_at,
        href=f"{base_url}/api/webhooks/{registration.id}",
    )


@router.get(
    "",
    response_model=WebhookListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List your webhook registrations",
)
async def list_webhooks(
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WebhookListResponse:
    base_url = resolve_base_url(request)
    registrations = await webhook_service.list_for_owner(db, user)
    return WebhookListResponse(
        message=f"Webhooks registered by {user} ({len(registrations)}).",
        status=200,
        links=build_links(base_url, user),
        resources=[_to_resource(r, base_url) for r in registrations],
    )


@router.post(
    "/hook-test-{number}",
    status_code=202,
    response_model=MessageResponse,
    summary="Fire a test event",
    description="Broadcasts the JSON request body to every registration for the test event.",
)
async def fire_test_hook(
    number: Literal["0", "1"],
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(default_factory=dict),
    user: Optional[str] = Depends(get_optional_user),
) -> MessageResponse:
    event = WebhookEventType(f"hook-test-{number}")
    background_tasks.add_task(webhook_dispatcher.dispatch_detached, event, payload, user)
    logger.info("Test event %s fired by %s", event.value, user or "an anonymous client")
    return MessageResponse(
        message=f"Webhook: {event.value} scheduled.",
        status=202,
        links=build_links(resolve_base_url(request), user),
    )


@router.get(
    "/{registration_id}",
    response_model=WebhookResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get one of your webhook registrations",
)
async def get_webhook(
    registration_id: UUID,
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WebhookResponse:
    base_url = resolve_base_url(request)
    registration = await webhook_service.get_owned(db, registration_id, user)
    return WebhookResponse(
        message="Webhook found.",
        status=200,
        links=build_links(base_url, user, {"webhooks": "webhooks"}),
        resource=_to_resource(registration, base_url),
    )


@router.post(
    "",
    status_code=201,
    response_model=WebhookResponse,
    responses={
        400: {"description": "Unknown event type", "model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"description": "Already registered", "model": ErrorResponse},
    },
    summary="Register a webhook",
)
async def register_webhook(
    body: WebhookIn,
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WebhookResponse:
    base_url = resolve_base_url(request)
    event_type = parse_event_type(body.type)
    registration = await webhook_service.register(
        db, user, event_type, str(body.recipient_url)
    )
    return WebhookResponse(
        message="Webhook registered.",
        status=201,
        links=build_links(base_url, user),
        resource=_to_resource(registration, base_url),
    )


@router.delete(
    "/{registration_id}",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete one of your webhook registrations",
)
async def delete_webhook(
    registration_id: UUID,
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    registration = await webhook_service.get_owned(db, registration_id, user)
    await webhook_service.delete(db, registration)
    return MessageResponse(
        message=f"Webhook {registration_id} deleted.",
        status=200,
        links=build_links(resolve_base_url(request), user),
    )
