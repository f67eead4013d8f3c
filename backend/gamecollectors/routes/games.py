"""
GameCollectors Backend: Game Ad Route Handlers
==============================================

What:  CRUD for game ads under /api/games.
How:   Resolves the caller's identity, delegates to GameService, wraps the
       result with HATEOAS links, and schedules the matching webhook event
       as a background task.
Who:   Called by API clients; every route requires an identity.

Webhook timing:
    Events are added to FastAPI BackgroundTasks, which run after the
    response has been sent. A slow or failing recipient never delays or
    fails the write that triggered it.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.database import get_db_session
from gamecollectors.dependencies import get_current_user
from gamecollectors.models.webhook import WebhookEventType
from gamecollectors.schemas.common import ErrorResponse, MessageResponse
from gamecollectors.schemas.game import GameIn, GameListResponse, GameResource, GameResponse
from gamecollectors.services.consoles import supported_consoles_string
from gamecollectors.services.game_service import game_service
from gamecollectors.services.links import build_links, resolve_base_url
from gamecollectors.services.webhook_dispatcher import webhook_dispatcher

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/games", tags=["Games"])


def _schedule_webhook(
    background_tasks: BackgroundTasks,
    event: WebhookEventType,
    resource: GameResource,
    owner: str,
) -> None:
    payload = {
        "message": f"Webhook: {event.value}",
        "resource": resource.model_dump(mode="json", by_alias=True),
    }
    background_tasks.add_task(webhook_dispatcher.dispatch_detached, event, payload, owner)


@router.get(
    "",
    response_model=GameListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List every posted game",
)
async def list_games(
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameListResponse:
    base_url = resolve_base_url(request)
    games = await game_service.list_games(db)
    return GameListResponse(
        message=f"Currently posted games ({len(games)}).",
        status=200,
        links=build_links(base_url, user, {"self": "games"}),
        resources=[game_service.to_resource(g, base_url) for g in games],
    )


@router.post(
    "/find-posted-by",
    response_model=GameListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List the games posted by one user",
    description="The poster is given in the `user` query parameter; the request has no body.",
)
async def find_posted_by(
    request: Request,
    posted_by: str = Query(alias="user", min_length=1, description="Identity (email) of the poster"),
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameListResponse:
    base_url = resolve_base_url(request)
    games = await game_service.list_games_posted_by(db, posted_by)
    return GameListResponse(
        message=f"Games posted by {posted_by} ({len(games)}).",
        status=200,
        links=build_links(base_url, user),
        resources=[game_service.to_resource(g, base_url) for g in games],
    )


@router.get(
    "/{console}",
    response_model=GameListResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="List the games posted for one console",
    description="The console accepts aliases such as 'super nintendo' or 'psx'.",
)
async def list_games_for_console(
    console: str,
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameListResponse:
    base_url = resolve_base_url(request)
    games = await game_service.list_games_for_console(db, console)
    return GameListResponse(
        message=f"Games for {console} ({len(games)}). Supported consoles: {supported_consoles_string()}.",
        status=200,
        links=build_links(base_url, user),
        resources=[game_service.to_resource(g, base_url) for g in games],
    )


@router.get(
    "/{console}/{slug}",
    response_model=GameResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get one game ad",
)
async def get_game(
    console: str,
    slug: str,
    request: Request,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameResponse:
    base_url = resolve_base_url(request)
    game = await game_service.get_game(db, console, slug)
    return GameResponse(
        status=200,
        links=build_links(base_url, user),
        resource=game_service.to_resource(game, base_url),
    )


@router.post(
    "",
    status_code=201,
    response_model=GameResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"description": "Identifier taken concurrently", "model": ErrorResponse},
        503: {"description": "Identifier lookup unavailable", "model": ErrorResponse},
    },
    summary="Post a new game ad",
    description=(
        "Creates an ad and allocates its identifier `<console>/<slug>[(n)]`. "
        "Subscribers of `on-create-game` are notified after the response is sent."
    ),
)
async def create_game(
    body: GameIn,
    request: Request,
    background_tasks: BackgroundTasks,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameResponse:
    base_url = resolve_base_url(request)
    game = await game_service.create_game(db, user, body)
    resource = game_service.to_resource(game, base_url)

    _schedule_webhook(background_tasks, WebhookEventType.ON_CREATE_GAME, resource, user)

    return GameResponse(
        message="Game posted.",
        status=201,
        links=build_links(base_url, user, {"self": f"games/{game.resource_id}"}),
        resource=resource,
    )


@router.put(
    "/{console}/{slug}",
    response_model=GameResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"description": "Missing, or posted by someone else", "model": ErrorResponse},
    },
    summary="Replace a game ad",
)
async def update_game(
    console: str,
    slug: str,
    body: GameIn,
    request: Request,
    background_tasks: BackgroundTasks,
    rederive: bool = Query(
        default=False,
        description="Allocate a new identifier from the new console and title",
    ),
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GameResponse:
    """
    Only the poster may replace an ad. Anyone else gets 404, the same
    answer as for an ad that does not exist.
    """
    base_url = resolve_base_url(request)
    game = await game_service.get_owned_game(db, console, slug, user)
    game = await game_service.update_game(db, game, body, rederive_identifier=rederive)
    resource = game_service.to_resource(game, base_url)

    _schedule_webhook(background_tasks, WebhookEventType.ON_UPDATE_GAME, resource, user)

    return GameResponse(
        message="Game updated.",
        status=200,
        links=build_links(base_url, user, {"self": f"games/{game.resource_id}"}),
        resource=resource,
    )


@router.delete(
    "/{console}/{slug}",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"description": "Missing, or posted by someone else", "model": ErrorResponse},
    },
    summary="Delete a game ad",
)
async def delete_game(
    console: str,
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    base_url = resolve_base_url(request)
    game = await game_service.get_owned_game(db, console, slug, user)
    resource = game_service.to_resource(game, base_url)
    await game_service.delete_game(db, game)

    _schedule_webhook(background_tasks, WebhookEventType.ON_DELETE_GAME, resource, user)

    return MessageResponse(
        message=f"Game {resource.resource_id} deleted.",
        status=200,
        links=build_links(base_url, user),
    )
