"""
GameCollectors Backend: Game Service (Business Logic Orchestrator)
==================================================================

What:  Create, list, fetch, replace and delete game ads.
How:   Composes the console catalogue, the slug allocator and plain
       SQLAlchemy queries against the `games` table.
Who:   Called by the /api/games route handlers.
When:  For every game ad operation.

Create Flow (POST /api/games):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Body    │───▶│  Console    │───▶│  Slug        │───▶│  Store   │
    │  (Route) │    │  alias map  │    │  allocator   │    │  (DB)    │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

    Webhooks are not fired here: the route schedules them once the ad is
    persisted, so a failed insert never notifies anyone.

Design Decision:
    GameService is stateless; it receives the db session for each call, the
    same way every other service in this package does.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    StorageUnavailableError,
)
from gamecollectors.models.game import Game
from gamecollectors.schemas.game import GameIn, GameResource
from gamecollectors.services.consoles import normalize_console
from gamecollectors.services.slug_allocator import allocate

logger = logging.getLogger(__name__)


class GameService:
    """
    Business logic layer for game ads.

    Error Handling Strategy:
        Identifier lookups that fail at the database level raise
        StorageUnavailableError (503, retryable). A unique-constraint
        violation on insert means another request won the identifier race
        and is reported as ConflictError (409). Other write failures are
        wrapped in DatabaseError (500) so internals never leak.
    """

    async def resource_id_exists(
        self, db: AsyncSession, resource_id: str, exclude: Optional[str] = None
    ) -> bool:
        """
        Exact-match lookup used by the slug allocator.

        Args:
            exclude: An identifier to treat as free (the ad's own identifier
                     when it is being re-derived).
        """
        if exclude is not None and resource_id == exclude:
            return False
        try:
            result = await db.execute(
                select(Game.id).where(Game.resource_id == resource_id).limit(1)
            )
        except SQLAlchemyError as e:
            logger.error("Identifier lookup for %s failed: %s", resource_id, str(e))
            raise StorageUnavailableError(
                context={"resource_id": resource_id, "error_type": type(e).__name__},
            )
        return result.scalar_one_or_none() is not None

    async def create_game(self, db: AsyncSession, owner: str, data: GameIn) -> Game:
        """
        Persist a new ad under a freshly allocated identifier.

        Raises:
            ValidationError: Unsupported console
            InvalidInputError: Title has no URL-safe characters
            StorageUnavailableError: Identifier lookup failed
            ConflictError: A concurrent request took the same identifier
        """
        console = normalize_console(data.console)
        resource_id = await allocate(
            console,
            data.game_title,
            lambda candidate: self.resource_id_exists(db, candidate),
        )

        game = Game(
            resource_id=resource_id,
            game_title=data.game_title,
            console=console,
            condition=data.condition,
            image_url=data.image_url,
            city=data.city,
            price=data.price,
            description=data.description,
            owner=owner,
        )
        db.add(game)
        await self._flush_or_conflict(db, resource_id)

        logger.info("Game %s posted by %s", resource_id, owner)
        return game

    async def list_games(self, db: AsyncSession) -> List[Game]:
        result = await db.execute(select(Game).order_by(Game.created_at.desc()))
        return list(result.scalars().all())

    async def list_games_for_console(self, db: AsyncSession, console: str) -> List[Game]:
        canonical = normalize_console(console)
        result = await db.execute(
            select(Game).where(Game.console == canonical).order_by(Game.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_games_posted_by(self, db: AsyncSession, owner: str) -> List[Game]:
        result = await db.execute(
            select(Game).where(Game.owner == owner).order_by(Game.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_game(self, db: AsyncSession, console: str, slug: str) -> Game:
        """
        Fetch one ad by the two halves of its identifier.

        Raises:
            ValidationError: Unsupported console
            NotFoundError: No ad with that identifier
        """
        resource_id = f"{normalize_console(console)}/{slug}"
        result = await db.execute(select(Game).where(Game.resource_id == resource_id))
        game = result.scalar_one_or_none()
        if game is None:
            raise NotFoundError(resource="game", resource_id=resource_id)
        return game

    async def get_owned_game(
        self, db: AsyncSession, console: str, slug: str, owner: str
    ) -> Game:
        """Like get_game, but an ad posted by someone else is reported as missing."""
        game = await self.get_game(db, console, slug)
        if game.owner != owner:
            logger.info("%s tried to modify %s owned by %s", owner, game.resource_id, game.owner)
            raise NotFoundError(resource="game", resource_id=game.resource_id)
        return game

    async def update_game(
        self,
        db: AsyncSession,
        game: Game,
        data: GameIn,
        rederive_identifier: bool = False,
    ) -> Game:
        """
        Replace every field of an ad.

        The identifier is kept, so existing links keep working. With
        `rederive_identifier`, a new identifier is allocated from the new
        console and title; the ad's current identifier counts as free.
        """
        console = normalize_console(data.console)

        if rederive_identifier:
            current = game.resource_id
            new_resource_id = await allocate(
                console,
                data.game_title,
                lambda candidate: self.resource_id_exists(db, candidate, exclude=current),
            )
            if new_resource_id != current:
                logger.info("Game %s re-identified as %s", current, new_resource_id)
            game.resource_id = new_resource_id

        game.game_title = data.game_title
        game.console = console
        game.condition = data.condition
        game.image_url = data.image_url
        game.city = data.city
        game.price = data.price
        game.description = data.description

        await self._flush_or_conflict(db, game.resource_id)
        return game

    async def delete_game(self, db: AsyncSession, game: Game) -> None:
        try:
            await db.delete(game)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete game %s: %s", game.resource_id, str(e))
            raise DatabaseError(
                message="Could not delete the game. Please try again.",
                context={"resource_id": game.resource_id},
            )
        logger.info("Game %s deleted by %s", game.resource_id, game.owner)

    def to_resource(self, game: Game, base_url: str) -> GameResource:
        """Public representation, with the absolute href of the ad."""
        return GameResource(
            resource_id=game.resource_id,
            game_title=game.game_title,
            console=game.console,
            condition=game.condition,
            image_url=game.image_url,
            city=game.city,
            price=game.price,
            description=game.description,
            owner=game.owner,
            created_at=game.created_at,
            href=f"{base_url}/api/games/{game.resource_id}",
        )

    async def _flush_or_conflict(self, db: AsyncSession, resource_id: str) -> None:
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.warning("Identifier %s was taken concurrently", resource_id)
            raise ConflictError(
                message=f"The identifier '{resource_id}' was just taken. Please retry.",
                context={"resource_id": resource_id},
            )
        except SQLAlchemyError as e:
            logger.error("Failed to save game %s: %s", resource_id, str(e))
            raise DatabaseError(
                message="Could not save the game. Please try again.",
                context={"resource_id": resource_id},
            )


game_service = GameService()
