"""
GameCollectors Backend: Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:     AsyncMock session (no database needed)
    ├── db_session_factory:  Session factory over a fresh SQLite file per test
    ├── db_session:          One session from that factory
    ├── sample_game_data:    GameIn body for create/update calls
    ├── identity_headers:    Headers identifying the caller
    └── test_client:         HTTPX AsyncClient bound to the app, using the test database
"""

import os

# Override settings for testing BEFORE any gamecollectors import: Settings is
# instantiated at import time, and the retry policy is bound when
# services.auth_client is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["AUTH_SERVICE_URI"] = "http://auth.test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ.pop("PUBLIC_BASE_URL", None)
os.environ.pop("IDENTITY_HEADER", None)
os.environ.pop("WEBHOOK_OWNER_SCOPED", None)

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from gamecollectors.database import Base, get_db_session  # noqa: E402
from gamecollectors.models.game import Game  # noqa: E402,F401
from gamecollectors.models.user import User  # noqa: E402,F401
from gamecollectors.models.webhook import WebhookRegistration  # noqa: E402,F401
from gamecollectors.schemas.game import GameIn  # noqa: E402

OWNER = "ann@example.com"


@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = game
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_session_factory(tmp_path):
    """
    Session factory over a throwaway SQLite database with every table created.

    A real database is used where the unique constraints matter
    (identifier allocation, duplicate registrations).
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'games.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def sample_game_data():
    return GameIn(
        game_title="GoldenEye 007",
        console="n64",
        condition=4,
        image_url="https://img.example.com/goldeneye.jpg",
        price=35.0,
        city="Stockholm",
        description="Cartridge only",
    )


@pytest.fixture
def identity_headers():
    return {"X-User-Email": OWNER}


@pytest_asyncio.fixture
async def test_client(db_session_factory):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    Requests use the per-test SQLite database through a dependency override.

    Usage:
        async def test_index(test_client):
            response = await test_client.get("/api")
            assert response.status_code == 200
    """
    from gamecollectors.main import app

    async def override_db_session():
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
