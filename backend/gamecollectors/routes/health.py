"""
GameCollectors Backend: Health Check Route
==========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database and the auth service, and returns an aggregate status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   All dependencies operational (HTTP 200)
    - degraded:  Auth service down; games and webhooks still work (HTTP 200)
    - unhealthy: Database down (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gamecollectors import __version__
from gamecollectors.database import engine
from gamecollectors.schemas.common import HealthResponse
from gamecollectors.services.auth_client import CircuitBreaker, auth_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    """
    Check details:
        Database: SELECT 1 through the shared engine
        Auth service: circuit breaker state first, then a GET of its index
    """
    db_status = "connected"
    auth_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Auth Service ────────────────────────────────────────────────
    if auth_client.circuit_breaker.state == CircuitBreaker.OPEN:
        auth_status = "circuit_open"
    elif not await auth_client.health_check():
        auth_status = "unavailable"
    if auth_status != "available" and overall != "unhealthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        auth_service=auth_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
