"""
GameCollectors Backend: Rate Limiting Middleware
================================================

What:  Sliding-window request limit per caller.
How:   Keeps the timestamps of recent requests per key in memory. The key is
       the caller identity (IDENTITY_HEADER) when present, otherwise the
       client IP, so users behind one NAT do not share one limit.
When:  Right after RequestIDMiddleware, before any other processing; the
       429 answer (built here, not by an exception handler) carries the request ID.

Algorithm: Sliding Window Log
    1. Drop timestamps older than RATE_LIMIT_WINDOW seconds
    2. If RATE_LIMIT_REQUESTS remain, answer 429 with Retry-After
    3. Otherwise record the request and let it through

The state lives in one process. Multi-worker deployments need a shared
store (Redis) to enforce a global limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from gamecollectors.config import settings
from gamecollectors.exceptions import RateLimitExceededError
from gamecollectors.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

# Keys are swept after this many recorded requests
_CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths: /health and the API documentation.

    The 429 body has the same shape as the error bodies built by the
    exception handlers in main.py; middleware runs outside FastAPI's
    exception handling, so the response is built here.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    def _key(self, request: Request) -> str:
        user = request.headers.get(settings.identity_header, "").strip()
        if user:
            return f"user:{user}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self._key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = self._requests[key]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key, len(timestamps), settings.rate_limit_window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % _CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Forget keys whose newest request has left the window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit keys", len(inactive))
