"""
GameCollectors Backend: Request Logging Middleware
==================================================

What:  One access-log line per request: method, path, status, duration,
       request ID, caller identity and client IP.
How:   Times the downstream call and logs on completion, choosing the level
       from the status class (5xx ERROR, 4xx WARNING, else INFO).
When:  After RequestIDMiddleware (uses request ID for correlation).

Example line:
    POST /api/games 201 12.4ms [a1b2c3d4] user=ann@example.com from 10.0.0.7

Request and response bodies are never logged: game ads carry owner emails,
and register/login bodies carry passwords.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gamecollectors.config import settings
from gamecollectors.middleware.request_id import request_id_var

logger = logging.getLogger("gamecollectors.access")

# Probed every few seconds by load balancers
_QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        user = request.headers.get(settings.identity_header) or "-"
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            user,
            client_ip,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
