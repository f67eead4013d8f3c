"""
GameCollectors Backend: Auth Service Client
===========================================

What:  Forwards user registration and login to the sibling auth service,
       which owns credentials and issues tokens.
How:   httpx.AsyncClient calls guarded by a circuit breaker, with tenacity
       retries for transport-level failures (connection refused, timeouts).
Who:   Called by UserService (register) and the /api/login and
       /api/auth-welcome routes.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transport errors
    2. Circuit breaker so a dead auth service fails fast instead of stacking
       up retrying requests
    3. A 5xx answer counts as a failure; 4xx answers are passed back to the
       client untouched (bad credentials, duplicate account, ...)
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from gamecollectors.config import settings
from gamecollectors.exceptions import CircuitBreakerOpenError, UpstreamServiceError

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Not thread-safe (simple counters). uvicorn async workers share a
        single process, so one breaker per process is consistent.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Auth Service Client
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class UpstreamResponse:
    """Status code and JSON body returned by the auth service."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class AuthServiceClient:
    """
    HTTP client for the auth service.

    Args:
        base_uri: Overrides settings.auth_service_uri (used in tests).
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_uri = (base_uri if base_uri is not None else settings.auth_service_uri).rstrip("/")
        self._transport = transport
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    async def register(self, email: str, password: str) -> UpstreamResponse:
        """Create credentials for `email` at the auth service."""
        return await self._forward("POST", "/api/register", {"email": email, "password": password})

    async def login(self, credentials: Dict[str, Any]) -> UpstreamResponse:
        """Exchange credentials for a token; the body is passed through unchanged."""
        return await self._forward("POST", "/api/login", credentials)

    async def welcome(self) -> UpstreamResponse:
        """The auth service's own index: its welcome message and links."""
        return await self._forward("GET", "/api/")

    async def _forward(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> UpstreamResponse:
        """
        Send one request to the auth service, `body` as JSON when given.

        Raises:
            CircuitBreakerOpenError: Circuit is open (too many recent failures)
            UpstreamServiceError: Not configured, unreachable after retries, or 5xx
        """
        if not self.base_uri:
            raise UpstreamServiceError(
                message="The authentication service is not configured.",
                context={"path": path},
            )

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        try:
            response = await self._send_with_retry(method, path, body, request_id)
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Auth service unreachable at %s: %s", request_id, path, str(e))
            raise UpstreamServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )

        if response.status_code >= 500:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Auth service answered %s with HTTP %d",
                request_id, path, response.status_code,
            )
            raise UpstreamServiceError(
                context={"request_id": request_id, "status_code": response.status_code},
            )

        self.circuit_breaker.record_success()
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}
        return UpstreamResponse(status_code=response.status_code, body=payload)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _send_with_retry(
        self, method: str, path: str, body: Optional[Dict[str, Any]], request_id: str
    ) -> httpx.Response:
        """
        The retried unit: one HTTP request. Kept apart from `_forward` so the
        circuit-breaker check is not repeated on every attempt.
        """
        start_time = time.time()
        async with httpx.AsyncClient(
            timeout=settings.auth_service_timeout, transport=self._transport
        ) as client:
            response = await client.request(method, f"{self.base_uri}{path}", json=body)
        logger.info(
            "[%s] Auth service %s %s → %d in %.0fms",
            request_id, method, path, response.status_code, (time.time() - start_time) * 1000,
        )
        return response

    async def health_check(self) -> bool:
        """True when the auth service answers its index route with anything below 500."""
        if not self.base_uri:
            return False
        try:
            async with httpx.AsyncClient(timeout=3.0, transport=self._transport) as client:
                response = await client.get(f"{self.base_uri}/api/")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("Auth service health check failed: %s", str(e))
            return False


# Shared instance: the circuit breaker state must be shared by all requests
auth_client = AuthServiceClient()
