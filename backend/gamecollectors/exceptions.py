"""
GameCollectors Backend: Custom Exception Hierarchy
==================================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    GameCollectorsError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    │   └── InvalidInputError    → 400 Bad Request (identifier cannot be derived)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (duplicate resource)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    ├── StorageUnavailableError  → 503 Service Unavailable (retryable)
    ├── UpstreamServiceError     → 503 Service Unavailable (auth service down)
    ├── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
    └── WebhookDeliveryError     → never reaches a client; isolated per recipient
"""

from typing import Any, Dict, Optional


class GameCollectorsError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where handlers say so)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GameCollectorsError):
    """
    Raised when client input fails a business rule.

    When:    Unsupported console, password length out of range, unknown event type.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Console 'atari' is not supported. ...",
            "details": {"field": "console"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidInputError(ValidationError):
    """
    Raised when a resource identifier cannot be derived from the input.

    When:    A title or category normalizes to an empty segment, which would
             produce an ambiguous identifier such as `n64/` or `/goldeneye`.
    HTTP:    400 Bad Request
    """


class AuthenticationError(GameCollectorsError):
    """
    Raised when a route needs an identity and the request carries none.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication is required to access this resource.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(GameCollectorsError):
    """
    Raised when a requested resource does not exist (or is not visible to the caller).

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(GameCollectorsError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Duplicate webhook registration, already registered email, or two
             concurrent ads racing to the same resource identifier (the
             database unique constraint rejects the second insert).
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageUnavailableError(GameCollectorsError):
    """
    Raised when a storage lookup cannot be performed.

    When:    The identifier existence check or the webhook registration
             lookup fails at the database level.
    HTTP:    503 Service Unavailable (the client may retry)
    """

    def __init__(
        self,
        message: str = "Storage is temporarily unavailable. Please try again shortly.",
        retry_after: int = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamServiceError(GameCollectorsError):
    """
    Raised when the auth service fails after all retries.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The authentication service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(GameCollectorsError):
    """
    Raised when the auth-service circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After 5 failures → OPEN (reject all calls for 60 seconds)
        → After 60 seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED (resume normal operation)
        → If test fails → OPEN again (reset 60-second timer)
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The authentication service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(GameCollectorsError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; details are logged
    server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(GameCollectorsError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class WebhookDeliveryError(GameCollectorsError):
    """
    A single webhook recipient answered with a non-2xx status.

    Raised and caught inside the dispatcher only; it is logged and counted,
    never propagated to the caller of `dispatch`.
    """

    def __init__(
        self,
        recipient_url: str,
        status_code: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["recipient_url"] = recipient_url
        ctx["status_code"] = status_code
        super().__init__(
            message=f"Webhook recipient {recipient_url} answered with HTTP {status_code}",
            context=ctx,
        )
        self.recipient_url = recipient_url
        self.status_code = status_code
