"""
GameCollectors Backend: Shared Response Schemas
===============================================

What:  Pydantic models shared by every route: HATEOAS links, plain message
       envelopes, error bodies and the health report.
How:   Field names are snake_case in Python and camelCase on the wire
       (`alias_generator=to_camel`); FastAPI serializes by alias.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models whose JSON keys are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Link(BaseModel):
    href: str = Field(description="Absolute URL of the linked resource")


Links = Dict[str, Link]


class MessageResponse(CamelModel):
    """
    What:  Envelope for responses that carry no resource.
    Who:   Returned by DELETE routes, the API index, and the test-hook trigger.
    """
    message: str = Field(description="Human-readable outcome")
    status: int = Field(description="HTTP status code, repeated in the body")
    links: Links = Field(default_factory=dict, description="Navigation links")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "conflict",
            "message": "A webhook of type 'on-create-game' is already registered for http://h/1.",
            "details": {"type": "on-create-game", "recipient_url": "http://h/1"},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    auth_service: str = Field(description="Auth service status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
