"""
GameCollectors Backend: Request Identity Dependencies
=====================================================

What:  FastAPI dependencies that expose the caller's identity to routes.
How:   Credentials are verified upstream (API gateway / auth service); the
       verified identity claim arrives in the IDENTITY_HEADER header
       (default `X-User-Email`). This service does not verify tokens itself.
"""

from typing import Optional

from fastapi import Depends, Request

from gamecollectors.config import settings
from gamecollectors.exceptions import AuthenticationError


async def get_optional_user(request: Request) -> Optional[str]:
    """The caller's identity, or None for anonymous requests."""
    value = request.headers.get(settings.identity_header, "").strip()
    return value or None


async def get_current_user(user: Optional[str] = Depends(get_optional_user)) -> str:
    """The caller's identity; raises AuthenticationError (401) when absent."""
    if user is None:
        raise AuthenticationError()
    return user
