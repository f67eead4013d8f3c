"""
GameCollectors Backend: HATEOAS Links
=====================================

What:  Builds the `links` object included in every API response.
How:   Route-specific ("local") links first, then the global links, which
       depend on whether the caller is identified. Every href is absolute
       and has no trailing slash.

Example (anonymous caller):
    {
        "index":    {"href": "https://games.example.com/api"},
        "login":    {"href": "https://games.example.com/api/login"},
        "register": {"href": "https://games.example.com/api/register"}
    }
"""

from typing import Dict, Mapping, Optional
from urllib.parse import quote

from starlette.requests import Request

from gamecollectors.config import settings


def resolve_base_url(request: Request) -> str:
    """PUBLIC_BASE_URL when configured, otherwise the base URL of the request."""
    return settings.public_base_url or str(request.base_url).rstrip("/")


def build_links(
    base_url: str,
    user: Optional[str],
    local_links: Optional[Mapping[str, str]] = None,
) -> Dict[str, Dict[str, str]]:
    """
    Args:
        base_url: Scheme and host, e.g. "https://games.example.com".
        user: Identity of the caller, or None when anonymous.
        local_links: Name → path relative to /api/ for this particular response.
    """
    global_links: Dict[str, str] = {"index": ""}
    if user is None:
        global_links["login"] = "login"
        global_links["register"] = "register"
    else:
        global_links["myPostedGames"] = f"games/find-posted-by?user={quote(user, safe='@.')}"
        global_links["gamesPostedByUser"] = "games/find-posted-by?user={user}"
        global_links["currentlyPostedGames"] = "games"
        global_links["currentlyPostedGamesForConsole"] = "games/{console}"
        global_links["webhooks"] = "webhooks"

    api_root = f"{base_url}/api/"
    links: Dict[str, Dict[str, str]] = {}
    for name, path in {**(local_links or {}), **global_links}.items():
        links[name] = {"href": (api_root + path).rstrip("/")}
    return links
