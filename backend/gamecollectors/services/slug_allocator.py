"""
GameCollectors Backend: Slug Allocator
======================================

What:  Derives a URL-safe, collision-free resource identifier for a game ad
       from its console and title, e.g. ("n64", "GoldenEye 007") → "n64/goldeneye-007".
How:   Normalizes both segments, then probes storage: the bare identifier
       first, then `(1)`, `(2)`, ... until a free one is found.
Who:   Called by GameService when an ad is created (or re-derived on update).

Identifier format:
    <normalized-category>/<normalized-title>[(n)]

    n is the smallest integer ≥ 1 whose candidate is free. The scan is
    sequential and unbounded; it stops at the first free slot.

Concurrency:
    No lock is held across the probe loop. Two requests that both see the
    same free candidate will both return it; the unique constraint on
    `games.resource_id` rejects the second insert.
"""

import logging
import re
import unicodedata
from typing import Awaitable, Callable

from gamecollectors.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

ExistsCheck = Callable[[str], Awaitable[bool]]

# Anything outside lowercase ASCII letters and digits separates tokens
_UNSAFE_RUN_RE = re.compile(r"[^a-z0-9]+")


def normalize_segment(value: str) -> str:
    """
    Turn free text into a lowercase, dash-separated path segment.

    Accented letters are folded to ASCII ("Pokémon" → "pokemon"); every run of
    other characters collapses into a single dash; leading and trailing
    dashes are dropped. Normalizing an already-normalized segment returns it
    unchanged.

    Returns an empty string when nothing URL-safe remains.
    """
    folded = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _UNSAFE_RUN_RE.sub("-", folded.lower()).strip("-")


def build_base_identifier(category: str, title: str) -> str:
    """
    Normalize both segments and join them.

    Raises:
        InvalidInputError: either segment is empty after normalization.
    """
    normalized_category = normalize_segment(category or "")
    normalized_title = normalize_segment(title or "")

    if not normalized_category:
        raise InvalidInputError(
            message="Category must contain at least one letter or digit.",
            field="console",
            context={"value": category},
        )
    if not normalized_title:
        raise InvalidInputError(
            message="Title must contain at least one letter or digit.",
            field="gameTitle",
            context={"value": title},
        )

    return f"{normalized_category}/{normalized_title}"


async def allocate(category: str, title: str, exists_check: ExistsCheck) -> str:
    """
    Allocate a unique resource identifier.

    Args:
        category: Raw category (console) text.
        title: Raw title text.
        exists_check: Async exact-match lookup against stored identifiers.
                      Errors it raises (e.g. StorageUnavailableError) propagate.

    Returns:
        `base` if free, else `base(n)` for the smallest free n ≥ 1.

    Raises:
        InvalidInputError: category or title normalizes to nothing.
    """
    base = build_base_identifier(category, title)

    if not await exists_check(base):
        return base

    n = 1
    while True:
        candidate = f"{base}({n})"
        if not await exists_check(candidate):
            logger.debug("Identifier %s taken; allocated %s after %d probes", base, candidate, n)
            return candidate
        n += 1
