"""
GameCollectors Backend: Console Catalogue
=========================================

What:  The consoles a game ad may be posted for, plus the common spellings
       users type for them ("Super Nintendo", "PlayStation 1", "megadrive").
How:   Both tables are read-only mappings built once at import;
       `normalize_console()` is a pure function over them.
"""

from types import MappingProxyType
from typing import Mapping

from gamecollectors.exceptions import ValidationError

# Canonical console codes, in the order they are listed to users
ACCEPTED_CONSOLES = (
    "nes", "snes", "gb", "gbc", "gba", "md", "n64", "ps", "ps2", "dc", "pc",
)

CONSOLE_ALIASES: Mapping[str, str] = MappingProxyType({
    "famicom": "nes",
    "nintendo": "nes",
    "nintendo entertainment system": "nes",
    "super nintendo entertainment system": "snes",
    "super nintendo": "snes",
    "super famicom": "snes",
    "gameboy": "gb",
    "game boy": "gb",
    "gameboy color": "gbc",
    "game boy color": "gbc",
    "gameboycolor": "gbc",
    "gameboy advance": "gba",
    "game boy advance": "gba",
    "gameboyadvance": "gba",
    "mega drive": "md",
    "megadrive": "md",
    "sega mega drive": "md",
    "sega megadrive": "md",
    "segamegadrive": "md",
    "nintendo64": "n64",
    "nintendo 64": "n64",
    "ultra64": "n64",
    "ultra 64": "n64",
    "playstation": "ps",
    "play station": "ps",
    "playstation1": "ps",
    "playstation 1": "ps",
    "psx": "ps",
    "playstation2": "ps2",
    "playstation 2": "ps2",
    "play station2": "ps2",
    "play station 2": "ps2",
    "sega dreamcast": "dc",
    "segadreamcast": "dc",
    "sega dream cast": "dc",
    "dreamcast": "dc",
    "dream cast": "dc",
})

_ACCEPTED = frozenset(ACCEPTED_CONSOLES)


def supported_consoles_string() -> str:
    """All accepted console codes as a comma-separated string."""
    return ", ".join(ACCEPTED_CONSOLES)


def normalize_console(value: str) -> str:
    """
    Map user-entered console text to its canonical code.

    Matching is case-insensitive; surrounding whitespace is ignored and inner
    whitespace runs count as one space.

    Raises:
        ValidationError: the console is neither an accepted code nor a known alias.
    """
    key = " ".join((value or "").split()).lower()
    if key in CONSOLE_ALIASES:
        return CONSOLE_ALIASES[key]
    if key in _ACCEPTED:
        return key
    raise ValidationError(
        message=(
            f"Console '{value}' is not supported. The following consoles are "
            f"supported: {supported_consoles_string()}."
        ),
        field="console",
        context={"supported": list(ACCEPTED_CONSOLES)},
    )
