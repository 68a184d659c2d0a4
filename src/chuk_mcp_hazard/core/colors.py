"""Colour parsing and normalisation.

Configured colours arrive as ``#rrggbb`` or ``"r,g,b"`` strings and are
normalised once, at load time, into an ``(r, g, b)`` triple.
"""

import re

from ..constants import ErrorMessages

RGB = tuple[int, int, int]

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def parse_color(value: str | RGB | list[int]) -> RGB:
    """Parse a hex or comma-separated colour into an (r, g, b) triple.

    Raises:
        ValueError: if the value is not a recognisable colour.
    """
    if isinstance(value, (tuple, list)):
        parts = list(value)
    else:
        text = str(value).strip()
        match = _HEX_RE.match(text)
        if match:
            return (int(match.group(1), 16), int(match.group(2), 16), int(match.group(3), 16))
        try:
            parts = [int(p.strip()) for p in text.split(",")]
        except ValueError:
            raise ValueError(ErrorMessages.INVALID_COLOR.format(value)) from None

    if len(parts) != 3 or any(not 0 <= int(p) <= 255 for p in parts):
        raise ValueError(ErrorMessages.INVALID_COLOR.format(value))
    return (int(parts[0]), int(parts[1]), int(parts[2]))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def rgb_key(r: int, g: int, b: int) -> str:
    """Canonical ``"r,g,b"`` string for a triple."""
    return f"{r},{g},{b}"
