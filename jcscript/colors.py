"""Colour tokens.

Scripts name colours either as hex codes (`#87ceeb`) or by name (`Blue`).
`resolve_color` normalises the token the way the interpreter stores it; the
drawing surface turns a stored token into RGB with `to_rgb`, and an unknown
name simply does not paint.
"""

from typing import Optional, Tuple

import pygame

DEFAULT_COLOR = '#000000'


def resolve_color(token: str) -> str:
    """Normalise a colour token: hex passes through, names are lower-cased."""
    token = token.strip()
    if token.startswith('#'):
        return token
    return token.lower()


def to_rgb(color: str) -> Optional[Tuple[int, int, int, int]]:
    """Convert a resolved colour token to an RGBA tuple.

    Returns None for names and hex codes pygame does not understand.
    """
    if color.startswith('#') and len(color) in (4, 5):
        # Short form #rgb / #rgba
        color = '#' + ''.join(ch * 2 for ch in color[1:])
    try:
        c = pygame.Color(color)
    except (ValueError, TypeError):
        return None
    return (c.r, c.g, c.b, c.a)
