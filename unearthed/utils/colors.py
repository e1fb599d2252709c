"""Highlight color styling for quote content."""

from __future__ import annotations

import re
from typing import Mapping

# Highlight color names used by Kindle and the Unearthed reader
DEFAULT_HIGHLIGHT_COLORS: Mapping[str, str] = {
    "yellow": "#ffd400",
    "blue": "#2ea8e5",
    "pink": "#ff6666",
    "orange": "#f19837",
    "green": "#5fb236",
    "purple": "#a28ae5",
    "red": "#e56eee",
    "grey": "#aaaaaa",
    "gray": "#aaaaaa",
}

_OPENING_TAG = re.compile(r'^<(?:mark|span) style="(?:background|color): #[0-9a-fA-F]{3,6}">')
_CLOSING_TAG = re.compile(r"</(?:mark|span)>$")


def resolve_color(name: str | None, overrides: Mapping[str, str] | None = None) -> str | None:
    """Map a highlight color name to hex, preferring user overrides."""
    if not name:
        return None
    key = name.strip().lower()
    if overrides and key in overrides:
        return overrides[key]
    return DEFAULT_HIGHLIGHT_COLORS.get(key)


def apply_color(
    content: str,
    color: str | None,
    mode: str,
    overrides: Mapping[str, str] | None = None,
) -> str:
    """Wrap ``content`` in a background or text color element.

    Content is returned unchanged in ``none`` mode or when the color name has
    no known hex value.
    """
    if mode == "none":
        return content
    hex_value = resolve_color(color, overrides)
    if hex_value is None:
        return content
    if mode == "background":
        return f'<mark style="background: {hex_value}">{content}</mark>'
    if mode == "text":
        return f'<span style="color: {hex_value}">{content}</span>'
    raise ValueError(f"Unknown quote color mode: {mode}")


def unwrap_color(text: str) -> str:
    """Strip a wrapper added by :func:`apply_color`, if present.

    Also handles the first line of a multi-line quote, where the closing tag
    is on a later line.
    """
    opened = _OPENING_TAG.match(text)
    if opened is None:
        return text
    return _CLOSING_TAG.sub("", text[opened.end():])
