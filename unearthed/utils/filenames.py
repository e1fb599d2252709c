"""Helpers for deriving filesystem-safe note filenames."""

from __future__ import annotations

import re

RESERVED_CHARACTERS = '\\/:*?"<>|'

_RESERVED_OR_CONTROL = re.compile(f"[{re.escape(RESERVED_CHARACTERS)}" r"\x00-\x1f\x7f]")
_WHITESPACE_RUN = re.compile(r"\s+")


class InvalidFilenameInput(TypeError):
    """Raised when a non-string title is passed to the filename deriver."""


def derive_filename(
    title: str,
    *,
    replacement: str = "-",
    lowercase: bool = True,
    collapse_whitespace: bool = True,
    trim: bool = True,
) -> str:
    """Turn an arbitrary title into a filesystem-safe slug.

    Reserved characters and control characters become ``replacement``, runs of
    whitespace become a single ``replacement`` and the result never starts or
    ends with it. Different titles may still map to the same name; callers
    that need unique names must suffix them.

    >>> derive_filename("My: Book/Title?")
    'my-book-title'
    """
    if not isinstance(title, str):
        raise InvalidFilenameInput(
            f"Filename source must be a string, got {type(title).__name__}"
        )

    name = title.lower() if lowercase else title
    name = _RESERVED_OR_CONTROL.sub(replacement, name)
    if collapse_whitespace:
        name = _WHITESPACE_RUN.sub(" ", name)
    if trim:
        name = name.strip()
    name = _WHITESPACE_RUN.sub(replacement, name)

    if replacement:
        escaped = re.escape(replacement)
        name = re.sub(f"(?:{escaped})+", replacement, name)
        name = name.strip(replacement)
    return name


def unique_name(base: str, taken: set[str]) -> str:
    """Return ``base`` or the first ``base-N`` (N >= 1) not in ``taken``."""
    if base not in taken:
        return base
    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
