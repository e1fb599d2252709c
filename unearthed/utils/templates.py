"""Flat ``{{placeholder}}`` templates for rendering notes.

A template is parsed once into a list of tokens (literal text, plain
placeholders and ``{{field|date:PATTERN}}`` placeholders) and rendered in a
single pass, so text coming from a field value is never re-read as a
placeholder.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from unearthed.utils.dates import DEFAULT_DATE_PATTERN, format_date, parse_timestamp

# Fields that hold a creation timestamp and accept the |date: form
DATE_FIELDS = frozenset({"createdAt"})

_PLACEHOLDER = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)(?:\|date:([^{}]*))?\}\}")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    name: str
    raw: str


@dataclass(frozen=True)
class DatePlaceholder:
    name: str
    pattern: str
    raw: str


Token = Literal | Placeholder | DatePlaceholder


@lru_cache(maxsize=64)
def parse_template(template: str) -> tuple[Token, ...]:
    """Split a template into literal and placeholder tokens."""
    tokens: list[Token] = []
    position = 0
    for match in _PLACEHOLDER.finditer(template):
        if match.start() > position:
            tokens.append(Literal(template[position:match.start()]))
        name, pattern = match.group(1), match.group(2)
        if pattern is None:
            tokens.append(Placeholder(name, match.group(0)))
        else:
            tokens.append(DatePlaceholder(name, pattern, match.group(0)))
        position = match.end()
    if position < len(template):
        tokens.append(Literal(template[position:]))
    return tuple(tokens)


def _stringify(value: Any) -> str:
    if value is None or value is False or value == "":
        return ""
    return str(value)


def _render_date(value: Any, pattern: str) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return _stringify(value)
    return format_date(moment, pattern)


def render_template(template: str, fields: Mapping[str, Any]) -> str:
    """Expand every recognised placeholder in ``template``.

    A name is recognised when it is a key of ``fields``; absent or falsy values
    render as the empty string. Unknown names are left as written. Timestamp
    fields render as ``YYYY-MM-DD`` in the plain form and through the given
    pattern in the ``|date:`` form, both from the same parsed value.
    """
    parts: list[str] = []
    for token in parse_template(template):
        if isinstance(token, Literal):
            parts.append(token.text)
        elif token.name not in fields:
            parts.append(token.raw)
        elif isinstance(token, DatePlaceholder):
            if token.name in DATE_FIELDS:
                parts.append(_render_date(fields[token.name], token.pattern))
            else:
                parts.append(token.raw)
        elif token.name in DATE_FIELDS:
            parts.append(_render_date(fields[token.name], DEFAULT_DATE_PATTERN))
        else:
            parts.append(_stringify(fields[token.name]))
    return "".join(parts)
