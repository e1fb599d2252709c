"""Track which quotes and reflections a note already contains.

Rendered quote content (and whole reflection blocks) is wrapped between two
invisible separator characters. On the next sync the marked spans are read
back verbatim, whatever template produced the surrounding text. Notes written
with the built-in layout (no quote template) are read by their ``> `` lines
instead.
"""

from __future__ import annotations

import re

from unearthed.utils.colors import unwrap_color

# U+2063 INVISIBLE SEPARATOR, not produced by keyboards or markdown editors
MARKER = "\u2063"

_MARKED_SPAN = re.compile(f"{re.escape(MARKER)}(.*?){re.escape(MARKER)}", re.DOTALL)
_BLOCKQUOTE_LINE = re.compile(r">\s(.+?)\n")


def mark(value: str) -> str:
    """Wrap ``value`` in the invisible marker pair."""
    return f"{MARKER}{value}{MARKER}"


def extract_marked(text: str) -> list[str]:
    """Return every marker-delimited span in ``text``, in order."""
    return _MARKED_SPAN.findall(text)


def extract_blockquotes(text: str) -> list[str]:
    """Return the trimmed text of each ``> `` line (built-in layout)."""
    return [unwrap_color(match.strip()).strip() for match in _BLOCKQUOTE_LINE.findall(text)]


def existing_quote_identities(text: str, *, templated: bool) -> set[str]:
    """Collect the quote contents already present in a note.

    ``templated`` selects the mode: marker spans when a quote template is
    configured, blockquote lines otherwise. The note itself is not inspected
    to choose.
    """
    if templated:
        return set(extract_marked(text))
    return set(extract_blockquotes(text))


def contains_marked(text: str) -> bool:
    """True when ``text`` holds at least one marker-delimited span."""
    return _MARKED_SPAN.search(text) is not None
