"""Data models for records returned by the Unearthed service."""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_SOURCE_TYPE = "Book"


def normalize_type(value: str | None) -> str:
    """Normalise an open classification string: first letter upper, rest lower.

    Every type is treated the same way; an empty type is filed as a book.
    """
    value = (value or "").strip()
    if not value:
        return DEFAULT_SOURCE_TYPE
    return value[:1].upper() + value[1:].lower()


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value)


@dataclass
class Quote:
    """
    A single highlight belonging to a source.

    Attributes:
        content: Highlighted text, also the de-duplication key within a note
        note: Optional user annotation
        color: Free-text highlight color name
        location: Human-readable position (page, location, timestamp)
    """

    id: str
    content: str
    note: str = ""
    color: str = ""
    location: str = ""
    source_id: str = ""
    created_at: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Quote":
        return cls(
            id=_text(payload, "id"),
            content=_text(payload, "content"),
            note=_text(payload, "note"),
            color=_text(payload, "color"),
            location=_text(payload, "location"),
            source_id=_text(payload, "sourceId"),
            created_at=_text(payload, "createdAt"),
        )

    def template_fields(self, source: "Source | None" = None) -> dict[str, Any]:
        fields = {
            "id": self.id,
            "content": self.content,
            "note": self.note,
            "color": self.color,
            "location": self.location,
            "sourceId": self.source_id,
            "createdAt": self.created_at,
        }
        if source is not None:
            fields["title"] = source.title
            fields["author"] = source.author
        return fields


@dataclass
class Source:
    """
    A book, article or podcast with its highlights.

    ``id`` is stable across syncs; title and author may change remotely.
    """

    id: str
    title: str
    subtitle: str = ""
    author: str = ""
    type: str = DEFAULT_SOURCE_TYPE
    origin: str = ""
    created_at: str = ""
    asin: str = ""
    image_url: str = ""
    quotes: list[Quote] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Source":
        return cls(
            id=_text(payload, "id"),
            title=_text(payload, "title"),
            subtitle=_text(payload, "subtitle"),
            author=_text(payload, "author"),
            type=normalize_type(payload.get("type")),
            origin=_text(payload, "origin"),
            created_at=_text(payload, "createdAt"),
            asin=_text(payload, "asin"),
            image_url=_text(payload, "imageUrl"),
            quotes=[Quote.from_api(q) for q in payload.get("quotes") or []],
        )

    @property
    def folder_name(self) -> str:
        """Per-type folder, e.g. ``Books`` or ``Podcasts``."""
        return f"{normalize_type(self.type)}s"

    def template_fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "author": self.author,
            "type": normalize_type(self.type),
            "origin": self.origin,
            "createdAt": self.created_at,
            "asin": self.asin,
            "imageUrl": self.image_url,
        }


@dataclass
class Tag:
    """A user label grouping zero or more sources by id."""

    id: str
    title: str
    description: str = ""
    source_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Tag":
        source_ids = payload.get("sourceIds")
        if source_ids is None:
            # Some responses embed the sources instead of listing their ids
            source_ids = [s.get("id") for s in payload.get("sources") or [] if isinstance(s, dict)]
        return cls(
            id=_text(payload, "id"),
            title=_text(payload, "title"),
            description=_text(payload, "description"),
            source_ids=[str(s) for s in source_ids if s],
        )


@dataclass
class DailyReflection:
    """Today's server-selected highlight and the source it comes from."""

    source_id: str
    title: str
    author: str
    type: str
    quote: str
    note: str = ""
    location: str = ""
    color: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "DailyReflection":
        source = payload.get("source")
        source = source if isinstance(source, dict) else {}
        quote = payload.get("quote")
        quote = quote if isinstance(quote, dict) else {}
        return cls(
            source_id=_text(source, "id"),
            title=_text(source, "title"),
            author=_text(source, "author"),
            type=normalize_type(source.get("type")),
            quote=_text(quote, "content"),
            note=_text(quote, "note"),
            location=_text(quote, "location"),
            color=_text(quote, "color"),
        )

    def template_fields(self, source_link: str) -> dict[str, Any]:
        return {
            "quote": self.quote,
            "note": self.note,
            "location": self.location,
            "color": self.color,
            "source": source_link,
            "title": self.title,
            "author": self.author,
            "type": self.type,
            "sourceId": self.source_id,
        }
