"""Date pattern formatting for note names and template placeholders.

Patterns use the token style of the daily notes plugin (``YYYY-MM-DD``,
``dddd, MMMM D``) so a user can copy the format straight from their vault
settings. Text inside square brackets is emitted literally.
"""

from __future__ import annotations

import re
from datetime import date, datetime

DEFAULT_DATE_PATTERN = "YYYY-MM-DD"

_TOKEN = re.compile(r"\[([^\]]*)\]|YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|A|a")

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def format_date(value: date | datetime, pattern: str) -> str:
    """Format ``value`` using a ``YYYY-MM-DD`` style pattern."""
    moment = _as_datetime(value)
    hour12 = moment.hour % 12 or 12

    def replace(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            return match.group(1)
        token = match.group(0)
        if token == "YYYY":
            return f"{moment.year:04d}"
        if token == "YY":
            return f"{moment.year % 100:02d}"
        if token == "MMMM":
            return _MONTHS[moment.month - 1]
        if token == "MMM":
            return _MONTHS[moment.month - 1][:3]
        if token == "MM":
            return f"{moment.month:02d}"
        if token == "M":
            return str(moment.month)
        if token == "DD":
            return f"{moment.day:02d}"
        if token == "D":
            return str(moment.day)
        if token == "dddd":
            return _WEEKDAYS[moment.weekday()]
        if token == "ddd":
            return _WEEKDAYS[moment.weekday()][:3]
        if token == "HH":
            return f"{moment.hour:02d}"
        if token == "H":
            return str(moment.hour)
        if token == "hh":
            return f"{hour12:02d}"
        if token == "h":
            return str(hour12)
        if token == "mm":
            return f"{moment.minute:02d}"
        if token == "m":
            return str(moment.minute)
        if token == "ss":
            return f"{moment.second:02d}"
        if token == "s":
            return str(moment.second)
        if token == "A":
            return "AM" if moment.hour < 12 else "PM"
        return "am" if moment.hour < 12 else "pm"

    return _TOKEN.sub(replace, pattern)


def parse_timestamp(value: object) -> datetime | None:
    """Parse a remote timestamp, returning None when it is not a date.

    Accepts ISO-8601 strings (a trailing ``Z`` is read as UTC) as well as
    ``date``/``datetime`` objects. The timestamp keeps its own offset so the
    calendar day does not depend on the local timezone.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return _as_datetime(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
