"""Append the daily reflection to today's daily note."""

import logging
from datetime import date
from enum import Enum

from unearthed.core.config import DailyReflectionConfig
from unearthed.sources.remote.api import UnearthedClient
from unearthed.sources.remote.models import DailyReflection
from unearthed.sources.vault.storage import VaultStorage
from unearthed.utils.dates import format_date
from unearthed.utils.identity import contains_marked, mark
from unearthed.utils.templates import render_template

logger = logging.getLogger(__name__)

REFLECTION_HEADING = "## Daily Reflection"


class ReflectionError(Exception):
    """Base exception for daily reflection failures."""


class ReflectionPrerequisiteError(ReflectionError):
    """Daily note folder or date format is not configured."""


class DailyNoteMissingError(ReflectionError):
    """Today's daily note does not exist yet."""


class ReflectionOutcome(str, Enum):
    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    UNAVAILABLE = "unavailable"


def render_reflection(reflection: DailyReflection, source_link: str, template: str) -> str:
    """Render the reflection block, wrapped in the invisible marker pair."""
    if template:
        block = render_template(template, reflection.template_fields(source_link))
    else:
        block = (
            "\n---\n"
            f"{REFLECTION_HEADING}\n\n"
            f'> "{reflection.quote}"\n\n'
            f"**{reflection.type}:** [[{source_link}]]\n"
            f"**Author:** [[{reflection.author}]]\n"
            f"**Location:** {reflection.location}\n\n"
            f"**Note:** {reflection.note}\n\n"
            "---\n"
        )
    return mark(block)


class DailyReflectionInjector:
    """
    Adds at most one reflection to each daily note.

    The daily note belongs to the user: it must already exist, and the
    reflection is only ever appended to it.
    """

    def __init__(self, storage: VaultStorage, client: UnearthedClient, config: DailyReflectionConfig):
        self.storage = storage
        self.client = client
        self.config = config

    def daily_note_path(self, today: date) -> str:
        if not self.config.location:
            raise ReflectionPrerequisiteError("Please specify a Daily Note folder location")
        if not self.config.date_format:
            raise ReflectionPrerequisiteError("Please specify a Daily Note date format")
        return f"{self.config.location}/{format_date(today, self.config.date_format)}.md"

    def already_injected(self, content: str) -> bool:
        if self.config.template:
            return contains_marked(content)
        return REFLECTION_HEADING in content

    async def inject(
        self,
        filenames: dict[str, str] | None = None,
        today: date | None = None,
    ) -> ReflectionOutcome:
        """
        Fetch today's reflection and append it to the daily note.

        Args:
            filenames: Source id → note name map from this cycle's merge, used
                       to link the reflection's source note
            today: Date that selects the daily note (defaults to today)

        Raises:
            ReflectionPrerequisiteError: If folder or date format are unset
            DailyNoteMissingError: If today's daily note does not exist
            UnearthedAPIError: If fetching the reflection fails
        """
        file_path = self.daily_note_path(today or date.today())

        reflection = await self.client.fetch_daily_reflection()
        if reflection is None:
            return ReflectionOutcome.UNAVAILABLE

        if not await self.storage.is_file(file_path):
            raise DailyNoteMissingError(f"Daily note does not exist: {file_path}")

        content = await self.storage.read(file_path)
        if self.already_injected(content):
            logger.info(f"Daily Reflection section already exists in {file_path}")
            return ReflectionOutcome.ALREADY_PRESENT

        source_link = (filenames or {}).get(reflection.source_id) or reflection.title
        content += render_reflection(reflection, source_link, self.config.template)
        await self.storage.modify(file_path, content)
        logger.info(f"Added daily reflection to {file_path}")
        return ReflectionOutcome.ADDED
