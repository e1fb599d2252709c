"""Merge synced sources and their quotes into per-type markdown notes."""

import asyncio
import logging
from dataclasses import dataclass, field

from unearthed.core.config import VaultConfig
from unearthed.sources.remote.models import Quote, Source
from unearthed.sources.vault.storage import VaultStorage
from unearthed.utils.colors import apply_color
from unearthed.utils.filenames import derive_filename
from unearthed.utils.identity import existing_quote_identities, mark
from unearthed.utils.templates import render_template

logger = logging.getLogger(__name__)

# Yield to the event loop after this many sources
BATCH_SIZE = 25


@dataclass
class SourceSyncResult:
    """Outcome of one merge run.

    ``filenames`` maps every source id to its note name (without ``.md``),
    whether or not the note changed. Tag linking and the daily reflection use
    it within the same cycle.
    """

    filenames: dict[str, str] = field(default_factory=dict)
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    quotes_added: int = 0
    errors: int = 0

    def as_stats(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "quotes_added": self.quotes_added,
            "errors": self.errors,
        }


def render_source_header(source: Source, template: str) -> str:
    """Header written once, when a source note is first created."""
    if template:
        return render_template(template, source.template_fields())
    origin = source.origin[:1].upper() + source.origin[1:] if source.origin else ""
    return (
        f"# {source.title}\n\n"
        f"**Author:** [[{source.author}]]\n\n"
        f"**Source:** {origin}\n\n"
    )


class SourcesSyncEngine:
    """
    Writes each source to ``<root>/<Type>s/<filename>.md``.

    New notes get a header plus every quote. Existing notes are never
    truncated or reordered: only quotes whose content is not already in the
    note are appended to the end of the existing text.
    """

    def __init__(self, storage: VaultStorage, config: VaultConfig, batch_size: int = BATCH_SIZE):
        """
        Initialize the merge engine.

        Args:
            storage: Vault storage the notes live in
            config: Vault settings (root folder, templates, filename rules, colors)
            batch_size: Sources processed between yields to the event loop
        """
        self.storage = storage
        self.config = config
        self.batch_size = max(1, batch_size)

    @property
    def root_folder(self) -> str:
        return self.config.root_folder

    def filename_for(self, source: Source) -> str:
        """Note name (without extension) for a source."""
        rendered = render_template(self.config.filename_template, source.template_fields())
        name = self._derive(rendered)
        if not name:
            # Title rendered to nothing usable; the id is stable and safe
            name = self._derive(source.id) or "untitled"
        return name

    def _derive(self, text: str) -> str:
        return derive_filename(
            text,
            replacement=self.config.filename_replacement,
            lowercase=self.config.filename_lowercase,
        )

    def path_for(self, source: Source, filename: str | None = None) -> str:
        return f"{self.root_folder}/{source.folder_name}/{filename or self.filename_for(source)}.md"

    def plan_filenames(self, sources: list[Source]) -> dict[str, str]:
        """Compute the id → filename map without touching the vault."""
        return {source.id: self.filename_for(source) for source in sources}

    async def ensure_folders(self, sources: list[Source]) -> None:
        """Create the root folder and one folder per source type."""
        try:
            await self.storage.create_folder(self.root_folder)
        except OSError as e:
            logger.warning(f"No folder created: {self.root_folder} - {e}")

        for folder_name in sorted({source.folder_name for source in sources}):
            folder_path = f"{self.root_folder}/{folder_name}"
            try:
                await self.storage.create_folder(folder_path)
            except OSError as e:
                logger.warning(f"No folder created: {folder_path} - {e}")

    def render_quote(self, quote: Quote, source: Source) -> str:
        """Render one quote block, marking its content when templated."""
        if self.config.uses_quote_template:
            content = mark(quote.content)
        else:
            # The "> " line must start with the same text _identity reads back
            content = quote.content.strip()
        content = apply_color(
            content,
            quote.color,
            self.config.quote_color_mode,
            self.config.color_overrides,
        )

        if self.config.uses_quote_template:
            fields = quote.template_fields(source)
            fields["content"] = content
            return render_template(self.config.quote_template, fields)

        block = f"---\n\n> {content}\n\n"
        if quote.note:
            block += f"**Note:** {quote.note}\n\n"
        block += f"**Location:** {quote.location}\n\n"
        if quote.color:
            block += f"**Color:** {quote.color}\n\n"
        return block

    def _identity(self, quote: Quote) -> str:
        if self.config.uses_quote_template:
            return quote.content
        # Built-in layout reads identities back from the first "> " line only
        return quote.content.strip().split("\n", 1)[0].strip()

    async def merge_source(self, source: Source, filename: str, result: SourceSyncResult) -> None:
        """Create or append to the note for a single source."""
        file_path = self.path_for(source, filename)
        existed = await self.storage.is_file(file_path)

        if existed:
            content = await self.storage.read(file_path)
            seen = existing_quote_identities(content, templated=self.config.uses_quote_template)
        else:
            content = render_source_header(source, self.config.source_template)
            seen = set()

        added = 0
        for quote in source.quotes:
            if not quote.content.strip():
                logger.debug(f"Skipping empty quote {quote.id} in {file_path}")
                continue
            identity = self._identity(quote)
            if identity in seen:
                continue
            content += self.render_quote(quote, source)
            seen.add(identity)
            added += 1

        if existed:
            if added == 0:
                result.unchanged += 1
                logger.debug(f"No new quotes for {file_path}")
                return
            await self.storage.modify(file_path, content)
            result.updated += 1
            logger.info(f"Added {added} quote(s) to {file_path}")
        else:
            await self.storage.create(file_path, content)
            result.created += 1
            logger.info(f"Created {file_path} with {added} quote(s)")
        result.quotes_added += added

    async def merge(self, sources: list[Source]) -> SourceSyncResult:
        """
        Merge every source into the vault.

        A failure on one source is logged and counted; the remaining sources
        are still processed.

        Returns:
            SourceSyncResult with statistics and the id → filename map
        """
        result = SourceSyncResult()
        logger.info(f"Merging {len(sources)} sources into {self.root_folder}/")

        await self.ensure_folders(sources)

        for index, source in enumerate(sources, start=1):
            filename = self.filename_for(source)
            result.filenames[source.id] = filename

            try:
                await self.merge_source(source, filename, result)
            except Exception as e:
                result.errors += 1
                logger.error(f"Error updating or creating file for '{source.title}' ({source.id}): {e}")

            if index % self.batch_size == 0:
                await asyncio.sleep(0)

        logger.info(
            f"Merge complete: {result.created} created, {result.updated} updated, "
            f"{result.unchanged} unchanged, {result.errors} failed"
        )
        return result
