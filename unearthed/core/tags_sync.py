"""Write one note per tag, linking back to the notes of its sources."""

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from unearthed.core.config import VaultConfig
from unearthed.sources.remote.models import Tag
from unearthed.sources.vault.storage import VaultStorage
from unearthed.utils.filenames import derive_filename, unique_name

logger = logging.getLogger(__name__)

TAGS_FOLDER = "Tags"


@dataclass
class TagLinkResult:
    """Outcome of one tag linking run."""

    created: list[str] = field(default_factory=list)
    skipped: int = 0
    errors: int = 0

    def as_stats(self) -> dict[str, int]:
        return {"created": len(self.created), "skipped": self.skipped, "errors": self.errors}


def render_tag_note(tag: Tag, links: list[str]) -> str:
    content = f"# {tag.title}\n\n"
    if tag.description:
        content += f"{tag.description}\n\n"
    content += "## Sources\n\n"
    for link in links:
        content += f"- [[{link}]]\n"
    return content


class TagLinker:
    """
    Materializes tags as ``<root>/Tags/<name>.md``.

    Tag notes are create-once: when the note already exists it is left alone,
    even if the tag's description or sources changed remotely.
    """

    def __init__(self, storage: VaultStorage, config: VaultConfig):
        self.storage = storage
        self.config = config
        self._sibling_texts: dict[str, str] | None = None

    @property
    def tags_folder(self) -> str:
        return f"{self.config.root_folder}/{TAGS_FOLDER}"

    def _derive(self, text: str) -> str:
        return derive_filename(
            text,
            replacement=self.config.filename_replacement,
            lowercase=self.config.filename_lowercase,
        )

    async def _load_sibling_notes(self) -> dict[str, str]:
        """Read every note in the root's other folders, keyed by vault path.

        Loaded once per run; tag linking never writes to these folders.
        """
        if self._sibling_texts is not None:
            return self._sibling_texts

        texts: dict[str, str] = {}
        root_listing = await self.storage.list_folder(self.config.root_folder)
        for folder in root_listing.folders:
            if PurePosixPath(folder).name == TAGS_FOLDER:
                continue
            listing = await self.storage.list_folder(folder)
            for file_path in listing.files:
                if not file_path.endswith(".md"):
                    continue
                try:
                    texts[file_path] = await self.storage.read(file_path)
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Could not read {file_path} while resolving tag sources: {e}")
        self._sibling_texts = texts
        return texts

    async def _resolve_links(self, tag: Tag, filenames: dict[str, str]) -> list[str]:
        """Resolve each referenced source id to a link target.

        Per id: notes whose text contains the id, then the id → filename map
        from this cycle's merge, then the id itself.
        """
        notes = await self._load_sibling_notes()
        links: list[str] = []
        for source_id in tag.source_ids:
            # Substring match on note text can hit unrelated notes that mention the id
            found = [PurePosixPath(path).stem for path, text in notes.items() if source_id in text]
            if not found and source_id in filenames:
                found = [filenames[source_id]]
            if not found:
                found = [self._derive(source_id)]
            for link in found:
                if link and link not in links:
                    links.append(link)
        return links

    async def _write(self, path: str, content: str) -> bool:
        """Create the tag note; a second failed attempt is logged and ignored."""
        try:
            await self.storage.create(path, content)
            return True
        except OSError as e:
            logger.warning(f"Creating {path} failed ({e}), retrying once")
        try:
            await self.storage.create(path, content)
            return True
        except OSError as e:
            logger.warning(f"Tag note {path} not written: {e}")
            return False

    async def link(self, tags: list[Tag], filenames: dict[str, str] | None = None) -> TagLinkResult:
        """
        Create a note for every tag that does not have one yet.

        Args:
            tags: Tags fetched from the remote service
            filenames: Source id → note name map from this cycle's merge

        Returns:
            TagLinkResult listing created note paths
        """
        filenames = filenames or {}
        result = TagLinkResult()
        self._sibling_texts = None

        try:
            await self.storage.create_folder(self.tags_folder)
        except OSError as e:
            logger.warning(f"No folder created: {self.tags_folder} - {e}")

        notes = await self._load_sibling_notes()
        taken = {PurePosixPath(path).stem for path in notes}

        for tag in tags:
            base_name = self._derive(tag.title) or self._derive(tag.id) or "untitled"
            name = unique_name(base_name, taken)
            # Later tags with the same title must not resolve to this name
            taken.add(name)
            path = f"{self.tags_folder}/{name}.md"

            try:
                if await self.storage.exists(path):
                    result.skipped += 1
                    logger.debug(f"Tag note already exists, leaving it unchanged: {path}")
                    continue

                links = await self._resolve_links(tag, filenames)
                if not await self._write(path, render_tag_note(tag, links)):
                    result.skipped += 1
                    continue
                result.created.append(path)
                logger.info(f"Created tag note {path} with {len(links)} source link(s)")
            except Exception as e:
                result.errors += 1
                logger.error(f"Error creating tag note for '{tag.title}': {e}")

        return result
