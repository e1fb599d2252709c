"""Markdown vault storage.

Notes are addressed by slash-delimited paths relative to the vault root
(``Unearthed/Books/atomic-habits.md``), the way the note-taking app itself
addresses files. The sync engines only use the primitives below: create
folder, create file, read, modify (overwrite) and list.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


@dataclass
class FolderListing:
    """Direct children of a vault folder, as vault-relative paths."""

    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


class VaultStorage:
    """
    Async file storage rooted at a vault directory.

    All methods take vault-relative paths. Paths that would escape the vault
    (absolute paths or ``..`` segments) are rejected with ValueError.
    """

    def __init__(self, base_path: Path):
        """
        Initialize the vault storage.

        Args:
            base_path: Vault root directory (created on demand)
        """
        self.base_path = Path(base_path).expanduser().resolve()

    def resolve(self, vault_path: str) -> Path:
        """Map a vault-relative path to an absolute filesystem path."""
        relative = PurePosixPath(vault_path.strip("/"))
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Path escapes the vault: {vault_path}")
        return self.base_path.joinpath(*relative.parts)

    async def exists(self, vault_path: str) -> bool:
        return await aiofiles.os.path.exists(self.resolve(vault_path))

    async def is_file(self, vault_path: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve(vault_path))

    async def create_folder(self, vault_path: str) -> bool:
        """
        Ensure a folder exists.

        Returns:
            True if the folder was created, False if it already existed
        """
        target = self.resolve(vault_path)
        if await aiofiles.os.path.isdir(target):
            return False
        await aiofiles.os.makedirs(target, exist_ok=True)
        logger.debug(f"Created folder: {vault_path}")
        return True

    async def create(self, vault_path: str, content: str) -> None:
        """
        Create a new file.

        Raises:
            FileExistsError: If a file already exists at the path
        """
        target = self.resolve(vault_path)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "x", encoding="utf-8", newline="") as f:
            await f.write(content)
        logger.debug(f"Created file: {vault_path}")

    async def read(self, vault_path: str) -> str:
        """
        Read a file's text.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        async with aiofiles.open(self.resolve(vault_path), "r", encoding="utf-8", newline="") as f:
            return await f.read()

    async def modify(self, vault_path: str, content: str) -> None:
        """
        Overwrite an existing file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        target = self.resolve(vault_path)
        if not await aiofiles.os.path.isfile(target):
            raise FileNotFoundError(f"Cannot modify missing file: {vault_path}")
        async with aiofiles.open(target, "w", encoding="utf-8", newline="") as f:
            await f.write(content)
        logger.debug(f"Modified file: {vault_path}")

    async def list_folder(self, vault_path: str = "") -> FolderListing:
        """
        List the direct children of a folder.

        Missing folders list as empty.
        """
        target = self.resolve(vault_path) if vault_path else self.base_path
        listing = FolderListing()
        if not await aiofiles.os.path.isdir(target):
            return listing

        prefix = f"{vault_path.strip('/')}/" if vault_path.strip("/") else ""
        for name in sorted(await aiofiles.os.listdir(target)):
            if await aiofiles.os.path.isdir(target / name):
                listing.folders.append(f"{prefix}{name}")
            else:
                listing.files.append(f"{prefix}{name}")
        return listing
