"""Version lookup for unearthed.

A source checkout reads ``[project].version`` from pyproject.toml; an
installed copy reads its distribution metadata.
"""

from importlib.metadata import PackageNotFoundError, version as metadata_version
from pathlib import Path
from typing import Final

import tomllib

PYPROJECT_PATH: Final[Path] = Path(__file__).resolve().parents[1] / "pyproject.toml"
DISTRIBUTION: Final[str] = "unearthed"
UNKNOWN_VERSION: Final[str] = "0.0.0"


def _pyproject_version(path: Path = PYPROJECT_PATH) -> str | None:
    if not path.is_file():
        return None
    try:
        with path.open("rb") as file:
            project = tomllib.load(file).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    return project.get("version") if project.get("name") == DISTRIBUTION else None


def get_version() -> str:
    """Return the running version, or 0.0.0 when neither source has one."""
    found = _pyproject_version()
    if found:
        return found
    try:
        return metadata_version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION
