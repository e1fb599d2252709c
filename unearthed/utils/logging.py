"""Logging setup for the CLI: a rich console plus a rotating log file."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Mapping

from rich.console import Console
from rich.logging import RichHandler

from unearthed.core.config import AppConfig

_LEVEL_MAP: Mapping[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Logger name fragment → category usable in ``general.log_overrides``
CATEGORY_KEYWORDS: Mapping[str, str] = {
    "sources_sync": "sources",
    "tags_sync": "tags",
    "reflection_sync": "reflection",
    "remote": "api",
    "vault": "vault",
    "core.sync": "sync",
}

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(category)s | %(name)s | %(message)s"


def _parse_level(value: str | int) -> int:
    if isinstance(value, int):
        return value
    level_name = str(value).upper()
    if level_name not in _LEVEL_MAP:
        raise ValueError(f"Unsupported log level: {value}")
    return _LEVEL_MAP[level_name]


def infer_category(logger_name: str) -> str:
    for keyword, category in CATEGORY_KEYWORDS.items():
        if keyword in logger_name:
            return category
    return "general"


class CategoryLevelFilter(logging.Filter):
    """Tag each record with a category and apply per-category level overrides.

    A record may name its category with ``extra={"log_category": ...}``;
    otherwise it is inferred from the logger name. An override such as
    ``{"tags": "WARNING"}`` re-levels every record of that category, so
    console visibility follows the new level.
    """

    def __init__(self, category_levels: Mapping[str, str]):
        super().__init__()
        self.category_levels = {
            category.lower(): _parse_level(level) for category, level in category_levels.items()
        }

    def filter(self, record: logging.LogRecord) -> bool:
        category = getattr(record, "log_category", None) or infer_category(record.name)
        record.category = category
        levelno = self.category_levels.get(category)
        if levelno is not None:
            record.levelno = levelno
            record.levelname = logging.getLevelName(levelno)
        return True


class _LevelGate(logging.Filter):
    """Drop records below a level after overrides have been applied."""

    def __init__(self, levelno: int):
        super().__init__()
        self.levelno = levelno

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.levelno


def build_console_handler(
    level_name: str,
    overrides: CategoryLevelFilter,
    console: Console | None = None,
) -> logging.Handler:
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(overrides)
    handler.addFilter(_LevelGate(_parse_level(level_name)))
    return handler


def build_file_handler(config: AppConfig, overrides: CategoryLevelFilter) -> logging.Handler:
    log_dir = config.general.data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / config.general.log_file_name,
        maxBytes=config.general.log_file_max_bytes,
        backupCount=config.general.log_file_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(overrides)
    return handler


def setup_logging(
    config: AppConfig,
    *,
    level_name: str | None = None,
    console: Console | None = None,
) -> Path:
    """Replace the root handlers with the console and file handlers.

    The console shows records at ``level_name`` (or ``general.log_level``)
    and above; the rotating file under ``<data_dir>/logs`` keeps DEBUG
    detail. Returns the log file path.
    """
    effective_level = (level_name or config.general.log_level).upper()
    _parse_level(effective_level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG)

    overrides = CategoryLevelFilter(config.general.log_overrides)
    root.addHandler(build_console_handler(effective_level, overrides, console))
    root.addHandler(build_file_handler(config, overrides))

    logging.captureWarnings(True)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return config.general.data_dir / "logs" / config.general.log_file_name
