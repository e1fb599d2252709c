"""Persistent runtime state kept in a small SQLite key/value table.

Two stores use this class: the per-data-dir ``state.db`` (session secret and
last sync date) and a home-level database that remembers which config file
the CLI was last pointed at.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

SECRET_KEY = "session_secret"
LAST_SYNC_DATE_KEY = "last_sync_date"
CONFIG_PATH_KEY = "config_file_path"

DEFAULT_SETTINGS_PATH = Path.home() / ".unearthed_settings.db"

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS state (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
"""


class SettingsDB:
    """Key/value state with typed accessors for the values sync relies on."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path or DEFAULT_SETTINGS_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute("INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)", (key, value))

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM state WHERE key = ?", (key,))

    def get_secret(self) -> str | None:
        """Session secret handed out by the connect endpoint."""
        return self.get(SECRET_KEY)

    def set_secret(self, secret: str) -> None:
        self.set(SECRET_KEY, secret)

    def clear_secret(self) -> None:
        self.delete(SECRET_KEY)

    def get_last_sync_date(self) -> date | None:
        """Day the last automatic sync merged sources."""
        value = self.get(LAST_SYNC_DATE_KEY)
        try:
            return date.fromisoformat(value) if value else None
        except ValueError:
            return None

    def set_last_sync_date(self, day: date) -> None:
        self.set(LAST_SYNC_DATE_KEY, day.isoformat())


_settings_db: SettingsDB | None = None


def get_settings_db() -> SettingsDB:
    """Home-level store shared by every CLI invocation."""
    global _settings_db
    if _settings_db is None:
        _settings_db = SettingsDB()
    return _settings_db


def get_config_path() -> Path | None:
    stored = get_settings_db().get(CONFIG_PATH_KEY)
    return Path(stored) if stored else None


def set_config_path(path: Path) -> None:
    get_settings_db().set(CONFIG_PATH_KEY, str(path))
