"""Shared fixtures for unearthed tests."""

from datetime import date

import pytest

from unearthed.core.config import AppConfig, DailyReflectionConfig, VaultConfig
from unearthed.sources.remote.models import Quote, Source, Tag
from unearthed.sources.vault.storage import VaultStorage
from unearthed.utils.settings_db import SettingsDB

BASE_URL = "https://unearthed.test/api/public"
TODAY = date(2026, 3, 14)


@pytest.fixture
def vault_dir(tmp_path):
    path = tmp_path / "vault"
    path.mkdir()
    return path


@pytest.fixture
def storage(vault_dir):
    return VaultStorage(vault_dir)


@pytest.fixture
def vault_config(vault_dir):
    return VaultConfig(path=vault_dir)


@pytest.fixture
def reflection_config():
    return DailyReflectionConfig(enabled=True, location="Daily Notes", date_format="YYYY-MM-DD")


@pytest.fixture
def state(tmp_path):
    return SettingsDB(tmp_path / "data" / "state.db")


@pytest.fixture
def app_config(tmp_path, vault_dir):
    return AppConfig(
        general={"data_dir": str(tmp_path / "data")},
        api={"base_url": BASE_URL, "api_key": "key-123"},
        vault={"path": str(vault_dir), "auto_sync": True},
        daily_reflection={"enabled": False},
    )


def make_quote(content, **kwargs):
    kwargs.setdefault("id", f"q-{abs(hash(content)) % 10_000}")
    kwargs.setdefault("location", "Page 1")
    return Quote(content=content, **kwargs)


def make_source(source_id="src-1", title="Atomic Habits", quotes=(), **kwargs):
    kwargs.setdefault("author", "James Clear")
    kwargs.setdefault("type", "Book")
    kwargs.setdefault("origin", "kindle")
    return Source(id=source_id, title=title, quotes=list(quotes), **kwargs)


def make_tag(tag_id="tag-1", title="Growth", source_ids=(), description=""):
    return Tag(id=tag_id, title=title, description=description, source_ids=list(source_ids))


def source_payload(source_id="src-1", title="Atomic Habits", quotes=None):
    return {
        "id": source_id,
        "title": title,
        "author": "James Clear",
        "type": "book",
        "origin": "kindle",
        "quotes": quotes
        if quotes is not None
        else [{"id": "q-1", "content": "Habits compound.", "location": "Page 3"}],
    }
