"""Tests for daily reflection injection."""

from datetime import date

import pytest

from unearthed.core.config import DailyReflectionConfig
from unearthed.core.reflection_sync import (
    REFLECTION_HEADING,
    DailyNoteMissingError,
    DailyReflectionInjector,
    ReflectionOutcome,
    ReflectionPrerequisiteError,
    render_reflection,
)
from unearthed.sources.remote.models import DailyReflection
from unearthed.utils.identity import MARKER, contains_marked

from .conftest import TODAY

NOTE = "Daily Notes/2026-03-14.md"


class FakeClient:
    """Stands in for UnearthedClient.fetch_daily_reflection."""

    def __init__(self, reflection):
        self.reflection = reflection
        self.calls = 0

    async def fetch_daily_reflection(self):
        self.calls += 1
        return self.reflection


def _reflection():
    return DailyReflection(
        source_id="src-1",
        title="Atomic Habits",
        author="James Clear",
        type="Book",
        quote="Habits compound.",
        note="Remember this",
        location="Page 3",
    )


@pytest.fixture
def client():
    return FakeClient(_reflection())


class TestRenderReflection:
    def test_builtin_block_marked(self):
        block = render_reflection(_reflection(), "atomic-habits", "")
        assert block.startswith(MARKER) and block.endswith(MARKER)
        assert REFLECTION_HEADING in block
        assert '> "Habits compound."' in block
        assert "**Book:** [[atomic-habits]]" in block

    def test_template_block(self):
        block = render_reflection(_reflection(), "atomic-habits", "{{quote}} - [[{{source}}]]")
        assert block == f"{MARKER}Habits compound. - [[atomic-habits]]{MARKER}"


class TestDailyReflectionInjector:
    """Tests for DailyReflectionInjector."""

    def test_note_path(self, storage, client):
        injector = DailyReflectionInjector(
            storage, client, DailyReflectionConfig(location="Journal/", date_format="YYYY/MM-DD")
        )
        assert injector.daily_note_path(date(2026, 3, 4)) == "Journal/2026/03-04.md"

    @pytest.mark.asyncio
    async def test_missing_prerequisites(self, storage, client):
        """Should refuse to run without folder or date format."""
        for config in (
            DailyReflectionConfig(location="", date_format="YYYY-MM-DD"),
            DailyReflectionConfig(location="Daily Notes", date_format=""),
        ):
            injector = DailyReflectionInjector(storage, client, config)
            with pytest.raises(ReflectionPrerequisiteError):
                await injector.inject(today=TODAY)
        assert client.calls == 0

    @pytest.mark.asyncio
    async def test_missing_daily_note(self, storage, client, reflection_config):
        """Should not create the daily note."""
        injector = DailyReflectionInjector(storage, client, reflection_config)
        with pytest.raises(DailyNoteMissingError):
            await injector.inject(today=TODAY)
        assert not await storage.exists(NOTE)

    @pytest.mark.asyncio
    async def test_appends_once_per_day(self, storage, client, reflection_config):
        await storage.create(NOTE, "# Saturday\n\nWoke up early.\n")
        injector = DailyReflectionInjector(storage, client, reflection_config)

        first = await injector.inject({"src-1": "atomic-habits"}, today=TODAY)
        after_first = await storage.read(NOTE)
        second = await injector.inject({"src-1": "atomic-habits"}, today=TODAY)

        assert first is ReflectionOutcome.ADDED
        assert second is ReflectionOutcome.ALREADY_PRESENT
        assert after_first.startswith("# Saturday\n\nWoke up early.\n")
        assert "[[atomic-habits]]" in after_first
        assert await storage.read(NOTE) == after_first

    @pytest.mark.asyncio
    async def test_each_day_gets_its_own(self, storage, client, reflection_config):
        await storage.create("Daily Notes/2026-03-14.md", "")
        await storage.create("Daily Notes/2026-03-15.md", "")
        injector = DailyReflectionInjector(storage, client, reflection_config)

        assert await injector.inject(today=date(2026, 3, 14)) is ReflectionOutcome.ADDED
        assert await injector.inject(today=date(2026, 3, 15)) is ReflectionOutcome.ADDED

    @pytest.mark.asyncio
    async def test_templated_detection_uses_markers(self, storage, client):
        config = DailyReflectionConfig(location="Daily Notes", template="> {{quote}}\n")
        await storage.create(NOTE, "")
        injector = DailyReflectionInjector(storage, client, config)

        await injector.inject(today=TODAY)
        content = await storage.read(NOTE)

        assert contains_marked(content)
        assert await injector.inject(today=TODAY) is ReflectionOutcome.ALREADY_PRESENT

    @pytest.mark.asyncio
    async def test_link_falls_back_to_title(self, storage, client, reflection_config):
        await storage.create(NOTE, "")
        injector = DailyReflectionInjector(storage, client, reflection_config)

        await injector.inject({}, today=TODAY)

        assert "[[Atomic Habits]]" in await storage.read(NOTE)

    @pytest.mark.asyncio
    async def test_no_reflection_available(self, storage, reflection_config):
        await storage.create(NOTE, "untouched")
        injector = DailyReflectionInjector(storage, FakeClient(None), reflection_config)

        assert await injector.inject(today=TODAY) is ReflectionOutcome.UNAVAILABLE
        assert await storage.read(NOTE) == "untouched"
