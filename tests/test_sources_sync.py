"""Tests for merging sources into vault notes."""

import pytest

from unearthed.core.config import VaultConfig
from unearthed.core.sources_sync import SourcesSyncEngine, render_source_header
from unearthed.utils.identity import MARKER, mark

from .conftest import make_quote, make_source

NOTE = "Unearthed/Books/atomic-habits.md"


def _engine(storage, vault_dir, **settings):
    return SourcesSyncEngine(storage, VaultConfig(path=vault_dir, **settings))


class TestRenderSourceHeader:
    def test_builtin_header(self):
        header = render_source_header(make_source(), "")
        assert header == "# Atomic Habits\n\n**Author:** [[James Clear]]\n\n**Source:** Kindle\n\n"

    def test_template_header(self):
        header = render_source_header(make_source(), "# {{title}} by {{author}}\n")
        assert header == "# Atomic Habits by James Clear\n"


class TestSourcesSyncEngine:
    """Tests for SourcesSyncEngine."""

    def test_filename_from_template(self, storage, vault_dir):
        engine = _engine(storage, vault_dir, filename_template="{{author}} - {{title}}")
        assert engine.filename_for(make_source()) == "james-clear-atomic-habits"

    def test_filename_falls_back_to_id(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        assert engine.filename_for(make_source(source_id="src-9", title="???")) == "src-9"

    @pytest.mark.asyncio
    async def test_creates_note_in_type_folder(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        source = make_source(quotes=[make_quote("Habits compound.", note="Key idea", color="yellow")])

        result = await engine.merge([source])

        assert result.created == 1
        assert result.filenames == {"src-1": "atomic-habits"}
        content = await storage.read(NOTE)
        assert content.startswith("# Atomic Habits\n")
        assert "> Habits compound.\n" in content
        assert "**Note:** Key idea" in content
        assert "**Location:** Page 1" in content
        assert "**Color:** yellow" in content

    @pytest.mark.asyncio
    async def test_resync_is_byte_identical(self, storage, vault_dir):
        """Should leave a note untouched when nothing new arrived."""
        engine = _engine(storage, vault_dir)
        sources = [make_source(quotes=[make_quote("First."), make_quote("Second.")])]

        await engine.merge(sources)
        before = (vault_dir / NOTE).read_bytes()
        result = await engine.merge(sources)

        assert (vault_dir / NOTE).read_bytes() == before
        assert result.unchanged == 1
        assert result.quotes_added == 0

    @pytest.mark.asyncio
    async def test_only_new_quotes_appended(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        a, b, c = make_quote("Quote A."), make_quote("Quote B."), make_quote("Quote C.")

        await engine.merge([make_source(quotes=[a, b])])
        before = await storage.read(NOTE)
        result = await engine.merge([make_source(quotes=[a, b, c])])
        after = await storage.read(NOTE)

        assert result.updated == 1
        assert result.quotes_added == 1
        assert after.startswith(before)
        assert after[len(before):] == engine.render_quote(c, make_source())
        assert after.count("> Quote A.") == 1

    @pytest.mark.asyncio
    async def test_user_edits_preserved(self, storage, vault_dir):
        """Should append after user text instead of rewriting the note."""
        engine = _engine(storage, vault_dir)
        await engine.merge([make_source(quotes=[make_quote("Quote A.")])])
        edited = await storage.read(NOTE) + "\nMy own thoughts.\n"
        await storage.modify(NOTE, edited)

        await engine.merge([make_source(quotes=[make_quote("Quote A."), make_quote("Quote B.")])])
        content = await storage.read(NOTE)

        assert content.startswith(edited)
        assert content.endswith(engine.render_quote(make_quote("Quote B."), make_source()))

    @pytest.mark.asyncio
    async def test_title_change_creates_new_note(self, storage, vault_dir):
        """Should name notes by the current title without renaming old ones."""
        engine = _engine(storage, vault_dir)
        await engine.merge([make_source(quotes=[make_quote("Quote A.")])])
        result = await engine.merge([make_source(title="Atomic Habits 2e", quotes=[make_quote("Quote A.")])])

        assert result.created == 1
        assert await storage.is_file(NOTE)
        assert await storage.is_file("Unearthed/Books/atomic-habits-2e.md")

    @pytest.mark.asyncio
    async def test_multiline_quote_not_duplicated(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        sources = [make_source(quotes=[make_quote("Line one\nline two")])]

        await engine.merge(sources)
        result = await engine.merge(sources)

        assert result.unchanged == 1

    @pytest.mark.asyncio
    async def test_leading_blank_lines_not_duplicated(self, storage, vault_dir):
        """Should read back quotes that start with blank lines and not append them again."""
        engine = _engine(storage, vault_dir)
        sources = [
            make_source(quotes=[make_quote("\nHabits compound."), make_quote("  \n\nSmall wins.\nDaily.")])
        ]

        await engine.merge(sources)
        before = (vault_dir / NOTE).read_bytes()
        result = await engine.merge(sources)
        content = await storage.read(NOTE)

        assert result.unchanged == 1
        assert (vault_dir / NOTE).read_bytes() == before
        assert content.count("> Habits compound.\n") == 1
        assert content.count("> Small wins.\n") == 1

    @pytest.mark.asyncio
    async def test_leading_blank_lines_with_color(self, storage, vault_dir):
        engine = _engine(storage, vault_dir, quote_color_mode="background")
        sources = [make_source(quotes=[make_quote("\nHabits compound.", color="yellow")])]

        await engine.merge(sources)
        result = await engine.merge(sources)

        assert result.unchanged == 1

    @pytest.mark.asyncio
    async def test_empty_quotes_skipped(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        result = await engine.merge([make_source(quotes=[make_quote("   "), make_quote("Real.")])])
        assert result.quotes_added == 1

    @pytest.mark.asyncio
    async def test_templated_quotes_marked(self, storage, vault_dir):
        """Should wrap templated content in markers and de-duplicate by them."""
        engine = _engine(storage, vault_dir, quote_template="- {{content}} ({{location}})\n")
        sources = [make_source(quotes=[make_quote("Quote A.")])]

        await engine.merge(sources)
        content = await storage.read(NOTE)
        result = await engine.merge(sources)

        assert f"- {mark('Quote A.')} (Page 1)\n" in content
        assert result.unchanged == 1
        assert (await storage.read(NOTE)) == content

    @pytest.mark.asyncio
    async def test_colored_quotes_deduplicated(self, storage, vault_dir):
        engine = _engine(storage, vault_dir, quote_color_mode="background")
        sources = [make_source(quotes=[make_quote("Quote A.", color="yellow")])]

        await engine.merge(sources)
        content = await storage.read(NOTE)
        result = await engine.merge(sources)

        assert '> <mark style="background: #ffd400">Quote A.</mark>' in content
        assert result.unchanged == 1

    def test_color_wraps_outside_markers(self, storage, vault_dir):
        engine = _engine(
            storage,
            vault_dir,
            quote_template="{{content}}\n",
            quote_color_mode="text",
            color_overrides={"yellow": "#123456"},
        )
        rendered = engine.render_quote(make_quote("Quote A.", color="Yellow"), make_source())
        assert rendered == f'<span style="color: #123456">{MARKER}Quote A.{MARKER}</span>\n'

    @pytest.mark.asyncio
    async def test_failure_on_one_source_continues(self, storage, vault_dir):
        """Should count a failed source and still write the others."""
        engine = _engine(storage, vault_dir)
        # A folder where the note should go makes creating it fail
        (vault_dir / "Unearthed" / "Books" / "broken.md").mkdir(parents=True)
        sources = [
            make_source(source_id="src-1", title="Broken", quotes=[make_quote("Quote A.")]),
            make_source(source_id="src-2", title="Fine", quotes=[make_quote("Quote B.")]),
        ]

        result = await engine.merge(sources)

        assert result.errors == 1
        assert result.created == 1
        assert result.filenames == {"src-1": "broken", "src-2": "fine"}
        assert await storage.is_file("Unearthed/Books/fine.md")

    @pytest.mark.asyncio
    async def test_type_folders(self, storage, vault_dir):
        engine = _engine(storage, vault_dir, root_folder="Highlights")
        await engine.merge(
            [
                make_source(source_id="a", title="A", type="Book"),
                make_source(source_id="b", title="B", type="Podcast"),
            ]
        )
        listing = await storage.list_folder("Highlights")
        assert listing.folders == ["Highlights/Books", "Highlights/Podcasts"]

    def test_plan_filenames(self, storage, vault_dir):
        engine = _engine(storage, vault_dir)
        plan = engine.plan_filenames([make_source(), make_source(source_id="src-2", title="Deep Work")])
        assert plan == {"src-1": "atomic-habits", "src-2": "deep-work"}
