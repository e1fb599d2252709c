"""Sync cycle orchestration: session, source merge, tag linking, reflection."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import TypeVar

from unearthed.core.config import AppConfig
from unearthed.core.reflection_sync import (
    DailyReflectionInjector,
    ReflectionError,
    ReflectionOutcome,
)
from unearthed.core.sources_sync import SourcesSyncEngine, SourceSyncResult
from unearthed.core.tags_sync import TagLinker, TagLinkResult
from unearthed.sources.remote.api import UnearthedAPIError, UnearthedAuthError, UnearthedClient
from unearthed.sources.vault.storage import VaultStorage
from unearthed.utils.settings_db import SettingsDB

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_notice(message: str) -> None:
    logger.info(message)


@dataclass
class CycleReport:
    """What a sync entry point did, for display and tests."""

    sources: dict[str, int] | None = None
    tags: dict[str, int] | None = None
    reflection: ReflectionOutcome | None = None
    filenames: dict[str, str] = field(default_factory=dict)
    skipped: str | None = None
    error: str | None = None
    reflection_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UnearthedSync:
    """
    Runs sync cycles against one vault.

    A cycle is: establish a session, merge sources (which yields the
    id → filename map), link tags using that map, then optionally add the
    daily reflection. The map is passed explicitly between stages and lives
    only for the cycle.

    Every entry point holds the same lock, so a manual sync started while an
    automatic one is running waits for it instead of interleaving writes.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        storage: VaultStorage | None = None,
        client: UnearthedClient | None = None,
        state: SettingsDB | None = None,
        notify: Callable[[str], None] | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Application configuration
            storage: Vault storage (defaults to the configured vault path)
            client: API client (defaults to one built from the API settings)
            state: Runtime state store (defaults to the data dir database)
            notify: Receives short user-facing status notices
            today: Clock used for once-per-day decisions
        """
        if storage is None or client is None:
            config.require_sync_settings()
        self.config = config
        self.state = state or SettingsDB(config.state_db_path)
        self.storage = storage or VaultStorage(config.vault.path)
        self.client = client or UnearthedClient(
            base_url=config.api.base_url,
            api_key=config.api.api_key,
            secret=self.state.get_secret(),
            timeout=config.api.timeout,
            connect_timeout=config.api.connect_timeout,
        )
        self.notify = notify or _log_notice
        self.today = today

        self.sources_engine = SourcesSyncEngine(self.storage, config.vault)
        self.tag_linker = TagLinker(self.storage, config.vault)
        self.reflection_injector = DailyReflectionInjector(
            self.storage, self.client, config.daily_reflection
        )
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "UnearthedSync":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def _ensure_session(self) -> None:
        if self.client.secret:
            return
        secret = await self.client.connect()
        self.state.set_secret(secret)

    async def _call(self, fetch: Callable[[], Awaitable[T]]) -> T:
        """Run a fetch, reconnecting once if the cached secret is rejected."""
        await self._ensure_session()
        try:
            return await fetch()
        except UnearthedAuthError:
            logger.warning("Session secret rejected, reconnecting")
            self.state.clear_secret()
            self.client.secret = None
            await self._ensure_session()
            return await fetch()

    async def _sync_sources(self) -> SourceSyncResult:
        sources = await self._call(self.client.fetch_sources)
        return await self.sources_engine.merge(sources)

    async def _link_tags(self, filenames: dict[str, str]) -> TagLinkResult:
        tags = await self._call(self.client.fetch_tags)
        return await self.tag_linker.link(tags, filenames)

    async def _add_reflection(self, filenames: dict[str, str], report: CycleReport) -> None:
        """Inject the reflection; failures are reported but never raised."""
        try:
            report.reflection = await self._call(
                lambda: self.reflection_injector.inject(filenames, self.today())
            )
        except ReflectionError as e:
            report.reflection_error = str(e)
            self.notify(str(e))
            logger.warning(f"Daily reflection skipped: {e}")
            return
        except UnearthedAPIError as e:
            report.reflection_error = str(e)
            self.notify("Failed to add daily reflection")
            logger.error(f"Error fetching daily reflection: {e}")
            return
        except (OSError, UnicodeDecodeError) as e:
            report.reflection_error = str(e)
            self.notify("Failed to add daily reflection")
            logger.error(f"Error writing daily reflection to the daily note: {e}")
            return

        if report.reflection is ReflectionOutcome.ADDED:
            self.notify("Daily reflection added successfully")
        elif report.reflection is ReflectionOutcome.UNAVAILABLE:
            self.notify("No daily reflection available today")

    async def run_cycle(
        self,
        *,
        automatic: bool = False,
        include_reflection: bool | None = None,
    ) -> CycleReport:
        """
        Run a full sync cycle.

        Args:
            automatic: Startup-style run: sources and tags are only synced
                       when auto sync is enabled and no automatic sync ran today
            include_reflection: Add the daily reflection (defaults to the
                                configured setting)

        Returns:
            CycleReport; connectivity failures are reported in ``error``
        """
        if include_reflection is None:
            include_reflection = self.config.daily_reflection.enabled

        async with self._lock:
            report = CycleReport()
            today = self.today()

            if automatic and not self.config.vault.auto_sync:
                report.skipped = "auto sync disabled"
            elif automatic and self.state.get_last_sync_date() == today:
                report.skipped = "already synced today"
                logger.info(f"Skipping automatic sync, last sync ran on {today.isoformat()}")
            else:
                self.notify("Unearthed Sync started, please wait...")
                try:
                    merge_result = await self._sync_sources()
                    if automatic:
                        # Manual runs never gate the next automatic one
                        self.state.set_last_sync_date(today)
                    report.sources = merge_result.as_stats()
                    report.filenames = merge_result.filenames
                    tag_result = await self._link_tags(report.filenames)
                    report.tags = tag_result.as_stats()
                except UnearthedAPIError as e:
                    report.error = str(e)
                    self.notify(f"Unearthed Sync failed: {e}")
                    logger.error(f"Sync cycle aborted: {e}")
                    return report
                self.notify("Unearthed Sync complete")

            if include_reflection:
                await self._add_reflection(report.filenames, report)
            return report

    async def sync_sources(self) -> CycleReport:
        """Merge sources only."""
        async with self._lock:
            report = CycleReport()
            self.notify("Unearthed Sync started, please wait...")
            try:
                result = await self._sync_sources()
            except UnearthedAPIError as e:
                report.error = str(e)
                self.notify(f"Unearthed Sync failed: {e}")
                return report
            report.sources = result.as_stats()
            report.filenames = result.filenames
            self.notify("Unearthed Sync complete")
            return report

    async def link_tags(self) -> CycleReport:
        """
        Link tags only.

        Sources are fetched to compute the id → filename map, but their
        notes are not written.
        """
        async with self._lock:
            report = CycleReport()
            try:
                sources = await self._call(self.client.fetch_sources)
                report.filenames = self.sources_engine.plan_filenames(sources)
                result = await self._link_tags(report.filenames)
            except UnearthedAPIError as e:
                report.error = str(e)
                self.notify(f"Tag linking failed: {e}")
                return report
            report.tags = result.as_stats()
            self.notify(f"Linked {len(result.created)} new tag(s)")
            return report

    async def add_daily_reflection(self, filenames: dict[str, str] | None = None) -> CycleReport:
        """Add the daily reflection only."""
        async with self._lock:
            report = CycleReport(filenames=dict(filenames or {}))
            await self._add_reflection(report.filenames, report)
            return report
