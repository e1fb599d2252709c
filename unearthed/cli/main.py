"""Command-line interface for unearthed."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from unearthed import __version__
from unearthed.core.config import AppConfig, ConfigError, load_config
from unearthed.core.sync import CycleReport, UnearthedSync
from unearthed.utils.logging import setup_logging
from unearthed.utils.settings_db import SettingsDB, get_config_path, set_config_path

# Create Typer app
app = typer.Typer(
    name="unearthed",
    help="Sync Unearthed highlights, tags and daily reflections into a markdown vault",
    add_completion=False,
)

# Create console for rich output
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
) -> None:
    """unearthed - Sync your reading highlights into your vault."""
    ctx.ensure_object(dict)
    effective_config_path = config_file
    if effective_config_path is None:
        stored_path = get_config_path()
        if stored_path and stored_path.exists():
            effective_config_path = stored_path

    cfg = load_config(effective_config_path)
    ctx.obj["config"] = cfg

    if config_file is not None:
        set_config_path(config_file)

    setup_logging(cfg, level_name=log_level, console=console)


def _notice(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")


def _run(cfg: AppConfig, action: Callable[[UnearthedSync], Awaitable[CycleReport]]) -> CycleReport:
    """Build the orchestrator, run one entry point, and close it."""

    async def runner() -> CycleReport:
        async with UnearthedSync(cfg, notify=_notice) as engine:
            return await action(engine)

    try:
        return asyncio.run(runner())
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Sync failed: {e}[/red]")
        logging.exception("Sync operation failed")
        raise typer.Exit(1) from e


def _print_stats(title: str, stats: dict[str, int]) -> None:
    table = Table(title=title)
    table.add_column("Result", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    console.print(table)


def _finish(report: CycleReport) -> None:
    if report.skipped:
        console.print(f"[dim]Sync skipped: {report.skipped}[/dim]")
    if report.sources is not None:
        _print_stats("Sources", report.sources)
    if report.tags is not None:
        _print_stats("Tags", report.tags)
    if report.reflection is not None:
        console.print(f"[green]Daily reflection:[/green] {report.reflection.value.replace('_', ' ')}")
    if report.reflection_error:
        console.print(f"[yellow]Daily reflection not added: {report.reflection_error}[/yellow]")
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    import platform

    table = Table(title="unearthed Version Information")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.platform())

    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(
        False,
        "--show",
        "-s",
        help="Show current configuration",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        "-i",
        help="Create a default configuration file",
    ),
) -> None:
    """Manage configuration."""
    cfg = ctx.obj["config"]

    if init:
        config_path = cfg.default_config_path

        if config_path.exists():
            console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
            overwrite = typer.confirm("Overwrite existing config?")
            if not overwrite:
                console.print("[dim]Config creation cancelled[/dim]")
                raise typer.Exit(0)

        cfg.save_to_file(config_path)
        set_config_path(config_path)
        console.print(f"[green]✓ Config file created:[/green] {config_path}")
        console.print("[yellow]Edit this file to set your API key and vault path.[/yellow]")
        return

    if not show:
        console.print("[dim]Use --show to display the configuration or --init to create a config file[/dim]")
        return

    table = Table(title="unearthed Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Config file", str(cfg.general.config_file or "-"))
    table.add_row("Data directory", str(cfg.general.data_dir))
    table.add_row("Log level", cfg.general.log_level)
    table.add_row("API URL", cfg.api.base_url)
    table.add_row("API key", "configured" if cfg.api.api_key else "[red]not set[/red]")
    table.add_row("Vault path", str(cfg.vault.path or "[red]not set[/red]"))
    table.add_row("Root folder", cfg.vault.root_folder)
    table.add_row("Auto sync", str(cfg.vault.auto_sync))
    table.add_row("Quote template", "custom" if cfg.vault.quote_template else "built-in")
    table.add_row("Quote colors", cfg.vault.quote_color_mode)
    table.add_row("Daily reflection", str(cfg.daily_reflection.enabled))
    table.add_row("Daily note folder", cfg.daily_reflection.location or "-")
    table.add_row("Daily note format", cfg.daily_reflection.date_format or "-")

    console.print(table)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the last sync date and session state."""
    cfg = ctx.obj["config"]
    state = SettingsDB(cfg.state_db_path)
    last_sync = state.get_last_sync_date()

    table = Table(title="unearthed Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Last sync", last_sync.isoformat() if last_sync else "never")
    table.add_row("Session", "connected" if state.get_secret() else "not connected")
    table.add_row("Vault path", str(cfg.vault.path or "not set"))
    console.print(table)


@app.command()
def sync(
    ctx: typer.Context,
    auto: bool = typer.Option(
        False,
        "--auto",
        help="Run as the automatic startup sync (respects auto_sync and runs at most once a day)",
    ),
    reflection: Optional[bool] = typer.Option(
        None,
        "--reflection/--no-reflection",
        help="Add the daily reflection after syncing (default: daily_reflection.enabled)",
    ),
) -> None:
    """Sync sources and tags, then optionally add the daily reflection."""
    cfg = ctx.obj["config"]
    report = _run(cfg, lambda engine: engine.run_cycle(automatic=auto, include_reflection=reflection))
    _finish(report)


@app.command()
def sources(ctx: typer.Context) -> None:
    """Sync source notes only."""
    cfg = ctx.obj["config"]
    _finish(_run(cfg, lambda engine: engine.sync_sources()))


@app.command()
def tags(ctx: typer.Context) -> None:
    """Create notes for new tags only."""
    cfg = ctx.obj["config"]
    _finish(_run(cfg, lambda engine: engine.link_tags()))


@app.command("reflection")
def daily_reflection(ctx: typer.Context) -> None:
    """Add today's reflection to the daily note only."""
    cfg = ctx.obj["config"]
    _finish(_run(cfg, lambda engine: engine.add_daily_reflection()))


if __name__ == "__main__":
    app()
