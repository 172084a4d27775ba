"""
Sync commands for pulling tenders from configured sources.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import bootstrap

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Sync tenders from configured sources",
    no_args_is_help=True,
)


def _show_summary(results: list) -> None:
    """Show summary table of sync results."""
    table = Table(title="Sync Summary")

    table.add_column("Source", style="cyan")
    table.add_column("Fetched", justify="right")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Updated", justify="right", style="yellow")
    table.add_column("Errors", justify="right", style="red")

    for result in results:
        table.add_row(
            result.source,
            str(result.fetched),
            str(result.added),
            str(result.updated),
            str(result.errors),
        )

    if len(results) > 1:
        table.add_section()
        table.add_row(
            "[bold]Total[/bold]",
            str(sum(r.fetched for r in results)),
            str(sum(r.added for r in results)),
            str(sum(r.updated for r in results)),
            str(sum(r.errors for r in results)),
        )

    console.print(table)


@app.command("run")
def run_sync(
    source: Optional[list[str]] = typer.Option(
        None,
        "--source",
        "-s",
        help="Source name to sync (repeatable; default: all enabled)",
    ),
    days_back: Optional[int] = typer.Option(
        None,
        "--days-back",
        "-d",
        help="Override the per-source lookback window",
    ),
    enrich: bool = typer.Option(
        True,
        "--enrich/--no-enrich",
        help="Enrich new tenders after the sync",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Run one sync across the configured sources.

    Examples:
        tenderwatch sync run
        tenderwatch sync run --source AusTender --days-back 7
        tenderwatch sync run --no-enrich
    """
    from tenderwatch.core.orchestrator.runner import build_sync

    config = bootstrap(config_path)

    if source:
        unknown = [name for name in source if config.get_source(name) is None]
        if unknown:
            err_console.print(f"[red]Unknown source(s):[/red] {', '.join(unknown)}")
            available = ", ".join(s.name for s in config.sources)
            err_console.print(f"[dim]Available: {available}[/dim]")
            raise typer.Exit(1)

    sync = build_sync(config, source_names=source, enrich=enrich)
    if not sync.sources:
        err_console.print("[red]No enabled sources to sync[/red]")
        raise typer.Exit(1)

    async def _run():
        try:
            results = await sync.run_sync(days_back)
            _show_summary(results)
            if sync.enrichment_task is not None:
                console.print("[dim]Waiting for enrichment to finish...[/dim]")
                enriched = await sync.wait_for_enrichment()
                if enriched is not None:
                    console.print(f"[green]OK[/green] Enriched {enriched} tenders")
            return results
        finally:
            await sync.close()

    results = asyncio.run(_run())

    if any(r.errors for r in results):
        raise typer.Exit(1)


@app.command("test")
def test_sources(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Probe every enabled source without storing anything."""
    from tenderwatch.core.orchestrator.runner import build_sync

    config = bootstrap(config_path)
    sync = build_sync(config, enrich=False)

    outcomes = asyncio.run(sync.test_connections())

    table = Table(title="Source Connectivity")
    table.add_column("Source", style="cyan")
    table.add_column("Reachable", justify="center")

    for name, ok in outcomes.items():
        table.add_row(name, "[green]OK[/green]" if ok else "[red]x[/red]")

    console.print(table)


@app.command("watch")
def watch(
    interval_hours: Optional[float] = typer.Option(
        None,
        "--interval-hours",
        "-i",
        help="Hours between syncs (default from config)",
    ),
    skip_startup: bool = typer.Option(
        False,
        "--skip-startup",
        help="Wait one interval before the first sync",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Sync on start-up, then on a fixed interval until interrupted."""
    from tenderwatch.core.scheduler.service import SchedulerService

    config = bootstrap(config_path)
    service = SchedulerService(
        config,
        interval_hours=interval_hours,
        sync_on_startup=False if skip_startup else None,
    )

    console.print(
        f"[bold]Watching {len(service.sync.sources)} sources "
        f"every {service.interval_hours:g}h[/bold] [dim](Ctrl+C to stop)[/dim]"
    )

    try:
        asyncio.run(service.start())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
