"""
Enrichment commands.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from . import bootstrap

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="AI enrichment of stored tenders",
    no_args_is_help=True,
)


@app.command("batch")
def enrich_pending(
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        min=1,
        help="Maximum tenders to enrich",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Enrich the oldest unenriched tenders."""
    from tenderwatch.core.enrichment.worker import enrich_batch

    config = bootstrap(config_path)

    enriched = asyncio.run(enrich_batch(limit, config.enrichment))
    console.print(f"[green]OK[/green] Enriched {enriched} tenders")


@app.command("tender")
def enrich_tender(
    tender_id: int = typer.Argument(..., help="Tender ID"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Enrich one tender now, or show its stored summary."""
    from tenderwatch.core.enrichment.worker import enrich_single_tender

    config = bootstrap(config_path)

    result = asyncio.run(enrich_single_tender(tender_id, config.enrichment))
    if result is None:
        err_console.print(f"[red]No summary available for tender {tender_id}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        result.summary,
        title=f"[bold]Tender {tender_id}[/bold]",
        subtitle=", ".join(result.categories),
        border_style="cyan",
    ))
