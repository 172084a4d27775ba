"""
TenderWatch CLI - Main entry point.

Aggregates Australian government tenders from public sources into a local
database and enriches them with AI summaries and business categories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from tenderwatch import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Government tender aggregation and AI enrichment",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """TenderWatch - Government tender aggregator."""


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, enrich, sync  # noqa: E402

app.add_typer(sync.app, name="sync", help="Sync tenders from configured sources")
app.add_typer(enrich.app, name="enrich", help="AI enrichment of stored tenders")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


DEFAULT_APP_CONFIG = """\
# TenderWatch Configuration

config_dir: configs
data_dir: data

database:
  url: ${DATABASE_URL:-sqlite:///data/tenderwatch.db}
  echo: false

logging:
  level: ${LOG_LEVEL:-INFO}
  file: logs/tenderwatch.log
  json_format: true
  rich_console: true

sync:
  enrich_after_sync: true
  enrichment_batch_size: 10
  sync_on_startup: true
  interval_hours: 6

enrichment:
  model: claude-sonnet-4-5
  max_tokens: 1024
  api_key: ${AI_INTEGRATIONS_ANTHROPIC_API_KEY:-}
  base_url: ${AI_INTEGRATIONS_ANTHROPIC_BASE_URL:-}
  delay_ms: 500

sources:
  - name: AusTender
    kind: ocds
    api_url: https://api.tenders.gov.au/ocds
    base_url: https://www.tenders.gov.au
    days_back: 30

  - name: NSW eTendering
    kind: browser_json
    api_url: https://tenders.nsw.gov.au/?event=public.api.tender.search
    base_url: https://tenders.nsw.gov.au
    browser:
      ws_endpoint: ${BROWSER_WS_ENDPOINT:-}
"""


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize TenderWatch database and configuration.

    Creates required directories, a default configuration file,
    and the database schema.
    """
    from tenderwatch.core.config.loader import load_app_config
    from tenderwatch.persistence.db import init_db

    app_config_path = Path("configs/app.yaml")
    if not app_config_path.exists() or force:
        app_config_path.parent.mkdir(parents=True, exist_ok=True)
        app_config_path.write_text(DEFAULT_APP_CONFIG, encoding="utf-8")

    config = load_app_config(app_config_path)
    config.ensure_directories()
    init_db(config.database.url)

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - TenderWatch initialized[/bold green]\n\n"
        "Created:\n"
        "  - [cyan]configs/app.yaml[/cyan] - Application configuration\n"
        "  - [cyan]data/[/cyan] - Database storage\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Check sources: [yellow]tenderwatch sync test[/yellow]\n"
        "  2. Run a sync: [yellow]tenderwatch sync run[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status() -> None:
    """Show tender counts by source, status and enrichment."""
    from rich.table import Table

    from tenderwatch.cli.commands import bootstrap
    from tenderwatch.persistence.db import get_session
    from tenderwatch.persistence.repo import TenderRepository

    bootstrap(configure_logging=False)

    with get_session() as session:
        repo = TenderRepository(session)
        by_source = repo.count_by_source()
        by_status = repo.count_by_status()
        enrichment = repo.count_enriched()

    if not by_source:
        console.print("[dim]No tenders stored yet. Run:[/dim] tenderwatch sync run")
        return

    source_table = Table(title="Tenders by Source", show_header=True, header_style="bold magenta")
    source_table.add_column("Source", style="cyan")
    source_table.add_column("Count", justify="right")
    for name, count in sorted(by_source.items()):
        source_table.add_row(name, str(count))
    console.print(source_table)

    status_table = Table(title="Tender Status", show_header=True, header_style="bold magenta")
    status_table.add_column("Status", style="cyan")
    status_table.add_column("Count", justify="right")
    for name, count in sorted(by_status.items()):
        status_table.add_row(name, str(count))
    console.print(status_table)

    console.print(
        f"Enrichment: [green]{enrichment['summarized']}[/green] summarized, "
        f"{enrichment['enriched']} enriched, "
        f"[yellow]{enrichment['pending']}[/yellow] pending"
    )


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
