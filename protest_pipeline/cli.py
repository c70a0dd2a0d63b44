"""CLI for the protest pipeline."""

import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from protest_pipeline import config
from protest_pipeline.pipeline import print_event_summary, print_stats, run_ingestion, scrape_sources
from protest_pipeline.scripts.cleanup_duplicates import cleanup_duplicates
from protest_pipeline.sources.registry import SOURCES, get_source_by_id, get_sources_by_country
from protest_pipeline.store.events import EventStore, StoreUnavailableError

app = typer.Typer(
    name="protest-pipeline",
    help="Protest event ingestion pipeline",
    add_completion=False,
)
console = Console()


def _select_sources(source_id: Optional[str]):
    if not source_id:
        return None
    source = get_source_by_id(source_id)
    if not source:
        console.print(f"[red]Unknown source: {source_id}[/red]")
        console.print(f"[dim]Available: {', '.join(s.id for s in SOURCES)}[/dim]")
        raise typer.Exit(1)
    return [source]


@app.command()
def scrape(
    days: int = typer.Option(config.DEFAULT_DAYS, "--days", "-d", help="Days forward to scrape"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Only this source id"),
    workers: int = typer.Option(config.DEFAULT_WORKERS, "--workers", "-w", help="Concurrent sources"),
    limit: int = typer.Option(20, "--limit", "-l", help="Rows in the summary table"),
    show_stats: bool = typer.Option(True, "--stats/--no-stats", help="Show statistics"),
):
    """Scrape sources and show what was found (nothing is written)."""
    events = asyncio.run(scrape_sources(days, _select_sources(source), workers))

    if not events:
        console.print("[yellow]No events found[/yellow]")
        raise typer.Exit(0)

    print_event_summary(events, limit=limit)
    if show_stats:
        print_stats(events)


@app.command("import")
def import_events(
    days: int = typer.Option(config.DEFAULT_DAYS, "--days", "-d", help="Days forward to scrape"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Only this source id"),
    workers: int = typer.Option(config.DEFAULT_WORKERS, "--workers", "-w", help="Concurrent sources"),
    geocode: bool = typer.Option(True, "--geocode/--no-geocode", help="Geocode locations"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Event store file"),
):
    """Scrape, geocode and import events into the store. Prints a JSON summary."""
    try:
        store = EventStore(store_path)
        summary = asyncio.run(run_ingestion(
            days=days,
            store=store,
            sources=_select_sources(source),
            workers=workers,
            geocode=geocode,
        ))
    except StoreUnavailableError as e:
        console.print(f"[red]Import aborted: {e}[/red]")
        raise typer.Exit(1)

    print(json.dumps({
        "imported": summary.inserted,
        "inserted": summary.inserted,
        "updated": summary.updated,
        "deleted": summary.deleted,
        "skipped": summary.skipped,
        "total": summary.total,
        "range": summary.range,
    }, indent=2))


@app.command()
def sources(
    country: Optional[str] = typer.Option(None, "--country", "-c", help="ISO country code, e.g. DE"),
):
    """List registered scraper sources."""
    entries = get_sources_by_country(country.upper()) if country else SOURCES

    table = Table(title=f"Sources ({len(entries)})")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Country", style="yellow")
    table.add_column("City", style="magenta")
    table.add_column("Enabled")
    table.add_column("Description", style="dim", max_width=50)

    for entry in entries:
        table.add_row(
            entry.id,
            entry.name,
            entry.country,
            entry.city or "-",
            "yes" if entry.enabled else "no",
            entry.description,
        )

    console.print(table)


@app.command("cleanup-duplicates")
def cleanup_duplicates_command(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without deleting"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Event store file"),
):
    """Delete duplicate events, keeping the oldest and merging manual edits."""
    try:
        result = cleanup_duplicates(EventStore(store_path), dry_run=dry_run)
    except StoreUnavailableError as e:
        console.print(f"[red]Cleanup aborted: {e}[/red]")
        raise typer.Exit(1)

    print(json.dumps(asdict(result), indent=2))


if __name__ == "__main__":
    app()
