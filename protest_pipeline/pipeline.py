"""Main pipeline orchestration."""

import asyncio
from typing import Optional

from rich.console import Console
from rich.table import Table

from protest_pipeline import config
from protest_pipeline.enrichers.geocode import GeocodeCache, Geocoder, apply_geocoding, geocode_locations
from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent, ImportSummary
from protest_pipeline.reconcile import Reconciler
from protest_pipeline.sources.registry import ScraperSource, get_enabled_sources
from protest_pipeline.store.events import EventStore

console = Console()


def dedupe_key(event: DraftEvent) -> tuple:
    start = event.start.isoformat() if event.start else ""
    return (event.title.lower(), start, event.city or "", event.source)


def dedupe_events(events: list[DraftEvent]) -> list[DraftEvent]:
    """Drop repeats of (title, start, city, source), keeping the first."""
    seen = set()
    unique = []
    for event in events:
        key = dedupe_key(event)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


async def scrape_sources(
    days: int = config.DEFAULT_DAYS,
    sources: Optional[list[ScraperSource]] = None,
    workers: int = config.DEFAULT_WORKERS,
    ctx: Optional[ScrapeContext] = None,
) -> list[DraftEvent]:
    """Run parsers concurrently (at most `workers` at a time) and dedupe."""
    sources = get_enabled_sources() if sources is None else sources
    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    semaphore = asyncio.Semaphore(max(1, workers))

    async def run_source(source: ScraperSource) -> list[DraftEvent]:
        async with semaphore:
            console.print(f"[cyan]Scraping {source.name} ({source.country})...[/cyan]")
            return await source.parser(days, ctx)

    try:
        results = await asyncio.gather(
            *(run_source(s) for s in sources),
            return_exceptions=True,
        )
    finally:
        if owns_ctx:
            await ctx.aclose()

    events: list[DraftEvent] = []
    for source, result in zip(sources, results):
        if isinstance(result, BaseException):
            console.print(f"[red]{source.name} failed: {result}[/red]")
            continue
        events.extend(result)

    unique = dedupe_events(events)
    console.print(
        f"[dim]Scraped {len(events)} events, {len(unique)} after dedup "
        f"(removed {len(events) - len(unique)})[/dim]"
    )
    return unique


async def run_ingestion(
    days: int = config.DEFAULT_DAYS,
    store: Optional[EventStore] = None,
    geocoder: Optional[Geocoder] = None,
    sources: Optional[list[ScraperSource]] = None,
    workers: int = config.DEFAULT_WORKERS,
    geocode: bool = True,
    ctx: Optional[ScrapeContext] = None,
) -> ImportSummary:
    """Run the full ingestion.

    1. Scrape every enabled source and dedupe the batch
    2. Geocode each distinct location once
    3. Reconcile the drafts against the store

    Raises StoreUnavailableError if the store cannot be read or written.
    """
    console.print("\n[bold cyan]Starting protest ingestion[/bold cyan]\n")

    store = store or EventStore()
    drafts = await scrape_sources(days, sources, workers, ctx)

    geo = {}
    if geocode and drafts:
        owns_geocoder = geocoder is None
        geocoder = geocoder or Geocoder(GeocodeCache())
        try:
            geo = await geocode_locations(drafts, geocoder)
        finally:
            if owns_geocoder:
                await geocoder.aclose()
        drafts = apply_geocoding(drafts, geo)

    console.print(f"[cyan]Importing {len(drafts)} events...[/cyan]")
    summary = Reconciler(store).reconcile(drafts, geo, days)

    console.print(
        f"[green]Import complete: {summary.inserted} inserted, {summary.updated} updated, "
        f"{summary.deleted} deleted, {summary.skipped} skipped[/green]\n"
    )
    return summary


def print_event_summary(events: list[DraftEvent], limit: int = 20) -> None:
    """Print a summary table of scraped events."""
    table = Table(title=f"Event Summary (showing {min(len(events), limit)} of {len(events)})")
    table.add_column("Start", style="red")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("City", style="green", max_width=20)
    table.add_column("Attendees", style="magenta", justify="right")
    table.add_column("Source", style="blue")

    sorted_events = sorted(events, key=lambda e: e.start.isoformat() if e.start else "~")

    for event in sorted_events[:limit]:
        if event.start:
            fmt = "%Y-%m-%d %H:%M" if event.start_time_known else "%Y-%m-%d"
            start = event.start.strftime(fmt)
        else:
            start = "?"
        table.add_row(
            start,
            event.title[:40],
            (event.city or "-")[:20],
            str(event.attendees) if event.attendees is not None else "-",
            event.source,
        )

    console.print(table)


def print_stats(events: list[DraftEvent]) -> None:
    """Print statistics about a scraped batch."""
    console.print("\n[bold]Statistics[/bold]")

    by_source: dict[str, int] = {}
    for event in events:
        by_source[event.source] = by_source.get(event.source, 0) + 1
    console.print(f"  By source: {by_source}")

    cities: dict[str, int] = {}
    for event in events:
        city = event.city or "Unknown"
        cities[city] = cities.get(city, 0) + 1
    top_cities = sorted(cities.items(), key=lambda x: x[1], reverse=True)[:5]
    console.print(f"  Top cities: {dict(top_cities)}")

    with_attendees = sum(1 for e in events if e.attendees is not None)
    pending_delete = sum(1 for e in events if e.should_delete)
    unverified = sum(1 for e in events if not e.verified)
    console.print(f"  With attendee estimate: {with_attendees}")
    console.print(f"  Unverified: {unverified}, flagged for deletion: {pending_delete}")
