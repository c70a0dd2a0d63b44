#!/usr/bin/env python3
"""Remove duplicate events from the store.

Duplicates are detected with the same rule the import uses: same url, title,
city and source, with starts at most 3 days apart. The oldest record of a
group is kept; manual edits made on newer duplicates are merged into it
before they are deleted.

Usage:
    poetry run python protest_pipeline/scripts/cleanup_duplicates.py --dry-run
    poetry run python protest_pipeline/scripts/cleanup_duplicates.py
"""

import argparse
import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from pydantic.alias_generators import to_snake
from rich.console import Console

from protest_pipeline.models import EventRecord
from protest_pipeline.models.event import utcnow
from protest_pipeline.store.events import MATCH_WINDOW, EventStore, StoreUnavailableError

console = Console()


@dataclass
class CleanupResult:
    total_events: int = 0
    duplicates_found: int = 0
    events_deleted: int = 0
    errors: int = 0


def is_duplicate(original: EventRecord, other: EventRecord) -> bool:
    if (other.url, other.title, other.city, other.source) != (
        original.url, original.title, original.city, original.source
    ):
        return False
    if original.start is None or other.start is None:
        return original.start is None and other.start is None
    return abs(other.start - original.start) <= MATCH_WINDOW


def merge_manual_edits(store: EventStore, original: EventRecord, duplicate: EventRecord) -> EventRecord:
    """Copy a duplicate's human-edited fields onto the record being kept."""
    fields = {}
    for name in duplicate.edited_fields:
        attr = to_snake(name)
        if hasattr(duplicate, attr):
            fields[attr] = getattr(duplicate, attr)
    if not fields:
        return original

    edited = list(original.edited_fields)
    for name in duplicate.edited_fields:
        if name not in edited:
            edited.append(name)

    return store.update(original.id, {
        **fields,
        "edited_fields": edited,
        "manually_edited": True,
        "updated_at": utcnow(),
    })


def cleanup_duplicates(store: EventStore, dry_run: bool = False) -> CleanupResult:
    result = CleanupResult()

    events = sorted(
        (r for r in store.all() if not r.deleted and not r.fully_manual),
        key=lambda r: r.created_at,
    )
    result.total_events = len(events)
    console.print(f"[cyan]Checking {result.total_events} events for duplicates...[/cyan]")

    processed: set[str] = set()

    for event in events:
        if event.id in processed:
            continue
        processed.add(event.id)

        duplicates = [
            other for other in events
            if other.id not in processed and is_duplicate(event, other)
        ]
        if not duplicates:
            continue

        result.duplicates_found += len(duplicates)
        start = event.start.isoformat() if event.start else "?"
        console.print(f"\n[yellow]{len(duplicates) + 1} copies of {event.title!r}[/yellow] [dim]({start}, {event.city}, {event.source})[/dim]")

        kept = event
        for duplicate in duplicates:
            processed.add(duplicate.id)
            console.print(f"  [dim]duplicate {duplicate.id} created {duplicate.created_at.isoformat()}[/dim]")

            if dry_run:
                console.print("  [dim][DRY RUN] would delete[/dim]")
                continue

            try:
                if duplicate.manually_edited and duplicate.edited_fields:
                    console.print(f"  [yellow]merging manual edits: {', '.join(duplicate.edited_fields)}[/yellow]")
                    kept = merge_manual_edits(store, kept, duplicate)
                store.delete(duplicate.id)
                result.events_deleted += 1
            except StoreUnavailableError:
                raise
            except Exception as e:
                console.print(f"  [red]Error: {e}[/red]")
                result.errors += 1

    console.print(
        f"\n[green]Checked {result.total_events}, found {result.duplicates_found} duplicates, "
        f"deleted {result.events_deleted}[/green] [dim](errors: {result.errors})[/dim]"
    )
    if dry_run:
        console.print("[dim]DRY RUN - no changes made[/dim]")

    return result


def main(store_path: Optional[Path] = None, dry_run: bool = False) -> CleanupResult:
    return cleanup_duplicates(EventStore(store_path), dry_run=dry_run)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Remove duplicate events from the store")
    parser.add_argument("--dry-run", action="store_true", help="Preview without deleting")
    parser.add_argument("--store", type=Path, default=None, help="Path to the event store")
    args = parser.parse_args()

    print(json.dumps(asdict(main(args.store, args.dry_run)), indent=2))
