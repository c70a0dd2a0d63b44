"""Persisted event store.

Records live in one JSON document file, written after every change. The
document shape (camelCase keys, GeoJSON points) is the one the API layer
and exporters read.
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from pydantic.alias_generators import to_snake
from rich.console import Console

from protest_pipeline import config
from protest_pipeline.models import EventRecord
from protest_pipeline.models.event import utcnow

console = Console()

MATCH_WINDOW = timedelta(days=3)


class StoreUnavailableError(Exception):
    """The store cannot be read or written; the run must stop."""


def _same_key(record: EventRecord, keys: dict[str, Any]) -> bool:
    edited = {to_snake(name) for name in record.edited_fields}
    return all(getattr(record, name) == value for name, value in keys.items() if name not in edited)


def _same_event(record: EventRecord, url: str, keys: dict[str, Any], listing_urls: frozenset) -> bool:
    if url not in listing_urls and record.url == url:
        return True
    return _same_key(record, keys)


class EventStore:
    """JSON-file backed collection of EventRecords keyed by id."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else config.STORE_PATH
        self._records: dict[str, EventRecord] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            for doc in data.get("events", []):
                record = EventRecord.model_validate(doc)
                self._records[record.id] = record
        except (OSError, ValueError) as e:
            raise StoreUnavailableError(f"Cannot read event store {self.path}: {e}") from e
        console.print(f"[dim]Loaded {len(self._records)} events from store[/dim]")

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump({
                    "updated_at": datetime.now().timestamp(),
                    "events": [r.to_document() for r in self._records.values()],
                }, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write event store {self.path}: {e}") from e

    def all(self) -> list[EventRecord]:
        return list(self._records.values())

    def get(self, record_id: str) -> Optional[EventRecord]:
        return self._records.get(record_id)

    def find(self, **criteria: Any) -> list[EventRecord]:
        """Records whose fields equal all given values."""
        return [
            r for r in self._records.values()
            if all(getattr(r, name) == value for name, value in criteria.items())
        ]

    def find_match(
        self,
        url: str,
        source: str,
        title: str,
        city: Optional[str],
        start: Optional[datetime],
        window: timedelta = MATCH_WINDOW,
        listing_urls: frozenset = frozenset(),
    ) -> Optional[EventRecord]:
        """Record for the same event, tolerating a reschedule within `window`.

        A record is the same event when it has the same url, or the same
        source, title and city. Urls in `listing_urls` are shared by many
        events and only count through the second rule. Key fields a human
        has edited on a record are not compared, since the source keeps
        publishing the old value. Events without a start only match records
        without a start. Among several candidates the one with the closest
        start wins.
        """
        keys = {"source": source, "title": title, "city": city}
        candidates = [r for r in self._records.values() if _same_event(r, url, keys, listing_urls)]

        if start is None:
            return next((r for r in candidates if r.start is None), None)

        best = None
        for record in candidates:
            if record.start is None:
                continue
            distance = abs(record.start - start)
            if distance <= window and (best is None or distance < abs(best.start - start)):
                best = record
        return best

    def insert(self, record: EventRecord) -> EventRecord:
        self._records[record.id] = record
        self._save()
        return record

    def update(self, record_id: str, fields: dict[str, Any]) -> EventRecord:
        """Set fields on a record. Raises KeyError for unknown ids."""
        record = self._records[record_id]
        updated = record.model_copy(update=fields)
        self._records[record_id] = updated
        self._save()
        return updated

    def delete(self, record_id: str) -> None:
        """Hard delete; only used by maintenance scripts."""
        del self._records[record_id]
        self._save()

    def apply_manual_edit(self, record_id: str, changes: dict[str, Any]) -> EventRecord:
        """Apply a human edit: the changed fields become protected from scraper updates."""
        record = self._records[record_id]
        fields = {to_snake(name): value for name, value in changes.items()}
        edited = list(record.edited_fields)
        for name in fields:
            if name not in edited:
                edited.append(name)
        return self.update(record_id, {
            **fields,
            "edited_fields": edited,
            "manually_edited": True,
            "updated_at": utcnow(),
        })
