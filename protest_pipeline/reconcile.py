"""Reconciliation of scraped drafts against the event store.

Rules, in order, for each draft:

1. A matching record marked `fully_manual` is never touched.
2. `should_delete` soft-deletes a live matching record and changes nothing else.
3. Deleted records are not resurrected.
4. Unmatched drafts are inserted.
5. Matched drafts update every field a human has not edited; `verified`
   and `updated_at` are always refreshed and `created_by` is cleared.
"""

from enum import Enum
from typing import Any, Optional

from pydantic.alias_generators import to_snake
from rich.console import Console

from protest_pipeline.enrichers.geocode import location_key
from protest_pipeline.models import SCRAPED_FIELDS, DraftEvent, EventRecord, GeoPoint, GeoResult, ImportSummary
from protest_pipeline.models.event import utcnow
from protest_pipeline.sources.registry import LISTING_URLS
from protest_pipeline.store.events import EventStore, StoreUnavailableError

console = Console()


class Outcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED = "skipped"


def updatable_fields(record: EventRecord, changes: dict[str, Any]) -> dict[str, Any]:
    """Drop every change to a field a human has edited on this record.

    `edited_fields` may hold API (camelCase) or model (snake_case) names.
    Coordinates follow the location: an edited location also pins them.
    """
    protected = {to_snake(name) for name in record.edited_fields}
    if "location" in protected:
        protected.add("geo_location")
    return {name: value for name, value in changes.items() if name not in protected}


class Reconciler:
    def __init__(self, store: EventStore, listing_urls: frozenset = LISTING_URLS):
        self.store = store
        self.listing_urls = listing_urls

    def reconcile_one(self, draft: DraftEvent, geo: Optional[GeoResult] = None) -> Outcome:
        existing = self.store.find_match(
            url=draft.url,
            source=draft.source,
            title=draft.title,
            city=draft.city,
            start=draft.start,
            listing_urls=self.listing_urls,
        )

        if existing and existing.fully_manual:
            return Outcome.SKIPPED

        if draft.should_delete:
            if existing and not existing.deleted:
                self.store.update(existing.id, {"deleted": True})
                return Outcome.DELETED
            return Outcome.SKIPPED

        if existing and existing.deleted:
            return Outcome.SKIPPED

        if existing is None:
            self.store.insert(EventRecord.from_draft(draft, geo))
            return Outcome.INSERTED

        changes = {name: getattr(draft, name) for name in SCRAPED_FIELDS}
        if geo:
            changes["geo_location"] = GeoPoint.from_lat_lon(geo.lat, geo.lon)

        fields = updatable_fields(existing, changes)
        fields["verified"] = draft.verified
        fields["updated_at"] = utcnow()
        if existing.created_by:
            fields["created_by"] = None

        self.store.update(existing.id, fields)
        return Outcome.UPDATED

    def reconcile(
        self,
        drafts: list[DraftEvent],
        geo: Optional[dict[str, GeoResult]] = None,
        days: int = 0,
    ) -> ImportSummary:
        """Reconcile a deduplicated batch.

        A failing draft is counted as skipped; an unavailable store aborts.
        """
        geo = geo or {}
        summary = ImportSummary(total=len(drafts), range=days)

        for draft in drafts:
            summary.by_source[draft.source] = summary.by_source.get(draft.source, 0) + 1
            key = location_key(draft)
            try:
                outcome = self.reconcile_one(draft, geo.get(key) if key else None)
            except StoreUnavailableError:
                raise
            except Exception as e:
                console.print(f"[yellow]Failed to import {draft.title[:50]!r}: {e}[/yellow]")
                outcome = Outcome.SKIPPED

            if outcome is Outcome.INSERTED:
                summary.inserted += 1
            elif outcome is Outcome.UPDATED:
                summary.updated += 1
            elif outcome is Outcome.DELETED:
                summary.deleted += 1
            else:
                summary.skipped += 1

        return summary
