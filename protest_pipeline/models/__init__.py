"""Data models for the protest pipeline."""

from protest_pipeline.models.event import (
    SCRAPED_FIELDS,
    DraftEvent,
    EventRecord,
    GeoPoint,
    GeoResult,
    ImportSummary,
)
from protest_pipeline.models.locale import Locale

__all__ = [
    "SCRAPED_FIELDS",
    "DraftEvent",
    "EventRecord",
    "GeoPoint",
    "GeoResult",
    "ImportSummary",
    "Locale",
]
