"""Data models for the protest ingestion pipeline."""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Document(BaseModel):
    """Base for models that are serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Convert to the JSON document shape consumed by the API layer."""
        return self.model_dump(mode="json", by_alias=True)


class GeoPoint(_Document):
    """GeoJSON point. Coordinates are [longitude, latitude]."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @classmethod
    def from_lat_lon(cls, lat: float, lon: float) -> "GeoPoint":
        return cls(coordinates=(lon, lat))


class GeoResult(BaseModel):
    """Geocoder answer for one location string."""

    lat: float
    lon: float
    display_address: Optional[str] = None


class DraftEvent(_Document):
    """One scraped, not yet persisted event in canonical form."""

    source: str
    city: Optional[str] = None
    country: Optional[str] = None  # ISO 3166-1 alpha-2
    title: str

    start: Optional[datetime] = None
    start_time_known: bool = False
    end: Optional[datetime] = None
    end_time_known: bool = False

    location: Optional[str] = None
    original_location: Optional[str] = None  # Raw location before geocoder normalization
    language: Optional[str] = None
    url: str
    attendees: Optional[int] = None
    categories: list[str] = Field(default_factory=list)

    # Scraper sources are authoritative unless the source flags otherwise
    verified: bool = True
    should_delete: bool = False


# Fields the reconciliation engine may copy from a draft onto a record.
# `verified` is refreshed unconditionally and is not part of this list.
SCRAPED_FIELDS = (
    "source",
    "city",
    "country",
    "title",
    "start",
    "start_time_known",
    "end",
    "end_time_known",
    "location",
    "original_location",
    "language",
    "url",
    "attendees",
    "categories",
)


class EventRecord(DraftEvent):
    """Persisted event."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    should_delete: bool = Field(default=False, exclude=True)

    geo_location: Optional[GeoPoint] = None

    deleted: bool = False
    manually_edited: bool = False
    edited_fields: list[str] = Field(default_factory=list)
    fully_manual: bool = False
    created_by: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_draft(
        cls,
        draft: DraftEvent,
        geo: Optional[GeoResult] = None,
        now: Optional[datetime] = None,
    ) -> "EventRecord":
        """Build a fresh scraper-authored record from a draft."""
        now = now or utcnow()
        data = {name: getattr(draft, name) for name in SCRAPED_FIELDS}
        return cls(
            **data,
            verified=draft.verified,
            geo_location=GeoPoint.from_lat_lon(geo.lat, geo.lon) if geo else None,
            created_at=now,
            updated_at=now,
        )


class ImportSummary(BaseModel):
    """Result of one ingestion run."""

    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    total: int = 0  # Candidate drafts after dedup
    range: int = 0  # Horizon in days
    by_source: dict[str, int] = Field(default_factory=dict)
