"""Enrichment applied to scraped drafts before import."""

from protest_pipeline.enrichers.geocode import (
    GeocodeCache,
    Geocoder,
    apply_geocoding,
    geocode_locations,
    normalize_address,
)

__all__ = [
    "GeocodeCache",
    "Geocoder",
    "apply_geocoding",
    "geocode_locations",
    "normalize_address",
]
