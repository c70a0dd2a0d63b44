"""Geocoding via OSM Nominatim with a persistent JSON cache.

Nominatim's usage policy allows about one request per second, so provider
calls are serialized on one lock and followed by a courtesy delay. Each
distinct location string is looked up at most once; answers (hits only)
are kept in the cache across runs.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import httpx
from rich.console import Console

from protest_pipeline import config
from protest_pipeline.models import DraftEvent, GeoResult
from protest_pipeline.normalizers.countries import get_country_name

console = Console()

GEOCODE_TIMEOUT = 10.0
GEOCODE_DELAY = 1.1


def normalize_address(address: Optional[dict]) -> str:
    """Compact display address from Nominatim address details.

    "postcode locality, state, suburb"; missing parts are left out. The
    sub-area is the suburb, else the city district.
    """
    if not address:
        return ""

    locality = address.get("city") or address.get("town") or address.get("village")
    place = " ".join(p for p in (address.get("postcode"), locality) if p)
    sub_area = address.get("suburb") or address.get("city_district")

    return ", ".join(p for p in (place, address.get("state"), sub_area) if p)


def location_key(draft: DraftEvent) -> Optional[str]:
    """String a draft is geocoded by: its raw location, else its city."""
    key = draft.original_location or draft.location or draft.city
    return key.strip() if key and key.strip() else None


class GeocodeCache:
    """Query string -> GeoResult, stored as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else config.GEOCODE_CACHE_PATH
        self._entries: dict[str, GeoResult] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            for query, entry in data.get("entries", {}).items():
                self._entries[query] = GeoResult.model_validate(entry)
            console.print(f"[dim]Loaded {len(self._entries)} geocode cache entries[/dim]")
        except Exception as e:
            console.print(f"[yellow]Failed to load geocode cache: {e}[/yellow]")
            self._entries = {}

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump({
                    "cached_at": datetime.now().timestamp(),
                    "entries": {q: r.model_dump() for q, r in self._entries.items()},
                }, f, indent=2, ensure_ascii=False)
        except OSError as e:
            console.print(f"[yellow]Failed to save geocode cache: {e}[/yellow]")

    def get(self, query: str) -> Optional[GeoResult]:
        return self._entries.get(query)

    def set(self, query: str, result: GeoResult) -> None:
        self._entries[query] = result
        self.save()

    def __contains__(self, query: str) -> bool:
        return query in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class Geocoder:
    """Serialized, cached Nominatim lookups."""

    def __init__(
        self,
        cache: GeocodeCache,
        client: Optional[httpx.AsyncClient] = None,
        delay: float = GEOCODE_DELAY,
        url: str = config.NOMINATIM_URL,
        user_agent: str = config.USER_AGENT,
    ):
        self.cache = cache
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=GEOCODE_TIMEOUT)
        self.delay = delay
        self.url = url
        self.user_agent = user_agent
        self._lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _search(self, query: str) -> Optional[GeoResult]:
        """One provider call. None on no result or any transport problem."""
        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
        }
        async with self._lock:
            try:
                resp = await self.client.get(
                    self.url,
                    params=params,
                    headers={"User-Agent": self.user_agent},
                    timeout=GEOCODE_TIMEOUT,
                )
                if resp.status_code != 200:
                    console.print(f"[dim]Nominatim {resp.status_code} for {query!r}[/dim]")
                    return None
                data = resp.json()
                if not data:
                    return None
                hit = data[0]
                return GeoResult(
                    lat=float(hit["lat"]),
                    lon=float(hit["lon"]),
                    display_address=normalize_address(hit.get("address")) or hit.get("display_name"),
                )
            except Exception as e:
                console.print(f"[dim]Nominatim error for {query!r}: {e}[/dim]")
                return None
            finally:
                if self.delay > 0:
                    await asyncio.sleep(self.delay)

    async def geocode(
        self,
        query: str,
        city: Optional[str] = None,
        country: Optional[str] = None,
    ) -> Optional[GeoResult]:
        """Geocode a location string, retrying once with "city, country name"."""
        query = (query or "").strip()
        if not query:
            return None

        cached = self.cache.get(query)
        if cached:
            return cached

        result = await self._search(query)

        if result is None and city:
            fallback = f"{city}, {get_country_name(country)}" if country else city
            if fallback != query:
                result = self.cache.get(fallback) or await self._search(fallback)
                if result and fallback not in self.cache:
                    self.cache.set(fallback, result)

        if result:
            self.cache.set(query, result)
        return result


async def geocode_locations(drafts: list[DraftEvent], geocoder: Geocoder) -> dict[str, GeoResult]:
    """Geocode each distinct location of a batch once."""
    unique: dict[str, DraftEvent] = {}
    for draft in drafts:
        key = location_key(draft)
        if key and key not in unique:
            unique[key] = draft

    console.print(f"[cyan]Geocoding {len(unique)} unique locations...[/cyan]")

    results: dict[str, GeoResult] = {}
    from_cache = failed = 0
    for key, draft in unique.items():
        if key in geocoder.cache:
            from_cache += 1
        result = await geocoder.geocode(key, draft.city, draft.country)
        if result:
            results[key] = result
        else:
            failed += 1

    console.print(
        f"[green]Geocoded {len(results)} locations[/green] "
        f"[dim](cached: {from_cache}, failed: {failed})[/dim]"
    )
    return results


def apply_geocoding(drafts: list[DraftEvent], results: dict[str, GeoResult]) -> list[DraftEvent]:
    """Swap raw locations for normalized addresses where one was found.

    The raw text moves to `original_location`, so the draft can still be
    looked up in `results` afterwards.
    """
    updated = []
    for draft in drafts:
        key = location_key(draft)
        result = results.get(key) if key else None
        if result and result.display_address:
            draft = draft.model_copy(update={
                "original_location": key,
                "location": result.display_address,
            })
        updated.append(draft)
    return updated
