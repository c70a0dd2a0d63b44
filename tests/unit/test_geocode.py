"""Tests for Nominatim geocoding and its cache."""

import asyncio
import json

import httpx
import pytest
from protest_pipeline.enrichers.geocode import (
    GeocodeCache,
    Geocoder,
    apply_geocoding,
    geocode_locations,
    location_key,
    normalize_address,
)
from protest_pipeline.models import GeoResult

NOMINATIM = "https://nominatim.test/search"


def nominatim_hit(lat: str, lon: str, address: dict | None = None, display_name: str = "") -> list[dict]:
    return [{"lat": lat, "lon": lon, "address": address or {}, "display_name": display_name}]


def make_geocoder(tmp_path, answers: dict[str, httpx.Response], calls: list[str]) -> Geocoder:
    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params["q"]
        calls.append(query)
        return answers.get(query, httpx.Response(200, json=[]))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    cache = GeocodeCache(tmp_path / "geocode_cache.json")
    return Geocoder(cache, client=client, delay=0, url=NOMINATIM)


class TestNormalizeAddress:
    """Tests for normalize_address."""

    @pytest.mark.parametrize("address,expected", [
        ({"road": "Pariser Platz", "house_number": "1", "postcode": "10117", "city": "Berlin",
          "state": "Berlin", "suburb": "Mitte"},
         "10117 Berlin, Berlin, Mitte"),
        ({"road": "Am Treptower Park", "postcode": "12435", "city": "Berlin"}, "12435 Berlin"),
        ({"postcode": "20359", "city": "Hamburg", "state": "Hamburg", "city_district": "Hamburg-Mitte"},
         "20359 Hamburg, Hamburg, Hamburg-Mitte"),
        ({"postcode": "1010", "city": "Vienna", "suburb": "Innere Stadt", "city_district": "Wien"},
         "1010 Vienna, Innere Stadt"),
        ({"city": "Berlin"}, "Berlin"),
        ({"postcode": "75008", "city": "Paris", "state": "Île-de-France", "county": "Paris"},
         "75008 Paris, Île-de-France"),
        ({"road": "Dorfstraße", "village": "Kleinmachnow"}, "Kleinmachnow"),
        ({"town": "Langenthal", "state": "Bern"}, "Langenthal, Bern"),
        ({}, ""),
        (None, ""),
    ])
    def test_formats(self, address, expected: str):
        assert normalize_address(address) == expected


class TestGeocodeCache:
    """Tests for GeocodeCache persistence."""

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "geo.json"
        cache = GeocodeCache(path)
        cache.set("Alexanderplatz, Berlin", GeoResult(lat=52.52, lon=13.41, display_address="Alexanderplatz, 10178 Berlin"))

        reloaded = GeocodeCache(path)
        assert "Alexanderplatz, Berlin" in reloaded
        assert len(reloaded) == 1
        assert reloaded.get("Alexanderplatz, Berlin").lat == 52.52

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "geo.json"
        path.write_text("{not json")
        cache = GeocodeCache(path)
        assert len(cache) == 0
        assert cache.get("anything") is None

    def test_unwritable_path_keeps_entries_in_memory(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        cache = GeocodeCache(blocker / "geo.json")
        cache.set("Alexanderplatz, Berlin", GeoResult(lat=52.52, lon=13.41))

        assert cache.get("Alexanderplatz, Berlin").lat == 52.52
        assert not (blocker / "geo.json").exists()


class TestGeocoder:
    """Tests for Geocoder lookups."""

    def test_hit_is_cached(self, tmp_path):
        calls: list[str] = []
        answers = {
            "Pariser Platz, Berlin": httpx.Response(200, json=nominatim_hit(
                "52.5163", "13.3777",
                {"road": "Pariser Platz", "postcode": "10117", "city": "Berlin"},
            )),
        }

        async def run():
            geocoder = make_geocoder(tmp_path, answers, calls)
            first = await geocoder.geocode("Pariser Platz, Berlin")
            second = await geocoder.geocode("Pariser Platz, Berlin")
            await geocoder.client.aclose()
            return first, second

        first, second = asyncio.run(run())
        assert first == second
        assert first.lat == pytest.approx(52.5163)
        assert first.lon == pytest.approx(13.3777)
        assert first.display_address == "10117 Berlin"
        assert calls == ["Pariser Platz, Berlin"]

        stored = json.loads((tmp_path / "geocode_cache.json").read_text())
        assert "Pariser Platz, Berlin" in stored["entries"]

    def test_unwritable_cache_does_not_fail_lookup(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        answers = {"Pariser Platz, Berlin": httpx.Response(200, json=nominatim_hit("52.5163", "13.3777"))}

        def handler(request: httpx.Request) -> httpx.Response:
            return answers.get(request.url.params["q"], httpx.Response(200, json=[]))

        async def run():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            geocoder = Geocoder(GeocodeCache(blocker / "geo.json"), client=client, delay=0, url=NOMINATIM)
            result = await geocoder.geocode("Pariser Platz, Berlin")
            await client.aclose()
            return result

        result = asyncio.run(run())
        assert result.lat == pytest.approx(52.5163)

    def test_display_name_used_without_address(self, tmp_path):
        answers = {"Somewhere": httpx.Response(200, json=nominatim_hit("1.0", "2.0", display_name="Somewhere, Earth"))}

        async def run():
            geocoder = make_geocoder(tmp_path, answers, [])
            result = await geocoder.geocode("Somewhere")
            await geocoder.client.aclose()
            return result

        assert asyncio.run(run()).display_address == "Somewhere, Earth"

    def test_falls_back_to_city_and_country(self, tmp_path):
        calls: list[str] = []
        answers = {
            "Unbekannter Platz 99": httpx.Response(200, json=[]),
            "Dresden, Germany": httpx.Response(200, json=nominatim_hit("51.05", "13.74", {"city": "Dresden"})),
        }

        async def run():
            geocoder = make_geocoder(tmp_path, answers, calls)
            result = await geocoder.geocode("Unbekannter Platz 99", city="Dresden", country="DE")
            await geocoder.client.aclose()
            return geocoder, result

        geocoder, result = asyncio.run(run())
        assert result.lat == pytest.approx(51.05)
        assert calls == ["Unbekannter Platz 99", "Dresden, Germany"]
        assert "Dresden, Germany" in geocoder.cache
        assert "Unbekannter Platz 99" in geocoder.cache

    def test_miss_is_not_cached(self, tmp_path):
        calls: list[str] = []

        async def run():
            geocoder = make_geocoder(tmp_path, {}, calls)
            result = await geocoder.geocode("Nowhere")
            await geocoder.client.aclose()
            return geocoder, result

        geocoder, result = asyncio.run(run())
        assert result is None
        assert "Nowhere" not in geocoder.cache

    @pytest.mark.parametrize("response", [
        httpx.Response(500),
        httpx.Response(429),
        httpx.Response(200, text="not json"),
    ])
    def test_provider_failures_return_none(self, tmp_path, response):
        async def run():
            geocoder = make_geocoder(tmp_path, {"Alexanderplatz": response}, [])
            result = await geocoder.geocode("Alexanderplatz")
            await geocoder.client.aclose()
            return result

        assert asyncio.run(run()) is None

    def test_blank_query(self, tmp_path):
        calls: list[str] = []

        async def run():
            geocoder = make_geocoder(tmp_path, {}, calls)
            result = await geocoder.geocode("   ")
            await geocoder.client.aclose()
            return result

        assert asyncio.run(run()) is None
        assert calls == []


class TestBatchGeocoding:
    """Tests for geocode_locations and apply_geocoding."""

    def test_each_location_looked_up_once(self, tmp_path, make_draft):
        calls: list[str] = []
        answers = {
            "10117 Berlin, Pariser Platz": httpx.Response(200, json=nominatim_hit(
                "52.5163", "13.3777",
                {"road": "Pariser Platz", "postcode": "10117", "city": "Berlin", "state": "Berlin", "suburb": "Mitte"},
            )),
        }
        drafts = [
            make_draft(title="A"),
            make_draft(title="B"),
            make_draft(title="C", location="Ort ohne Treffer"),
        ]

        async def run():
            geocoder = make_geocoder(tmp_path, answers, calls)
            results = await geocode_locations(drafts, geocoder)
            await geocoder.client.aclose()
            return results

        results = asyncio.run(run())
        assert set(results) == {"10117 Berlin, Pariser Platz"}
        assert calls.count("10117 Berlin, Pariser Platz") == 1

        updated = apply_geocoding(drafts, results)
        assert updated[0].location == "10117 Berlin, Berlin, Mitte"
        assert updated[0].original_location == "10117 Berlin, Pariser Platz"
        assert updated[2].location == "Ort ohne Treffer"
        assert updated[2].original_location is None
        # The raw text stays the lookup key after normalization
        assert location_key(updated[0]) == "10117 Berlin, Pariser Platz"

    def test_location_key_falls_back_to_city(self, make_draft):
        assert location_key(make_draft(location=None)) == "Berlin"
        assert location_key(make_draft(location=None, city=None)) is None
