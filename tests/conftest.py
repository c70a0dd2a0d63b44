"""Shared test fixtures and configuration."""

from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

import httpx
import pytest

from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent
from protest_pipeline.store.events import EventStore

BERLIN = ZoneInfo("Europe/Berlin")


@pytest.fixture
def berlin_now() -> datetime:
    """Fixed reference time for date and horizon checks."""
    return datetime(2025, 10, 20, 12, 0, tzinfo=BERLIN)


@pytest.fixture
def make_draft() -> Callable[..., DraftEvent]:
    """Factory for drafts with sensible defaults."""

    def _make(**overrides) -> DraftEvent:
        data = {
            "source": "www.berlin.de",
            "city": "Berlin",
            "country": "DE",
            "title": "Demo für Klimaschutz",
            "start": datetime(2025, 10, 23, 14, 0, tzinfo=BERLIN),
            "start_time_known": True,
            "location": "10117 Berlin, Pariser Platz",
            "language": "de-DE",
            "url": "https://www.berlin.de/polizei/service/versammlungsbehoerde/versammlungen-aufzuege/",
        }
        data.update(overrides)
        return DraftEvent(**data)

    return _make


@pytest.fixture
def store(tmp_path) -> EventStore:
    return EventStore(tmp_path / "events.json")


@pytest.fixture
def make_context() -> Callable[..., ScrapeContext]:
    """Build a ScrapeContext whose HTTP traffic goes to `handler`.

    robots.txt requests answer 404 (allow all) unless the handler says
    otherwise. Must be called inside a running event loop.
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ScrapeContext:
        def route(request: httpx.Request) -> httpx.Response:
            response = handler(request)
            if response is None and request.url.path == "/robots.txt":
                return httpx.Response(404)
            return response

        client = httpx.AsyncClient(transport=httpx.MockTransport(route))
        return ScrapeContext(client=client, throttle=False)

    return _make
