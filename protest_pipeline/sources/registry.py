"""Registry of scraper sources.

Adding a source means writing one parser with the signature
`async def parse_x(days, ctx) -> list[DraftEvent]` and adding one entry to
SOURCES; the pipeline picks it up from here.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent
from protest_pipeline.sources import amnesty, berlin, demokrateam, dresden, friedenskooperative
from protest_pipeline.sources.amnesty import parse_amnesty_swiss
from protest_pipeline.sources.berlin import parse_berlin_police
from protest_pipeline.sources.demokrateam import parse_demokrateam
from protest_pipeline.sources.dresden import parse_dresden_city
from protest_pipeline.sources.friedenskooperative import parse_friedenskooperative

Parser = Callable[[int, Optional[ScrapeContext]], Awaitable[list[DraftEvent]]]


@dataclass
class ScraperSource:
    id: str
    name: str
    country: str  # ISO 3166-1 alpha-2
    parser: Parser
    city: Optional[str] = None  # None = nationwide
    enabled: bool = True
    description: str = ""


SOURCES: list[ScraperSource] = [
    # Germany
    ScraperSource(
        id="berlin-police",
        name="Berlin Police",
        country="DE",
        city="Berlin",
        parser=parse_berlin_police,
        description="Official assembly registry from Berlin Police",
    ),
    ScraperSource(
        id="dresden-city",
        name="Dresden City",
        country="DE",
        city="Dresden",
        parser=parse_dresden_city,
        description="Public assembly JSON feed from Dresden City",
    ),
    ScraperSource(
        id="friedenskooperative",
        name="Friedenskooperative",
        country="DE",
        parser=parse_friedenskooperative,
        description="Peace movement events across Germany (5 categories)",
    ),
    ScraperSource(
        id="demokrateam",
        name="DemokraTEAM",
        country="DE",
        parser=parse_demokrateam,
        description="Democracy and protest events across Germany",
    ),
    # Switzerland
    ScraperSource(
        id="amnesty-swiss",
        name="Amnesty International Switzerland",
        country="CH",
        parser=parse_amnesty_swiss,
        description="Protest calendar from Amnesty International Switzerland",
    ),
]


# Pages parsers fall back to when an event has no page of its own. Many
# events share these, so they never identify an event.
LISTING_URLS = frozenset({
    berlin.SOURCE_URL,
    dresden.PAGE_URL,
    friedenskooperative.BASE_URL,
    demokrateam.FALLBACK_URL,
    amnesty.CALENDAR_URL,
})


def get_enabled_sources() -> list[ScraperSource]:
    return [s for s in SOURCES if s.enabled]


def get_sources_by_country(country_code: str) -> list[ScraperSource]:
    """Enabled sources for an exact (case-sensitive) country code."""
    return [s for s in SOURCES if s.enabled and s.country == country_code]


def get_source_by_id(source_id: str) -> Optional[ScraperSource]:
    return next((s for s in SOURCES if s.id == source_id), None)


def get_available_countries() -> list[str]:
    """Sorted country codes with at least one enabled source."""
    return sorted({s.country for s in SOURCES if s.enabled})
