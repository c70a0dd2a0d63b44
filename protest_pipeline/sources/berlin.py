"""Berlin Police assembly registry.

Source: https://www.berlin.de/polizei/service/versammlungsbehoerde/versammlungen-aufzuege/
One HTML table, columns: Datum, Von, Bis, Thema, PLZ, Versammlungsort, Aufzugsstrecke.
"""

from datetime import datetime, timedelta
from typing import Optional

from bs4 import BeautifulSoup
from rich.console import Console

from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent
from protest_pipeline.normalizers.attendees import extract_attendees
from protest_pipeline.normalizers.dates import resolve_date
from protest_pipeline.normalizers.locales import LOCALES

console = Console()

SOURCE_URL = "https://www.berlin.de/polizei/service/versammlungsbehoerde/versammlungen-aufzuege/"
SOURCE_NAME = "www.berlin.de"
REQUEST_DELAY = 1.0


def parse_berlin_html(html: str, days: int = 90, now: Optional[datetime] = None) -> list[DraftEvent]:
    """Extract events from the registry table."""
    locale = LOCALES["DE"]
    soup = BeautifulSoup(html, "html.parser")
    events = []

    for tr in soup.select("table#searchresults-table tbody tr"):
        cells = [td.get_text(strip=True) for td in tr.find_all("td")]
        if len(cells) < 4:
            continue

        cells += [""] * (6 - len(cells))
        datum, von, bis, thema, plz, ort = cells[:6]

        start = resolve_date(f"{datum} {von}", locale, now=now)
        if not start:
            continue

        horizon = (now or datetime.now(start.value.tzinfo)) + timedelta(days=days)
        if start.value > horizon:
            continue

        end = resolve_date(f"{datum} {bis}", locale, now=now) if bis else None

        location = ", ".join(part for part in (f"{plz} Berlin".strip(), ort) if part)

        events.append(DraftEvent(
            source=SOURCE_NAME,
            city="Berlin",
            country=locale.country_code,
            title=thema or "Versammlung",
            start=start.value,
            start_time_known=start.has_time,
            end=end.value if end else None,
            end_time_known=end.has_time if end else False,
            location=location or None,
            language=locale.language,
            url=SOURCE_URL,
            attendees=extract_attendees(thema, locale),
        ))

    return events


async def parse_berlin_police(days: int = 90, ctx: Optional[ScrapeContext] = None) -> list[DraftEvent]:
    """Scrape the Berlin Police assembly list. Never raises."""
    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    try:
        if not await ctx.allowed(SOURCE_URL):
            console.print("[yellow]Berlin Police: blocked by robots.txt[/yellow]")
            return []

        response = await ctx.get(SOURCE_URL)
        events = parse_berlin_html(response.text, days)
        await ctx.pause(REQUEST_DELAY)
        console.print(f"[green]Berlin Police: {len(events)} events[/green]")
        return events
    except Exception as e:
        console.print(f"[red]Berlin Police failed: {e}[/red]")
        return []
    finally:
        if owns_ctx:
            await ctx.aclose()
