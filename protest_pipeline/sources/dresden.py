"""Dresden City assembly overview (JSON feed)."""

import re
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict
from rich.console import Console

from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent
from protest_pipeline.normalizers.attendees import extract_attendees
from protest_pipeline.normalizers.dates import resolve_date
from protest_pipeline.normalizers.locales import LOCALES

console = Console()

DATA_URL = "https://www.dresden.de/data_ext/versammlungsuebersicht/Versammlungen.json"
PAGE_URL = "https://www.dresden.de/de/rathaus/dienstleistungen/versammlungsuebersicht.php"
SOURCE_NAME = "www.dresden.de"
REQUEST_DELAY = 1.0

# Assembly status codes published by the city
STATUS_APPROVED = "beschieden"
STATUS_REGISTERED = "angemeldet"


class RawDresdenRecord(BaseModel):
    """One entry of the `Versammlungen` array."""

    Datum: Optional[str] = None
    Zeit: Optional[str] = None  # "11.00 - 14.00 Uhr"
    Thema: Optional[str] = None
    Ort: Optional[str] = None
    Startpunkt: Optional[str] = None
    Teilnehmer: Optional[str | int] = None
    Status: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


def map_status(status: Optional[str]) -> tuple[bool, bool]:
    """Status code -> (verified, should_delete)."""
    if not status:
        return True, False
    code = status.strip().lower()
    if code == STATUS_APPROVED:
        return True, False
    if code == STATUS_REGISTERED:
        return False, False
    # Rejected, cancelled, withdrawn, ...
    return False, True


def transform_dresden_record(raw: RawDresdenRecord, days: int, now: Optional[datetime] = None) -> Optional[DraftEvent]:
    """Build a draft from one feed entry, or None if it has no usable date."""
    locale = LOCALES["DE"]
    date_txt = raw.Datum or ""
    time_txt = raw.Zeit or ""

    start_txt = f"{date_txt} {time_txt[0:5]}" if time_txt else date_txt
    end_txt = f"{date_txt} {time_txt[8:13]}" if time_txt else date_txt

    start = resolve_date(start_txt, locale, now=now)
    if not start:
        console.print(f"[dim]Dresden: unparsable date {start_txt!r}[/dim]")
        return None

    horizon = (now or datetime.now(start.value.tzinfo)) + timedelta(days=days)
    if start.value > horizon:
        return None

    end = resolve_date(end_txt, locale, now=now)

    attendees = None
    try:
        attendees = int(re.sub(r"[\s.,'’]", "", str(raw.Teilnehmer))) if raw.Teilnehmer is not None else None
    except ValueError:
        attendees = None
    if not attendees or attendees <= 0:
        attendees = extract_attendees(raw.Thema, locale)

    location = "Dresden"
    if raw.Ort or raw.Startpunkt:
        location += ", " + (raw.Ort or raw.Startpunkt)

    verified, should_delete = map_status(raw.Status)

    return DraftEvent(
        source=SOURCE_NAME,
        city="Dresden",
        country=locale.country_code,
        title=raw.Thema or "Versammlung",
        start=start.value,
        start_time_known=start.has_time,
        end=end.value if end else None,
        end_time_known=end.has_time if end else False,
        location=location,
        language=locale.language,
        url=PAGE_URL,
        attendees=attendees,
        verified=verified,
        should_delete=should_delete,
    )


def parse_dresden_json(data: dict, days: int = 90, now: Optional[datetime] = None) -> list[DraftEvent]:
    records = data.get("Versammlungen") if isinstance(data, dict) else None
    if not isinstance(records, list):
        console.print("[yellow]Dresden: no Versammlungen array in response[/yellow]")
        return []

    events = []
    for item in records:
        try:
            raw = RawDresdenRecord.model_validate(item)
            event = transform_dresden_record(raw, days, now)
            if event:
                events.append(event)
        except Exception as e:
            console.print(f"[yellow]Dresden: skipping invalid record: {e}[/yellow]")
    return events


async def parse_dresden_city(days: int = 90, ctx: Optional[ScrapeContext] = None) -> list[DraftEvent]:
    """Fetch the Dresden assembly feed. Never raises."""
    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    try:
        if not await ctx.allowed(DATA_URL):
            console.print("[yellow]Dresden City: blocked by robots.txt[/yellow]")
            return []

        response = await ctx.get(DATA_URL)
        await ctx.pause(REQUEST_DELAY)
        events = parse_dresden_json(response.json(), days)
        console.print(f"[green]Dresden City: {len(events)} events[/green]")
        return events
    except Exception as e:
        console.print(f"[red]Dresden City failed: {e}[/red]")
        return []
    finally:
        if owns_ctx:
            await ctx.aclose()
