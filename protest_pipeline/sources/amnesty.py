"""Amnesty International Switzerland demo calendar.

Events are list items grouped under month headings (h5):

    <h5>November 2025</h5>
    <li>22. November | Bern<br>Kundgebung ..., Bundesplatz, 14:15 Uhr, <a>Link</a></li>

The site sits behind Cloudflare rate limiting, so it is fetched once per run
after a courtesy delay. Pre-fetched HTML (e.g. saved from a browser) can be
passed in directly.
"""

import re
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

BASE_URL = "https://www.amnesty.ch"
CALENDAR_URL = f"{BASE_URL}/de/themen/recht-auf-protest/demo-kalender"
SOURCE_NAME = "www.amnesty.ch"
REQUEST_DELAY = 2.0

REQUEST_HEADERS = {
    "Accept-Language": "de-CH,de;q=0.9,en;q=0.8",
    "Referer": f"{BASE_URL}/de/themen/recht-auf-protest",
}

FIRST_LINE_PATTERN = re.compile(r"(\d{1,2}\.\s*\w+)\s*\|\s*(.+)")
TIME_PATTERN = re.compile(r"(\d{1,2}[:.]\d{2})\s*Uhr", re.IGNORECASE)


def split_lines(li) -> list[str]:
    """Text of a list item, split on <br> tags."""
    lines: list[list[str]] = [[]]
    for node in li.children:
        if getattr(node, "name", None) == "br":
            lines.append([])
        elif hasattr(node, "get_text"):
            lines[-1].append(node.get_text())
        else:
            lines[-1].append(str(node))
    return [text for text in ("".join(parts).strip() for parts in lines) if text]


def split_title_location(line: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """'Title, Place, 14:15 Uhr, Link' -> (title, location, time)."""
    time_match = TIME_PATTERN.search(line)
    if time_match:
        before = line[:time_match.start()]
        parts = [p.strip() for p in before.split(",") if p.strip()]
        time_txt = time_match.group(1)
    else:
        parts = [p.strip() for p in line.split(",") if p.strip() and "link" not in p.lower()]
        time_txt = None

    if not parts:
        return None, None, None
    if len(parts) == 1:
        return parts[0], None, time_txt
    return ", ".join(parts[:-1]), parts[-1], time_txt


def parse_amnesty_html(html: str, days: int = 90, now: Optional[datetime] = None) -> list[DraftEvent]:
    locale = LOCALES["CH"]
    soup = BeautifulSoup(html, "html.parser")
    content = (
        soup.select_one("#article-body")
        or soup.select_one(".main-content")
        or soup.find("main")
        or soup.body
        or soup
    )

    events = []
    year = str((now or datetime.now()).year)

    for elem in content.find_all(["h5", "li"]):
        if elem.name == "h5":
            # "Oktober 2025"
            match = re.search(r"(\d{4})", elem.get_text())
            if match:
                year = match.group(1)
            continue

        try:
            lines = split_lines(elem)
            if len(lines) < 2:
                continue

            first = FIRST_LINE_PATTERN.search(lines[0])
            if not first:
                continue
            day_month, city = first.group(1).strip(), first.group(2).strip()

            # "Verschiedene Städte" is not a single location
            if "verschieden" in city.lower():
                continue

            title, location, time_txt = split_title_location(lines[1])
            if not title:
                continue

            date_txt = f"{day_month} {year}"
            if time_txt:
                date_txt = f"{date_txt} {time_txt}"

            start = resolve_date(date_txt, locale, now=now)
            if not start:
                console.print(f"[dim]Amnesty Switzerland: unparsable date {date_txt!r}[/dim]")
                continue

            horizon = (now or datetime.now(start.value.tzinfo)) + timedelta(days=days)
            if start.value > horizon:
                continue

            url = CALENDAR_URL
            link = elem.find("a", href=True)
            if link:
                href = link["href"]
                url = href if href.startswith("http") else BASE_URL + href

            events.append(DraftEvent(
                source=SOURCE_NAME,
                city=city,
                country=locale.country_code,
                title=title,
                start=start.value,
                start_time_known=start.has_time,
                location=location or city,
                language=locale.language,
                url=url,
                attendees=extract_attendees(elem.get_text(" "), locale),
                categories=["Demonstration"],
            ))
        except Exception as e:
            console.print(f"[yellow]Amnesty Switzerland: skipping item: {e}[/yellow]")

    return events


async def parse_amnesty_swiss(
    days: int = 90,
    ctx: Optional[ScrapeContext] = None,
    html: Optional[str] = None,
) -> list[DraftEvent]:
    """Scrape the Amnesty Switzerland calendar. Never raises."""
    if html is not None:
        return parse_amnesty_html(html, days)

    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    try:
        if not await ctx.allowed(CALENDAR_URL):
            console.print("[yellow]Amnesty Switzerland: blocked by robots.txt[/yellow]")
            return []

        await ctx.pause(REQUEST_DELAY)
        response = await ctx.get(CALENDAR_URL, headers=REQUEST_HEADERS)
        events = parse_amnesty_html(response.text, days)
        console.print(f"[green]Amnesty Switzerland: {len(events)} events[/green]")
        return events
    except Exception as e:
        console.print(f"[red]Amnesty Switzerland failed: {e}[/red]")
        return []
    finally:
        if owns_ctx:
            await ctx.aclose()
