"""Friedenskooperative event calendar.

The calendar is a Drupal view loaded through `/views/ajax`. Results are
filtered by event category and paginated, so every category is walked page
by page until a page comes back empty.
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

BASE_URL = "https://www.friedenskooperative.de"
ENDPOINT = f"{BASE_URL}/views/ajax"
SOURCE_NAME = "www.friedenskooperative.de"
REQUEST_DELAY = 1.5
MAX_PAGES = 20

# veranstaltungsart filter id -> category tag
CATEGORIES = {
    "34": "Demonstration",
    "35": "Vigil",
    "53": "Government Event",
    "54": "Counter-Demonstration",
    "55": "Blockade",
}

AJAX_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}


def build_form(page: int, category_id: str) -> dict[str, str]:
    """Form body for one page of the `termine` view (mostly site boilerplate)."""
    return {
        "page": str(page),
        "view_name": "termine",
        "view_display_id": "page",
        "view_args": "",
        "view_path": "node/33",
        "view_base_path": "termine",
        "view_dom_id": "c591d6225e0201870f07992dce6c489c",
        "pager_element": "0",
        "field_date_event_rrule": "1",
        "bundesland": "All",
        "veranstaltungsart": category_id,
        "thema": "All",
    }


def extract_insert_html(commands) -> Optional[str]:
    """Pick the HTML payload out of a Drupal AJAX command list."""
    if not isinstance(commands, list):
        return None
    for cmd in commands:
        if isinstance(cmd, dict) and cmd.get("command") == "insert" and cmd.get("data"):
            return cmd["data"]
    return None


def parse_friedenskooperative_html(
    html: str,
    category: str,
    days: int = 90,
    now: Optional[datetime] = None,
) -> tuple[list[DraftEvent], int]:
    """Parse one result page. Returns (events, rows seen)."""
    locale = LOCALES["DE"]
    soup = BeautifulSoup(html, "html.parser")
    contents = soup.select(".view-content")
    if not contents:
        return [], 0

    view = contents[-1]
    rows_seen = len(view.select(".row.row-eq-height"))
    events = []
    year = str((now or datetime.now()).year)

    for elem in view.find_all(recursive=False):
        if elem.name == "h3":
            # "Oktober 2025"
            match = re.search(r"(\d{4})", elem.get_text())
            if match:
                year = match.group(1)
            continue

        if "box" not in (elem.get("class") or []):
            continue

        for row in elem.select(".row.row-eq-height"):
            title_link = row.select_one("h2.node-title a")
            title = (title_link.get_text(strip=True) if title_link else "") or "Friedensaktion"
            href = title_link.get("href", "") if title_link else ""
            url = href if href.startswith("http") else BASE_URL + href

            date_elem = row.select_one(".date-column .date")
            if not date_elem:
                continue

            start_time = end_time = None
            date_range = date_elem.select_one(".date-display-range")
            if date_range:
                date_range.extract()
                start_el = date_range.select_one(".date-display-start")
                end_el = date_range.select_one(".date-display-end")
                start_time = start_el.get_text(strip=True) if start_el else None
                end_time = end_el.get_text(strip=True) if end_el else None

            single = date_elem.select_one(".date-display-single")
            date_txt = single.get_text(" ", strip=True) if single else ""

            start_txt = f"{date_txt} {start_time}" if start_time else date_txt
            start = resolve_date(f"{start_txt} {year}", locale, now=now)
            if not start:
                continue

            horizon = (now or datetime.now(start.value.tzinfo)) + timedelta(days=days)
            if start.value > horizon:
                continue

            end = resolve_date(f"{date_txt} {end_time} {year}", locale, now=now) if end_time else None

            city_el = row.select_one(".date-column .city")
            city = city_el.get_text(strip=True) if city_el else None
            city = city or None

            place_el = row.select(".place.line.info span")
            place = " ".join(el.get_text(strip=True) for el in place_el).strip()
            location = place or None
            if place and not city:
                city = place.split(",", 1)[0].strip() or None

            events.append(DraftEvent(
                source=SOURCE_NAME,
                city=city,
                country=locale.country_code,
                title=title,
                start=start.value,
                start_time_known=start.has_time,
                end=end.value if end else None,
                end_time_known=end.has_time if end else False,
                location=location or city,
                language=locale.language,
                url=url,
                attendees=extract_attendees(row.get_text(" "), locale),
                categories=[category],
            ))

    return events, rows_seen


async def parse_friedenskooperative(days: int = 90, ctx: Optional[ScrapeContext] = None) -> list[DraftEvent]:
    """Walk every category of the calendar. Never raises.

    A failing page ends that category; events already collected are kept.
    """
    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    events: list[DraftEvent] = []
    try:
        if not await ctx.allowed(ENDPOINT):
            console.print("[yellow]Friedenskooperative: blocked by robots.txt[/yellow]")
            return []

        for category_id, category in CATEGORIES.items():
            console.print(f"[dim]Friedenskooperative: category {category_id} ({category})[/dim]")
            for page in range(MAX_PAGES):
                try:
                    response = await ctx.post(
                        ENDPOINT,
                        data=build_form(page, category_id),
                        headers=AJAX_HEADERS,
                    )
                    await ctx.pause(REQUEST_DELAY)

                    html = extract_insert_html(response.json())
                    if not html:
                        break

                    page_events, rows_seen = parse_friedenskooperative_html(html, category, days)
                    events.extend(page_events)
                    if rows_seen == 0:
                        break
                except Exception as e:
                    console.print(f"[yellow]Friedenskooperative: category {category_id} page {page} failed: {e}[/yellow]")
                    break

        console.print(f"[green]Friedenskooperative: {len(events)} events[/green]")
        return events
    except Exception as e:
        console.print(f"[red]Friedenskooperative failed: {e}[/red]")
        return events
    finally:
        if owns_ctx:
            await ctx.aclose()
