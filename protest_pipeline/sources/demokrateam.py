"""DemokraTEAM action calendar (WordPress Modern Events Calendar)."""

import json
import math
import re
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup
from rich.console import Console

from protest_pipeline.extractors.fetch import ScrapeContext
from protest_pipeline.models import DraftEvent
from protest_pipeline.normalizers.attendees import extract_attendees
from protest_pipeline.normalizers.dates import resolve_date
from protest_pipeline.normalizers.locales import LOCALES

console = Console()

BASE_URL = "https://www.demokrateam.org"
ENDPOINT = f"{BASE_URL}/wp-admin/admin-ajax.php"
FALLBACK_URL = f"{BASE_URL}/aktionen/"
SOURCE_NAME = "www.demokrateam.org"
REQUEST_DELAY = 1.5
PROTEST_LABEL_ID = "4324"

AJAX_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
DAY_ID_PATTERN = re.compile(r"_(\d{4})(\d{2})(\d{2})$")


def add_months(value: datetime, months: int) -> tuple[int, int]:
    """(year, month) `months` after value's month."""
    index = value.month - 1 + months
    return value.year + index // 12, index % 12 + 1


def build_form(year: int, month: int, day: int) -> dict[str, str]:
    """Form body for one month of the daily view.

    The calendar rejects requests without its `atts[...]` skin options.
    """
    return {
        "action": "mec_daily_view_load_month",
        "mec_year": f"{year:04d}",
        "mec_month": f"{month:02d}",
        "mec_day": str(day),
        "atts[skin]": "daily_view",
        "atts[sk-options][list][limit]": "30",
        "atts[sk-options][daily_view][style]": "classic",
        "atts[sk-options][daily_view][start_date_type]": "today",
        "atts[sk-options][daily_view][limit]": "250",
        "atts[sk-options][daily_view][display_label]": "1",
        "atts[sk-options][daily_view][display_categories]": "1",
        "atts[sf-options][daily_view][label][type]": "simple-checkboxes",
        "atts[sf_status]": "1",
        "atts[show_ongoing_events]": "1",
        "sf[label]": PROTEST_LABEL_ID,
        "sf[month]": f"{month:02d}",
        "sf[year]": f"{year:04d}",
        "apply_sf_date": "1",
    }


def _json_ld_start(article) -> Optional[str]:
    script = article.find_next_sibling("script", attrs={"type": "application/ld+json"})
    if not script:
        return None
    try:
        data = json.loads(script.string or "")
    except json.JSONDecodeError:
        return None
    start = data.get("startDate") if isinstance(data, dict) else None
    return start[:10] if isinstance(start, str) else None


def _day_from_list_item(article) -> Optional[str]:
    # <li id="mec_daily_view_date_events239_20251023">
    li = article.find_parent("li")
    if not li or not li.get("id"):
        return None
    match = DAY_ID_PATTERN.search(li["id"])
    if not match:
        return None
    return "-".join(match.groups())


def parse_demokrateam_html(
    html: str,
    year: int,
    month: int,
    days: int = 90,
    now: Optional[datetime] = None,
) -> list[DraftEvent]:
    """Parse the `month` HTML fragment for one requested month."""
    locale = LOCALES["DE"]
    tz = ZoneInfo(locale.timezone)
    now = now or datetime.now(tz)
    horizon = now + timedelta(days=days)
    soup = BeautifulSoup(html, "html.parser")
    events = []

    for article in soup.select(".mec-event-article"):
        if article.select_one(".mec-no-event"):
            continue

        title_link = article.select_one("h4.mec-event-title a")
        title = (title_link.get_text(strip=True) if title_link else "") or "Demo"
        url = (title_link.get("href") if title_link else None) or FALLBACK_URL

        time_el = article.select_one(".mec-event-time")
        time_txt = " ".join(time_el.get_text().split()) if time_el else ""
        time_match = TIME_PATTERN.search(time_txt)

        start = None
        day = _json_ld_start(article) or _day_from_list_item(article)
        if day:
            date_txt = day
            if time_match:
                date_txt = f"{day} {int(time_match.group(1)):02d}:{time_match.group(2)}"
            start = resolve_date(date_txt, locale, now=now)

        if start:
            start_value, has_time = start.value, start.has_time
        else:
            # Unknown day within the requested month
            start_value, has_time = datetime(year, month, 15, tzinfo=tz), False

        if start_value > horizon:
            continue

        loc_el = article.select_one(".mec-event-loc-place")
        location = loc_el.get_text(strip=True) if loc_el else ""
        city = location.split(",", 1)[0].strip() if location else ""

        events.append(DraftEvent(
            source=SOURCE_NAME,
            city=city or None,
            country=locale.country_code,
            title=title,
            start=start_value,
            start_time_known=has_time,
            location=location or None,
            language=locale.language,
            url=url,
            attendees=extract_attendees(title, locale),
        ))

    return events


async def parse_demokrateam(days: int = 90, ctx: Optional[ScrapeContext] = None) -> list[DraftEvent]:
    """Fetch one calendar month per 30 days of horizon. Never raises."""
    owns_ctx = ctx is None
    ctx = ctx or ScrapeContext()
    events: list[DraftEvent] = []
    try:
        if not await ctx.allowed(ENDPOINT):
            console.print("[yellow]DemokraTEAM: blocked by robots.txt[/yellow]")
            return []

        now = datetime.now(ZoneInfo(LOCALES["DE"].timezone))
        for offset in range(math.ceil(days / 30)):
            year, month = add_months(now, offset)
            console.print(f"[dim]DemokraTEAM: month {year}-{month:02d}[/dim]")
            try:
                response = await ctx.post(
                    ENDPOINT,
                    data=build_form(year, month, now.day),
                    headers=AJAX_HEADERS,
                )
                await ctx.pause(REQUEST_DELAY)

                data = response.json()
                html = data.get("month") if isinstance(data, dict) else None
                if not html or not isinstance(html, str):
                    continue

                events.extend(parse_demokrateam_html(html, year, month, days, now))
            except Exception as e:
                console.print(f"[yellow]DemokraTEAM: month {year}-{month:02d} failed: {e}[/yellow]")

        console.print(f"[green]DemokraTEAM: {len(events)} events[/green]")
        return events
    except Exception as e:
        console.print(f"[red]DemokraTEAM failed: {e}[/red]")
        return events
    finally:
        if owns_ctx:
            await ctx.aclose()
