"""Locale-aware date resolver.

Turns free-form local date strings ("23. Oktober 2025 14:30 Uhr",
"18.10. 18:00", "2025-10-23 11.00") into timezone-aware datetimes.
"""

import re
from datetime import datetime, timedelta
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo

from protest_pipeline.models import Locale
from protest_pipeline.normalizers.locales import LOCALES

# "14:00 - 16:00" -> keep the start only
END_TIME_PATTERN = re.compile(r"\s*-\s*\d{1,2}[:.]\d{2}.*$")
# "23.10.2025 14.30" -> "23.10.2025 14:30"
DOTTED_TIME_PATTERN = re.compile(r"(\s)(\d{1,2})\.(\d{2})(\s|$)")
WHITESPACE_PATTERN = re.compile(r"\s+")


class ParsedDate(NamedTuple):
    value: datetime
    has_time: bool


def _month_pattern(locale: Locale) -> Optional[re.Pattern]:
    if not locale.month_names:
        return None
    # Longest first so "Sept" wins over "Sep"
    names = sorted(locale.month_names, key=len, reverse=True)
    return re.compile(
        r"\b(" + "|".join(re.escape(n) for n in names) + r")\b",
        re.IGNORECASE,
    )


_MONTH_PATTERNS: dict[str, Optional[re.Pattern]] = {}


def clean_date_text(text: str, locale: Locale) -> str:
    """Normalize a raw date string so the locale's strptime formats can apply."""
    cleaned = text
    for suffix in locale.time_suffixes:
        cleaned = re.sub(re.escape(suffix), "", cleaned, flags=re.IGNORECASE)

    cleaned = END_TIME_PATTERN.sub("", cleaned)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    cleaned = cleaned.replace(",", "", 1)

    if locale.country_code not in _MONTH_PATTERNS:
        _MONTH_PATTERNS[locale.country_code] = _month_pattern(locale)
    pattern = _MONTH_PATTERNS[locale.country_code]
    if pattern:
        lookup = {name.lower(): num for name, num in locale.month_names.items()}
        cleaned = pattern.sub(lambda m: lookup[m.group(1).lower()], cleaned)

    cleaned = DOTTED_TIME_PATTERN.sub(r"\1\2:\3\4", cleaned, count=1)
    return cleaned.strip()


def resolve_date(
    text: Optional[str],
    locale: Locale | str = "DE",
    now: Optional[datetime] = None,
) -> Optional[ParsedDate]:
    """Parse a local date string into an aware datetime.

    Formats are tried in the locale's order. Formats without a year get the
    current year, or the following year if that date has already passed.
    Returns None when nothing matches; never raises.
    """
    if not text or not text.strip():
        return None

    if isinstance(locale, str):
        locale = LOCALES.get(locale) or LOCALES["DE"]
    tz = ZoneInfo(locale.timezone)
    reference = now or datetime.now(tz)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=tz)

    cleaned = clean_date_text(text, locale)

    for fmt in locale.date_formats:
        has_year = "%Y" in fmt or "%y" in fmt
        try:
            if has_year:
                naive = datetime.strptime(cleaned, fmt)
            else:
                naive = datetime.strptime(f"{cleaned} {reference.year}", f"{fmt} %Y")
        except ValueError:
            continue

        value = naive.replace(tzinfo=tz)
        if not has_year and value < reference:
            try:
                value = value.replace(year=value.year + 1)
            except ValueError:
                continue

        return ParsedDate(value=value, has_time="%H" in fmt or "%I" in fmt)

    return None


def within_next_days(
    value: Optional[datetime],
    days: int,
    reference: Optional[datetime] = None,
) -> bool:
    """True when value lies strictly between now and now + days."""
    if value is None:
        return False
    reference = reference or datetime.now(value.tzinfo)
    return reference < value < reference + timedelta(days=days)
