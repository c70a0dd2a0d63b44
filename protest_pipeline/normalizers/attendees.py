"""Attendee count extraction from free text.

Matches one number (or a range, taking the upper bound) immediately followed
by a participant keyword, optionally preceded by an approximation marker:
"ca. 1.000 Teilnehmer", "500-800 Leute", "up to 2,000 people".
"""

import re
from typing import Optional

from protest_pipeline.models import Locale
from protest_pipeline.normalizers.locales import LOCALES

_PATTERNS: dict[tuple, re.Pattern] = {}


def _build_pattern(
    markers: list[str],
    keywords: list[str],
    separators: str,
) -> re.Pattern:
    marker = "|".join(markers + ["~"])
    sep = "[" + "".join(re.escape(c) for c in separators) + "]" if separators else None
    number = rf"\d{{1,3}}(?:{sep}\d{{3}})+|\d+" if sep else r"\d+"
    words = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(
        rf"(?:(?:{marker})\s*)?(?<!\d)({number})(?:\s*[-–]\s*({number}))?\s*(?:{words})",
        re.IGNORECASE,
    )


def _to_int(raw: str) -> int:
    return int(re.sub(r"\D", "", raw))


def extract_attendees(
    text: Optional[str],
    locale: Locale | str = "DE",
    keywords: Optional[list[str]] = None,
) -> Optional[int]:
    """Extract an attendee count using the locale's markers and keywords.

    The first match in the text wins; ranges resolve to their maximum.
    Custom keywords replace the locale's defaults.
    """
    if not text:
        return None

    if isinstance(locale, str):
        locale = LOCALES.get(locale) or LOCALES["DE"]
    words = keywords if keywords else locale.attendee_keywords
    if not words:
        return None

    key = (locale.country_code, tuple(words))
    if key not in _PATTERNS:
        _PATTERNS[key] = _build_pattern(
            locale.approximately, words, locale.thousands_separators
        )

    match = _PATTERNS[key].search(text)
    if not match:
        return None

    low = _to_int(match.group(1))
    if match.group(2):
        return max(low, _to_int(match.group(2)))
    return low


def extract_german_attendees(text: Optional[str]) -> Optional[int]:
    return extract_attendees(text, "DE")


def extract_english_attendees(text: Optional[str]) -> Optional[int]:
    return extract_attendees(text, "US")


def extract_french_attendees(text: Optional[str]) -> Optional[int]:
    return extract_attendees(text, "FR")
