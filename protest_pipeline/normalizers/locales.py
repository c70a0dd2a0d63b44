"""Static per-country locale table.

Date formats are strptime patterns applied after month names have been
replaced by numbers, so "23. Oktober 2025 14:30" is tried as
"23. 10 2025 14:30". Patterns without a year get the year inferred by the
date resolver.
"""

from typing import Optional

from protest_pipeline.models import Locale

GERMAN_MONTHS = {
    # Full names
    "Januar": "01", "Jänner": "01", "Februar": "02", "März": "03",
    "April": "04", "Mai": "05", "Juni": "06", "Juli": "07",
    "August": "08", "September": "09", "Oktober": "10",
    "November": "11", "Dezember": "12",
    # Abbreviations
    "Jan": "01", "Feb": "02", "Mär": "03", "Mrz": "03", "Apr": "04",
    "Jun": "06", "Jul": "07", "Aug": "08", "Sep": "09", "Sept": "09",
    "Okt": "10", "Nov": "11", "Dez": "12",
}

GERMAN_DATE_FORMATS = [
    "%d.%m.%Y %H:%M",       # 23.10.2025 14:30
    "%d.%m.%Y",             # 23.10.2025
    "%d. %m %Y %H:%M",      # 23. Oktober 2025 14:30
    "%d. %m %H:%M %Y",      # 18. Okt 18:00 2025
    "%d. %m %Y",            # 23. Oktober 2025
    "%d.%m.%y %H:%M",       # 23.10.25 14:30
    "%d.%m.%y",             # 23.10.25
    "%Y-%m-%d %H:%M",       # 2025-10-23 11:00
    "%Y-%m-%d",             # 2025-10-23
    "%d.%m. %H:%M",         # 23.10. 14:30 (no year)
    "%d.%m %H:%M",          # 23.10 14:30 (no year)
    "%d. %m %H:%M",         # 18. Okt 18:00 (no year)
    "%d.%m.",               # 23.10. (no year)
    "%d. %m",               # 18. Okt (no year)
]

GERMAN_APPROXIMATELY = [
    r"ca\.?",
    r"circa",
    r"etwa",
    r"ungefähr",
    r"rund",
    r"bis\s*(?:zu)?",
]

GERMAN_KEYWORDS = [
    "Teilnehmer*innen",
    "Teilnehmende",
    "Teilnehmer",
    "Personen",
    "Menschen",
    "Leute",
]

LOCALES: dict[str, Locale] = {
    "DE": Locale(
        country_code="DE",
        language="de-DE",
        timezone="Europe/Berlin",
        month_names=GERMAN_MONTHS,
        date_formats=GERMAN_DATE_FORMATS,
        time_suffixes=["Uhr"],
        approximately=GERMAN_APPROXIMATELY,
        attendee_keywords=GERMAN_KEYWORDS,
        thousands_separators=". ",
    ),
    "AT": Locale(
        country_code="AT",
        language="de-AT",
        timezone="Europe/Vienna",
        month_names=GERMAN_MONTHS,
        date_formats=GERMAN_DATE_FORMATS,
        time_suffixes=["Uhr"],
        approximately=GERMAN_APPROXIMATELY,
        attendee_keywords=GERMAN_KEYWORDS,
        thousands_separators=". ",
    ),
    "CH": Locale(
        country_code="CH",
        language="de-CH",
        timezone="Europe/Zurich",
        month_names=GERMAN_MONTHS,
        date_formats=GERMAN_DATE_FORMATS,
        time_suffixes=["Uhr"],
        approximately=GERMAN_APPROXIMATELY,
        attendee_keywords=GERMAN_KEYWORDS,
        # Swiss numbers use apostrophes: 5'000
        thousands_separators="'’. ",
    ),
    "FR": Locale(
        country_code="FR",
        language="fr-FR",
        timezone="Europe/Paris",
        month_names={
            "janvier": "01", "février": "02", "mars": "03", "avril": "04",
            "mai": "05", "juin": "06", "juillet": "07", "août": "08",
            "septembre": "09", "octobre": "10", "novembre": "11", "décembre": "12",
            "janv": "01", "févr": "02", "avr": "04", "juil": "07",
            "sept": "09", "oct": "10", "nov": "11", "déc": "12",
        },
        date_formats=[
            "%d/%m/%Y %H:%M",   # 23/10/2025 14:30
            "%d/%m/%Y",         # 23/10/2025
            "%d-%m-%Y",         # 23-10-2025
            "%d %m %Y %H:%M",   # 23 octobre 2025 14:30
            "%d %m %Y",         # 23 octobre 2025
            "%Y-%m-%d %H:%M",
            "%Y-%m-%d",
        ],
        approximately=[
            r"environ",
            r"approximativement",
            r"près\s+de",
            r"jusqu'à",
        ],
        attendee_keywords=["participants", "personnes", "manifestants"],
        thousands_separators="\u00a0\u202f .",
    ),
    "US": Locale(
        country_code="US",
        language="en-US",
        timezone="America/New_York",
        month_names={
            "January": "01", "February": "02", "March": "03", "April": "04",
            "May": "05", "June": "06", "July": "07", "August": "08",
            "September": "09", "October": "10", "November": "11", "December": "12",
            "Jan": "01", "Feb": "02", "Mar": "03", "Apr": "04",
            "Jun": "06", "Jul": "07", "Aug": "08", "Sep": "09", "Sept": "09",
            "Oct": "10", "Nov": "11", "Dec": "12",
        },
        date_formats=[
            "%m/%d/%Y %I:%M %p",  # 10/23/2025 2:30 PM
            "%m/%d/%Y %H:%M",     # 10/23/2025 14:30
            "%m/%d/%Y",           # 10/23/2025
            "%m-%d-%Y",           # 10-23-2025
            "%m %d %Y %I:%M %p",  # October 23, 2025 2:30 PM
            "%m %d %Y",           # October 23, 2025
            "%Y-%m-%d %H:%M",     # ISO, common in APIs
            "%Y-%m-%d",
        ],
        approximately=[
            r"approx(?:imately|\.)?",
            r"about",
            r"around",
            r"up\s+to",
        ],
        attendee_keywords=["attendees", "participants", "protesters", "people"],
        thousands_separators=", ",
    ),
}


def get_locale(code: str) -> Optional[Locale]:
    """Locale for an ISO 3166-1 alpha-2 code, or None if not configured."""
    return LOCALES.get(code)
