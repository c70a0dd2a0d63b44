"""Country code to name mapping (ISO 3166-1 alpha-2)."""

COUNTRY_NAMES = {
    "DE": "Germany",
    "AT": "Austria",
    "CH": "Switzerland",
    "FR": "France",
    "IT": "Italy",
    "NL": "Netherlands",
    "BE": "Belgium",
    "PL": "Poland",
    "CZ": "Czech Republic",
    "DK": "Denmark",
    "SE": "Sweden",
    "NO": "Norway",
    "FI": "Finland",
    "ES": "Spain",
    "PT": "Portugal",
    "GB": "United Kingdom",
    "IE": "Ireland",
    "US": "United States",
    "CA": "Canada",
    "AU": "Australia",
    "NZ": "New Zealand",
}


def get_country_name(code: str) -> str:
    """Full country name for a two-letter code, or the code itself if unknown."""
    return COUNTRY_NAMES.get(code, code)
