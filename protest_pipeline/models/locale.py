"""Locale configuration model."""

from pydantic import BaseModel, ConfigDict, Field


class Locale(BaseModel):
    """Per-country parsing configuration.

    Consumed by the date resolver and the attendee extractor. Loaded once
    from the static table in `protest_pipeline.normalizers.locales`.
    """

    model_config = ConfigDict(frozen=True)

    country_code: str  # ISO 3166-1 alpha-2
    language: str  # BCP 47, e.g. "de-DE"
    timezone: str  # IANA, e.g. "Europe/Berlin"

    # Local month name -> "01".."12"
    month_names: dict[str, str] = Field(default_factory=dict)

    # strptime patterns, most specific first
    date_formats: list[str] = Field(default_factory=list)
    time_suffixes: list[str] = Field(default_factory=list)  # e.g. "Uhr"

    # Attendee parsing
    approximately: list[str] = Field(default_factory=list)  # regex fragments, e.g. r"ca\.?"
    attendee_keywords: list[str] = Field(default_factory=list)
    thousands_separators: str = "."
