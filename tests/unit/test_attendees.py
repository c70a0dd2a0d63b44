"""Tests for attendee count extraction."""

import pytest
from protest_pipeline.normalizers.attendees import (
    extract_attendees,
    extract_english_attendees,
    extract_french_attendees,
    extract_german_attendees,
)


class TestGermanAttendees:
    """German phrasing used by Berlin, Dresden and the movement calendars."""

    @pytest.mark.parametrize("text,expected", [
        ("ca. 1000 Teilnehmer", 1000),
        ("circa 250 Teilnehmende", 250),
        ("5.000 Menschen", 5000),
        ("bis zu 3000 Teilnehmer", 3000),
        ("ca. 2000 Teilnehmer*innen", 2000),
        ("Demo mit ca. 3000 Teilnehmern", 3000),
        ("~400 Personen", 400),
    ])
    def test_single_numbers(self, text: str, expected: int):
        assert extract_german_attendees(text) == expected

    @pytest.mark.parametrize("text", ["500-800 Leute", "500 - 800 Leute", "500–800 Leute"])
    def test_ranges_take_upper_bound(self, text: str):
        assert extract_german_attendees(text) == 800

    def test_first_match_wins(self):
        assert extract_german_attendees("500 Personen und 1000 Teilnehmer") == 500

    @pytest.mark.parametrize("text", ["Viele Teilnehmer", "Kundgebung am Rathaus", "", None])
    def test_no_count(self, text):
        assert extract_german_attendees(text) is None

    def test_swiss_apostrophe_separator(self):
        assert extract_attendees("rund 5'000 Personen", "CH") == 5000


class TestOtherLocales:
    """English and French keywords and separators."""

    @pytest.mark.parametrize("text,expected", [
        ("approximately 500 people", 500),
        ("up to 2,000 protesters", 2000),
        ("about 1,200-1,500 attendees", 1500),
    ])
    def test_english(self, text: str, expected: int):
        assert extract_english_attendees(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("environ 1 500 manifestants", 1500),
        ("près de 300 personnes", 300),
    ])
    def test_french(self, text: str, expected: int):
        assert extract_french_attendees(text) == expected

    def test_custom_keywords_replace_defaults(self):
        assert extract_attendees("100 demonstrators", "US", keywords=["demonstrators"]) == 100
        assert extract_attendees("100 people", "US", keywords=["demonstrators"]) is None

    def test_unknown_locale_falls_back_to_german(self):
        assert extract_attendees("ca. 70 Leute", "XX") == 70
