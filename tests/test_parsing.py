"""
Tests for portal date and amount parsing.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from seacewatch.core.normalize.parsing import (
    clean_cell,
    format_portal_date,
    normalize_whitespace,
    parse_amount,
    parse_filter_date,
    parse_publication_date,
    strip_accents,
)


class TestPublicationDate:
    """Publication dates as shown in the results grid."""

    def test_date_with_minutes_keeps_precision(self):
        parsed = parse_publication_date("09/10/2025 14:30")

        assert parsed.value == datetime(2025, 10, 9, 14, 30)
        assert parsed.text == "2025-10-09 14:30"
        assert parsed.format_detected == "dmy_hm"

    def test_date_with_seconds(self):
        parsed = parse_publication_date("01/02/2024 08:05:09")

        assert parsed.value == datetime(2024, 2, 1, 8, 5, 9)
        assert parsed.text == "2024-02-01 08:05:09"

    def test_bare_date_gets_midnight(self):
        parsed = parse_publication_date("5/3/2025")

        assert parsed.value == datetime(2025, 3, 5)
        assert parsed.text == "2025-03-05 00:00:00"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_is_null(self, value):
        parsed = parse_publication_date(value)

        assert parsed.value is None
        assert parsed.text is None

    @pytest.mark.parametrize("value", ["31/02/2025", "2025-10-09", "ayer", "09/10/25"])
    def test_invalid_is_null_without_raising(self, value):
        parsed = parse_publication_date(value)

        assert parsed.value is None
        assert parsed.original == value

    def test_surrounding_whitespace_is_ignored(self):
        parsed = parse_publication_date("  09/10/2025  14:30 ")

        assert parsed.text == "2025-10-09 14:30"


class TestFilterDate:
    """Dates typed by users for the search filters."""

    def test_iso(self):
        assert parse_filter_date("2025-03-01") == date(2025, 3, 1)

    def test_day_first(self):
        assert parse_filter_date("01/03/2025") == date(2025, 3, 1)

    def test_spanish_words(self):
        assert parse_filter_date("15 de marzo de 2025") == date(2025, 3, 15)

    def test_datetime_is_truncated(self):
        assert parse_filter_date(datetime(2025, 1, 2, 10, 0)) == date(2025, 1, 2)

    def test_blank_is_none(self):
        assert parse_filter_date("  ") is None

    def test_format_for_form(self):
        assert format_portal_date(date(2025, 1, 9)) == "09/01/2025"


class TestAmount:
    """Reference amounts with dot thousands and comma decimals."""

    def test_thousands_and_decimals(self):
        assert parse_amount("1.234.567,89") == Decimal("1234567.89")

    def test_plain_integer(self):
        assert parse_amount("50000") == Decimal("50000")

    def test_decimals_only(self):
        assert parse_amount("0,50") == Decimal("0.50")

    @pytest.mark.parametrize("value", ["---", "", "N/A", "-", None])
    def test_placeholders_are_null(self, value):
        assert parse_amount(value) is None

    @pytest.mark.parametrize("value", ["abc", "Infinity", "NaN", "-1.000,00"])
    def test_garbage_is_null(self, value):
        assert parse_amount(value) is None


class TestTextHelpers:
    def test_normalize_whitespace(self):
        assert normalize_whitespace("  a\n\tb  c ") == "a b c"

    def test_clean_cell_empty_is_none(self):
        assert clean_cell(" \n ") is None
        assert clean_cell(" x ") == "x"

    def test_strip_accents(self):
        assert strip_accents(" Consultoría ") == "consultoria"
