"""
Tests for datetime utilities.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from utils.datetime_utils import (
    combine_date_and_hhmm,
    ensure_utc,
    is_valid_hhmm,
    parse_date_string,
    utc_now,
    validate_hhmm,
)


class TestHHMM:
    """Appointment slot times are zero-padded 24h strings."""

    @pytest.mark.parametrize("value", ["00:00", "09:15", "23:59"])
    def test_valid(self, value):
        assert is_valid_hhmm(value)
        assert validate_hhmm(value) == value

    @pytest.mark.parametrize("value", ["9:15", "24:00", "12:60", "noon", "", "09:15:00"])
    def test_invalid(self, value):
        assert not is_valid_hhmm(value)
        with pytest.raises(ValueError, match="HH:MM"):
            validate_hhmm(value)

    def test_padded_strings_sort_chronologically(self):
        assert "09:30" < "10:00" < "10:15"


class TestParseDateString:

    def test_plain_date(self):
        assert parse_date_string("2024-01-10") == date(2024, 1, 10)

    def test_iso_datetime_uses_date_part(self):
        assert parse_date_string("2024-01-10T09:00:00Z") == date(2024, 1, 10)

    def test_invalid_date(self):
        with pytest.raises(ValueError, match="Invalid date format"):
            parse_date_string("2024-13-45")

    def test_empty_date(self):
        with pytest.raises(ValueError, match="Date is required"):
            parse_date_string("")


def test_ensure_utc_assumes_naive_values_are_utc():
    naive = datetime(2024, 1, 10, 9, 0)
    assert ensure_utc(naive) == datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_other_zones():
    plus_eight = datetime(2024, 1, 10, 17, 0, tzinfo=timezone(timedelta(hours=8)))
    assert ensure_utc(plus_eight) == datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def test_ensure_utc_none():
    assert ensure_utc(None) is None


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None


def test_combine_date_and_hhmm():
    assert combine_date_and_hhmm(date(2024, 1, 10), "09:30") == datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc)
