"""
Unit tests for timestamp parsing and calendar helpers.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from marketplace_ingestion.utils.dates import (
    date_key,
    days_between,
    from_epoch,
    hours_between,
    is_peak_hour,
    is_shopping_season,
    parse_timestamp,
    quarter_of,
    season_name,
)


class TestFromEpoch:
    def test_seconds_converted_to_local_time(self):
        assert from_epoch(1700000000) == datetime(2023, 11, 15, 5, 13, 20)

    def test_milliseconds_detected(self):
        assert from_epoch(1700000000000) == datetime(2023, 11, 15, 5, 13, 20)

    @pytest.mark.parametrize("raw", [0, -5, None, "abc", True])
    def test_unset_values(self, raw):
        assert from_epoch(raw) is None


class TestParseTimestamp:
    def test_naive_string_assumed_utc(self):
        assert parse_timestamp("2024-01-15T10:30:00", assume_utc=True) == datetime(2024, 1, 15, 17, 30)

    def test_naive_string_kept_local(self):
        assert parse_timestamp("2024-01-15 10:30:00") == datetime(2024, 1, 15, 10, 30)

    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 17, 30)

    def test_explicit_offset(self):
        assert parse_timestamp("2024-01-15T10:30:00+07:00") == datetime(2024, 1, 15, 10, 30)

    def test_epoch_string(self):
        assert parse_timestamp("1700000000") == datetime(2023, 11, 15, 5, 13, 20)

    def test_aware_datetime(self):
        moment = datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)
        assert parse_timestamp(moment) == datetime(2024, 1, 15, 7, 0)

    @patch("marketplace_ingestion.utils.dates.log_warning")
    def test_unparsable_logged_and_none(self, mock_log_warning):
        assert parse_timestamp("next tuesday") is None
        mock_log_warning.assert_called_once()

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty(self, raw):
        assert parse_timestamp(raw) is None


class TestCalendar:
    def test_date_key(self):
        assert date_key(datetime(2024, 3, 9, 23, 59)) == 20240309
        assert date_key(None) == 0

    @pytest.mark.parametrize("month, quarter", [(1, 1), (3, 1), (4, 2), (9, 3), (12, 4)])
    def test_quarter_of(self, month, quarter):
        assert quarter_of(datetime(2024, month, 1)) == quarter

    @pytest.mark.parametrize("month, season", [(1, "WINTER"), (4, "SPRING"), (7, "SUMMER"), (10, "AUTUMN"), (12, "WINTER")])
    def test_season_name(self, month, season):
        assert season_name(month) == season

    def test_shopping_season(self):
        assert is_shopping_season(11)
        assert is_shopping_season(1)
        assert not is_shopping_season(6)

    @pytest.mark.parametrize("hour, peak", [(9, False), (10, True), (14, True), (15, False), (18, True), (22, True), (23, False)])
    def test_peak_hours(self, hour, peak):
        assert is_peak_hour(hour) is peak

    def test_hours_and_days_between(self):
        start = datetime(2024, 5, 1, 8, 0)
        end = datetime(2024, 5, 3, 9, 30)
        assert hours_between(start, end) == 49
        assert days_between(start, end) == 2
        assert hours_between(end, start) == 0
        assert days_between(None, end) == 0
