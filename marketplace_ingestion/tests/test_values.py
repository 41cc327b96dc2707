"""
Unit tests for tolerant value accessors.
"""

import pytest

from marketplace_ingestion.utils.values import (
    as_dict,
    as_list,
    digits_only,
    first_present,
    is_meaningful_id,
    safe_get,
    to_bool,
    to_float,
    to_int,
    to_str,
)


class TestSafeGet:
    def test_nested_dicts_and_lists(self):
        payload = {"data": {"items": [{"id": 7}]}}
        assert safe_get(payload, "data", "items", 0, "id") == 7

    @pytest.mark.parametrize("keys", [
        ("data", "missing"),
        ("data", "items", 3),
        ("data", "items", "0"),
        ("nope", "deeper", "still"),
    ])
    def test_missing_paths_return_none(self, keys):
        assert safe_get({"data": {"items": [{"id": 7}]}}, *keys) is None

    def test_none_root(self):
        assert safe_get(None, "a") is None


class TestConversions:
    @pytest.mark.parametrize("raw, expected", [
        ("125,000.50", 125000.5),
        ("180000", 180000.0),
        (42, 42.0),
        ("abc", 0.0),
        (None, 0.0),
        (True, 0.0),
        ("NaN", 0.0),
        ("Infinity", 0.0),
        ("-inf", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
    ])
    def test_to_float(self, raw, expected):
        assert to_float(raw) == expected

    def test_to_float_custom_default(self):
        assert to_float("n/a", default=-1.0) == -1.0

    @pytest.mark.parametrize("raw, expected", [("12.9", 12), (7, 7), ("", 0), (None, 0), ("NaN", 0), ("Infinity", 0), (float("nan"), 0)])
    def test_to_int(self, raw, expected):
        assert to_int(raw) == expected

    def test_to_int_default_none(self):
        assert to_int("garbage", default=None) is None

    @pytest.mark.parametrize("raw, expected", [
        (None, ""),
        ("  padded ", "padded"),
        (12.0, "12"),
        (True, "true"),
        ("   ", ""),
    ])
    def test_to_str(self, raw, expected):
        assert to_str(raw) == expected

    def test_to_str_default(self):
        assert to_str(None, default="UNKNOWN") == "UNKNOWN"

    @pytest.mark.parametrize("raw, expected", [("yes", True), ("0", False), (1, True), (None, False), ("maybe", False)])
    def test_to_bool(self, raw, expected):
        assert to_bool(raw) is expected


class TestHelpers:
    def test_first_present_skips_blank(self):
        assert first_present(None, "  ", "", "x", "y") == "x"
        assert first_present(0, 5) == 0
        assert first_present(None) is None

    def test_as_list_and_as_dict(self):
        assert as_list({"a": 1}) == []
        assert as_list([1]) == [1]
        assert as_dict([1]) == {}
        assert as_dict({"a": 1}) == {"a": 1}

    def test_digits_only(self):
        assert digits_only("+84 901-234-567") == "84901234567"
        assert digits_only(None) == ""

    @pytest.mark.parametrize("raw, expected", [("123", True), ("null", False), ("0", False), (None, False), (987, True)])
    def test_is_meaningful_id(self, raw, expected):
        assert is_meaningful_id(raw) is expected
