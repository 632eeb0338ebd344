"""
tests/test_etl_parsers.py

Unit tests for the Snowflake value normalizers. Pure Python, no I/O.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from etl.parsers import (
    is_null,
    parse_boolean,
    parse_date,
    parse_datetime,
    parse_decimal,
    parse_integer,
    parse_json_object,
    parse_nullable_decimal,
    parse_nullable_integer,
    parse_score_percentile,
    parse_text,
)


class TestNullTokens:
    @pytest.mark.parametrize("token", [None, "", "   ", "\\N", "\\\\N", "NULL"])
    def test_null_tokens(self, token) -> None:
        assert is_null(token)
        assert parse_text(token) is None
        assert parse_nullable_decimal(token) is None
        assert parse_nullable_integer(token) is None
        assert parse_datetime(token) is None

    def test_required_parsers_fall_back_to_defaults(self) -> None:
        assert parse_decimal("\\N") == Decimal("0")
        assert parse_integer("NULL") == 0
        assert parse_boolean("") is False
        assert parse_json_object("\\N") == {}

    def test_lowercase_null_is_a_value(self) -> None:
        assert parse_text("null") == "null"


class TestNumbers:
    def test_decimal_strips_thousands_separators(self) -> None:
        assert parse_decimal("1,234.50") == Decimal("1234.50")

    def test_malformed_decimal_degrades(self) -> None:
        assert parse_nullable_decimal("abc") is None
        assert parse_decimal("abc") == Decimal("0")

    def test_non_finite_decimal_is_null(self) -> None:
        assert parse_nullable_decimal("NaN") is None
        assert parse_nullable_decimal("Infinity") is None

    def test_integer_truncates_decimal_text(self) -> None:
        assert parse_integer("12.9") == 12
        assert parse_integer("-3.7") == -3

    def test_score_percentile_rounds_half_up(self) -> None:
        assert parse_score_percentile("0.875") == 88
        assert parse_score_percentile("0.125") == 13
        assert parse_score_percentile("\\N") == 0


class TestBooleans:
    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "t", "Yes", "y"])
    def test_truthy(self, value: str) -> None:
        assert parse_boolean(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "f", "no", "maybe"])
    def test_falsy(self, value: str) -> None:
        assert parse_boolean(value) is False


class TestDates:
    def test_naive_timestamp_is_utc(self) -> None:
        parsed = parse_datetime("2024-03-01 12:30:00")
        assert parsed == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_zulu_suffix(self) -> None:
        parsed = parse_datetime("2024-03-01T00:00:00Z")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 0

    def test_snowflake_timestamp_with_offset_suffix(self) -> None:
        parsed = parse_datetime("2024-03-01 08:15:00.123 +0000")
        assert parsed is not None
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2024, 3, 1, 8)

    def test_garbage_is_null(self) -> None:
        assert parse_datetime("not a date") is None

    def test_parse_date(self) -> None:
        assert parse_date("2024-06-01") == date(2024, 6, 1)


class TestJson:
    def test_object(self) -> None:
        assert parse_json_object('{"DOD": 10.5}') == {"DOD": 10.5}

    def test_non_object_and_malformed(self) -> None:
        assert parse_json_object("[1, 2]") == {}
        assert parse_json_object("{bad json") == {}
