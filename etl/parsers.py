"""
etl/parsers.py

Normalizers for values exported from Snowflake.

Snowflake writes SQL NULL into CSV exports as ``\\N`` (sometimes double
escaped as ``\\\\N``) or the literal ``NULL``. Every parser here treats those
tokens, empty strings and ``None`` as null, then either returns a default
(required columns) or ``None`` (nullable columns).

No parser raises on malformed input: bad values degrade to the default so a
single dirty cell never aborts a batch.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from analytics.numeric import round_int

NULL_TOKENS: frozenset[str] = frozenset({"", "\\N", "\\\\N", "NULL"})

_TRUE_TOKENS: frozenset[str] = frozenset({"true", "1", "t", "yes", "y"})

_DATETIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)


def is_null(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() in NULL_TOKENS


def parse_text(value: Any) -> str | None:
    if is_null(value):
        return None
    return str(value).strip()


def parse_nullable_decimal(value: Any) -> Decimal | None:
    if is_null(value):
        return None
    try:
        result = Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return result


def parse_decimal(value: Any) -> Decimal:
    result = parse_nullable_decimal(value)
    return Decimal("0") if result is None else result


def parse_nullable_integer(value: Any) -> int | None:
    """Parse an integer; decimal text truncates toward zero (``"12.9" -> 12``)."""
    result = parse_nullable_decimal(value)
    if result is None:
        return None
    return int(result)


def parse_integer(value: Any) -> int:
    result = parse_nullable_integer(value)
    return 0 if result is None else result


def parse_boolean(value: Any) -> bool:
    if is_null(value):
        return False
    return str(value).strip().lower() in _TRUE_TOKENS


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an ISO or Snowflake timestamp. Naive values are assumed UTC.
    """
    if is_null(value):
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        # Snowflake may append a zone name or trailing fractional noise.
        head = text.split(" +")[0].split(" -")[0]
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(head, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> date | None:
    parsed = parse_datetime(value)
    return parsed.date() if parsed is not None else None


def parse_json_object(value: Any) -> dict[str, Any]:
    """Parse a JSON object column. Malformed JSON or non-objects yield ``{}``."""
    if is_null(value):
        return {}
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(str(value))
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def parse_json_value(value: Any) -> Any | None:
    """Parse any JSON column (object, array or scalar). Null or malformed JSON yields ``None``."""
    if is_null(value):
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(str(value))
    except (TypeError, ValueError):
        return None


def parse_score_percentile(value: Any) -> int:
    """Scale a 0-1 score to a 0-100 percentile (half-up). Null scores are 0."""
    score = parse_nullable_decimal(value)
    if score is None:
        return 0
    return round_int(score * 100)
