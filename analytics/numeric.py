"""
analytics/numeric.py

Small numeric helpers shared by the loaders and the aggregators.

Rounding is half-up everywhere (``2.5 -> 3``), matching how the upstream
warehouse and the dashboards round, rather than Python's banker's rounding.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def round_half_up(value: float | Decimal, places: int = 0) -> float:
    """Round ``value`` half-up to ``places`` decimal places."""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return 0.0


def round_int(value: float | Decimal) -> int:
    """Round ``value`` half-up to the nearest integer."""
    return int(round_half_up(value, 0))


def to_float(value: object) -> float:
    """Coerce Decimal/int/str/None to float; anything unparseable is 0.0."""
    if value is None:
        return 0.0
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if result != result:  # NaN
        return 0.0
    return result
