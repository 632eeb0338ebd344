"""
analytics/peers.py

Roll-ups of peer comparison rows across the UEIs behind one profile.

The average is a plain arithmetic mean over UEIs. It is not weighted by
revenue, so a tiny affiliate counts as much as the flagship entity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from analytics.numeric import round_int, to_float


@dataclass(frozen=True)
class PeerPercentileSummary:
    revenue_percentile: int | None
    growth_percentile: int | None
    performance_score: int | None
    sample_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "revenue_percentile": self.revenue_percentile,
            "growth_percentile": self.growth_percentile,
            "performance_score": self.performance_score,
            "sample_size": self.sample_size,
        }


def _mean(values: list[float]) -> int | None:
    if not values:
        return None
    return round_int(sum(values) / len(values))


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def average_percentiles(rows: Iterable[Any]) -> PeerPercentileSummary:
    """
    Average revenue/growth percentiles and overall performance score.

    ``rows`` may be mappings or ORM objects. Null fields are ignored per
    metric, so each metric averages only the rows that carry it.
    """
    revenue: list[float] = []
    growth: list[float] = []
    performance: list[float] = []
    count = 0

    for row in rows:
        count += 1
        for name, bucket in (
            ("revenue_percentile", revenue),
            ("growth_percentile", growth),
            ("overall_performance_score", performance),
        ):
            value = _field(row, name)
            if value is not None:
                bucket.append(to_float(value))

    return PeerPercentileSummary(
        revenue_percentile=_mean(revenue),
        growth_percentile=_mean(growth),
        performance_score=_mean(performance),
        sample_size=count,
    )
