"""
analytics/concentration.py

Herfindahl-Hirschman concentration metrics over revenue breakdowns.

A breakdown is a mapping of category (agency, NAICS code, PSC code) to
revenue, as exported in the ``*_AWARD_BREAKDOWN`` JSON columns. HHI is
computed on percentage shares and then divided by 10,000, so it is stored
on the 0-1 scale: a single category holding everything gives 1.0, and a
breakdown with no revenue gives 0.0.

The dashboard-facing risk levels use the antitrust 0-10,000 point scale
(``hhi_points``), with the 5000 / 2500 cut-offs below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from analytics.numeric import round_half_up, round_int, to_float

# HHI point thresholds (0-10,000 scale) for concentration risk levels.
HIGH_RISK_HHI_POINTS = 5000
MEDIUM_RISK_HHI_POINTS = 2500

# HHI thresholds (0-1 scale) for portfolio stability labels.
DIVERSE_MAX_HHI = 0.25
CONCENTRATED_MIN_HHI = 0.5

TOP_CATEGORY_LIMIT = 3


@dataclass(frozen=True)
class CategoryShare:
    name: str
    revenue: float
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "revenue": self.revenue, "percentage": self.percentage}


@dataclass(frozen=True)
class BreakdownSummary:
    """Everything the portfolio load derives from one breakdown column."""

    top: list[CategoryShare]
    hhi: float
    count: int
    primary_revenue: float
    primary_percentage: float


def coerce_breakdown(breakdown: Mapping[str, Any] | None) -> dict[str, float]:
    """Return a numeric view of a breakdown; non-numeric values count as 0."""
    if not breakdown:
        return {}
    return {str(name): to_float(value) for name, value in breakdown.items()}


def calculate_hhi(breakdown: Mapping[str, Any] | None) -> float:
    """
    Sum of squared percentage shares divided by 10,000.

    Returns 0.0 when the breakdown is empty or its total revenue is zero.
    """
    values = coerce_breakdown(breakdown)
    total = sum(values.values())
    if total <= 0:
        return 0.0
    return sum(((revenue / total) * 100) ** 2 for revenue in values.values()) / 10_000


def top_categories(
    breakdown: Mapping[str, Any] | None,
    limit: int = TOP_CATEGORY_LIMIT,
) -> list[CategoryShare]:
    """
    Highest-revenue categories, descending, with their share of total.

    Categories with zero or negative revenue are excluded. Ties keep the
    breakdown's original order.
    """
    values = coerce_breakdown(breakdown)
    total = sum(values.values())
    if total <= 0:
        return []

    ranked = sorted(
        ((name, revenue) for name, revenue in values.items() if revenue > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    return [
        CategoryShare(
            name=name,
            revenue=revenue,
            percentage=round_half_up(revenue / total * 100, 2),
        )
        for name, revenue in ranked[:limit]
    ]


def summarize_breakdown(breakdown: Mapping[str, Any] | None) -> BreakdownSummary:
    values = coerce_breakdown(breakdown)
    top = top_categories(values)
    primary = top[0] if top else None
    return BreakdownSummary(
        top=top,
        hhi=calculate_hhi(values),
        count=len(values),
        primary_revenue=primary.revenue if primary else 0.0,
        primary_percentage=primary.percentage if primary else 0.0,
    )


def concentration_risk_score(hhi: float) -> int:
    return round_int(hhi * 100)


def diversification_score(hhi: float) -> int:
    return round_int((1 - hhi) * 100)


def portfolio_stability(hhi: float) -> str:
    if hhi <= DIVERSE_MAX_HHI:
        return "diverse"
    if hhi > CONCENTRATED_MIN_HHI:
        return "concentrated"
    return "moderate"


def hhi_points(hhi: float) -> int:
    """Convert a 0-1 HHI to the 0-10,000 point scale."""
    return round_int(hhi * 10_000)


def concentration_risk_level(points: float) -> str:
    """Map an HHI on the 0-10,000 point scale to high / medium / low."""
    if points > HIGH_RISK_HHI_POINTS:
        return "high"
    if points > MEDIUM_RISK_HHI_POINTS:
        return "medium"
    return "low"
