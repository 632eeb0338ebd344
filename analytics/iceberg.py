"""
analytics/iceberg.py

"Iceberg" opportunity scoring.

An iceberg contractor earns most of its federal revenue as a subcontractor,
so its prime-award footprint hides the real size of the business. The score
rewards a high sub-to-prime ratio first, and falls back to the share of
revenue that is hidden below the waterline.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from analytics.numeric import round_half_up, round_int

HIGH_TIER_MIN_SCORE = 75
MEDIUM_TIER_MIN_SCORE = 50

RATIO_WEIGHT = 20
MAX_SCORE = 100
HIDDEN_MAJORITY_PCT = 50

# Stored ratios are capped to fit contractor_iceberg_opportunities.sub_to_prime_ratio
# (NUMERIC(24, 4)); a near-zero prime revenue otherwise overflows the column.
MAX_STORED_RATIO = 1e15

# Share of subcontract revenue assumed convertible to prime work.
STRONG_CONVERSION_RATE = 0.8
WEAK_CONVERSION_RATE = 0.3


@dataclass(frozen=True)
class IcebergAssessment:
    prime_revenue: float
    subcontractor_revenue: float
    total_revenue: float
    sub_to_prime_ratio: float | None
    hidden_revenue_percentage: float
    iceberg_score: int
    opportunity_tier: str
    potential_prime_value: float
    competitive_advantages: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)


def hidden_revenue_percentage(sub_revenue: float, total_revenue: float) -> float:
    if total_revenue <= 0:
        return 0.0
    return sub_revenue / total_revenue * 100


def sub_to_prime_ratio(sub_revenue: float, prime_revenue: float) -> float | None:
    """Subcontract revenue per dollar of prime revenue; ``None`` without prime revenue."""
    if prime_revenue <= 0:
        return None
    return sub_revenue / prime_revenue


def iceberg_score(
    ratio: float | None,
    hidden_pct: float,
    total_revenue: float | None = None,
) -> int:
    """
    Score on 0-100.

    * no revenue at all -> 0
    * ratio above 1 -> ``min(100, round(ratio * 20 + hidden_pct))``
    * otherwise, a hidden majority (> 50%) -> ``round(hidden_pct)``
    * otherwise 0
    """
    if total_revenue is not None and total_revenue <= 0:
        return 0
    if ratio is not None and ratio > 1:
        return min(MAX_SCORE, round_int(ratio * RATIO_WEIGHT + hidden_pct))
    if hidden_pct > HIDDEN_MAJORITY_PCT:
        return round_int(hidden_pct)
    return 0


def opportunity_tier(score: int) -> str:
    if score >= HIGH_TIER_MIN_SCORE:
        return "high"
    if score >= MEDIUM_TIER_MIN_SCORE:
        return "medium"
    return "low"


def assess_iceberg(
    prime_revenue: float,
    sub_revenue: float,
    total_revenue: float,
) -> IcebergAssessment:
    ratio = sub_to_prime_ratio(sub_revenue, prime_revenue)
    hidden_pct = hidden_revenue_percentage(sub_revenue, total_revenue)
    score = iceberg_score(ratio, hidden_pct, total_revenue)

    conversion = STRONG_CONVERSION_RATE if ratio is not None and ratio > 1 else WEAK_CONVERSION_RATE

    advantages: list[str] = []
    if ratio is not None and ratio > 2:
        advantages.append("Strong subcontractor relationships")
        advantages.append("Proven delivery track record")

    risks: list[str] = []
    if prime_revenue <= 0:
        risks.append("No prime contract experience")

    return IcebergAssessment(
        prime_revenue=prime_revenue,
        subcontractor_revenue=sub_revenue,
        total_revenue=total_revenue,
        sub_to_prime_ratio=round_half_up(min(ratio, MAX_STORED_RATIO), 4) if ratio is not None else None,
        hidden_revenue_percentage=round_half_up(hidden_pct, 2),
        iceberg_score=score,
        opportunity_tier=opportunity_tier(score),
        potential_prime_value=round_half_up(sub_revenue * conversion, 6),
        competitive_advantages=advantages,
        risk_factors=risks,
    )
