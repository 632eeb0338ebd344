"""
tests/test_concentration.py

HHI and concentration labelling. Deterministic, no I/O.
"""

from __future__ import annotations

import pytest

from analytics.concentration import (
    calculate_hhi,
    concentration_risk_level,
    concentration_risk_score,
    diversification_score,
    hhi_points,
    portfolio_stability,
    summarize_breakdown,
    top_categories,
)
from analytics.numeric import round_half_up, round_int, to_float


class TestHHI:
    def test_empty_breakdown_is_zero(self) -> None:
        assert calculate_hhi({}) == 0.0
        assert calculate_hhi(None) == 0.0

    def test_zero_revenue_is_zero(self) -> None:
        assert calculate_hhi({"DOD": 0, "VA": 0}) == 0.0

    def test_single_category_is_one(self) -> None:
        assert calculate_hhi({"DOD": 42}) == pytest.approx(1.0)

    def test_even_split(self) -> None:
        assert calculate_hhi({"A": 1, "B": 1, "C": 1, "D": 1}) == pytest.approx(0.25)

    def test_non_numeric_values_count_as_zero(self) -> None:
        assert calculate_hhi({"A": "100", "B": "garbage"}) == pytest.approx(1.0)


class TestTopCategories:
    def test_ordering_limit_and_percentages(self) -> None:
        top = top_categories({"A": 10, "B": 50, "C": 30, "D": 10, "E": 0})
        assert [share.name for share in top] == ["B", "C", "A"]
        assert [share.percentage for share in top] == [50.0, 30.0, 10.0]

    def test_zero_revenue_excluded(self) -> None:
        assert [share.name for share in top_categories({"A": 0, "B": 5})] == ["B"]

    def test_single_category_summary(self) -> None:
        summary = summarize_breakdown({"DOD": 12.5})
        assert summary.hhi == pytest.approx(1.0)
        assert summary.count == 1
        assert summary.primary_revenue == 12.5
        assert summary.primary_percentage == 100.0

    def test_empty_summary(self) -> None:
        summary = summarize_breakdown(None)
        assert summary.top == []
        assert summary.primary_percentage == 0.0


class TestLabels:
    def test_scores(self) -> None:
        assert concentration_risk_score(0.375) == 38
        assert diversification_score(0.375) == 63

    @pytest.mark.parametrize(
        ("hhi", "expected"),
        [(0.0, "diverse"), (0.25, "diverse"), (0.3, "moderate"), (0.5, "moderate"), (0.51, "concentrated")],
    )
    def test_portfolio_stability(self, hhi: float, expected: str) -> None:
        assert portfolio_stability(hhi) == expected

    @pytest.mark.parametrize(
        ("points", "expected"),
        [(10_000, "high"), (5001, "high"), (5000, "medium"), (2501, "medium"), (2500, "low"), (0, "low")],
    )
    def test_risk_levels(self, points: int, expected: str) -> None:
        assert concentration_risk_level(points) == expected

    def test_hhi_points(self) -> None:
        assert hhi_points(0.6) == 6000
        assert concentration_risk_level(hhi_points(0.6)) == "high"


class TestNumeric:
    def test_half_up(self) -> None:
        assert round_int(2.5) == 3
        assert round_int(0.5) == 1
        assert round_half_up(1.005, 2) == 1.01

    def test_to_float(self) -> None:
        assert to_float(None) == 0.0
        assert to_float("x") == 0.0
        assert to_float(float("nan")) == 0.0
        assert to_float("1.5") == 1.5
