"""
app/services/profile_analysis_service.py

Read-side analytics for a single contractor profile: peer standing and
portfolio concentration risk across all of the profile's UEIs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from analytics.concentration import concentration_risk_level, hhi_points
from analytics.numeric import round_int, to_float
from analytics.peers import PeerPercentileSummary, average_percentiles
from db.models.contractor_profile import ContractorProfile
from db.repositories.profile_repository import ProfileRepository


class ProfileNotFoundError(LookupError):
    """
    Raised when a profile id does not exist.
    """


@dataclass(frozen=True)
class PeerComparison:
    profile: ContractorProfile
    ueis: list[str]
    month_year: Any
    percentiles: PeerPercentileSummary


@dataclass(frozen=True)
class ConcentrationRisk:
    average_hhi_points: int
    risk_level: str


@dataclass(frozen=True)
class RiskAnalysis:
    profile: ContractorProfile
    ueis: list[str]
    month_year: Any
    agency: ConcentrationRisk
    naics: ConcentrationRisk
    average_diversification_score: int | None
    sample_size: int


def _concentration(values: list[float]) -> ConcentrationRisk:
    """Average 0-1 HHIs, then rate the average on the 0-10,000 point scale."""
    if not values:
        return ConcentrationRisk(average_hhi_points=0, risk_level=concentration_risk_level(0))
    points = hhi_points(sum(values) / len(values))
    return ConcentrationRisk(average_hhi_points=points, risk_level=concentration_risk_level(points))


class ProfileAnalysisService:
    def get_peer_comparison(self, *, db: Session, profile_id: uuid.UUID) -> PeerComparison:
        repository = ProfileRepository(db)
        profile = self._require_profile(repository, profile_id)
        ueis = repository.ueis_for_profile(profile_id)
        rows = repository.latest_peer_rows(ueis)
        return PeerComparison(
            profile=profile,
            ueis=ueis,
            month_year=rows[0].month_year if rows else None,
            percentiles=average_percentiles(rows),
        )

    def get_risk_analysis(self, *, db: Session, profile_id: uuid.UUID) -> RiskAnalysis:
        repository = ProfileRepository(db)
        profile = self._require_profile(repository, profile_id)
        ueis = repository.ueis_for_profile(profile_id)
        rows = repository.latest_portfolio_rows(ueis)

        diversification = [to_float(row.diversification_score) for row in rows]
        return RiskAnalysis(
            profile=profile,
            ueis=ueis,
            month_year=rows[0].month_year if rows else None,
            agency=_concentration([to_float(row.agency_hhi) for row in rows]),
            naics=_concentration([to_float(row.naics_hhi) for row in rows]),
            average_diversification_score=(
                round_int(sum(diversification) / len(diversification)) if diversification else None
            ),
            sample_size=len(rows),
        )

    @staticmethod
    def _require_profile(repository: ProfileRepository, profile_id: uuid.UUID) -> ContractorProfile:
        profile = repository.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFoundError(f"Contractor profile not found: {profile_id}")
        return profile


@lru_cache(maxsize=1)
def get_profile_analysis_service() -> ProfileAnalysisService:
    return ProfileAnalysisService()
