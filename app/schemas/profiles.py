"""
Schemas for contractor profile endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProfileRebuildAcceptedResponse(BaseModel):
    status: str = "accepted"
    requested_at: datetime


class ProfileIncrementalRequest(BaseModel):
    since: datetime | None = Field(
        default=None,
        description="Rebuild profiles whose cache rows changed after this time. Defaults to the configured lookback (24 hours).",
    )


class ProfileIncrementalAcceptedResponse(BaseModel):
    status: str = "accepted"
    since: datetime | None = None
    requested_at: datetime


class ProfileAggregationStatusResponse(BaseModel):
    status: str
    run_started_at: datetime | None = None
    run_completed_at: datetime | None = None
    duration_ms: int | None = None
    profiles_created: int = 0
    ueis_mapped: int = 0
    profiles_deactivated: int = 0
    error_count: int = 0
    error_message: str | None = None


class PeerComparisonResponse(BaseModel):
    profile_id: UUID
    canonical_name: str
    display_name: str
    ueis: list[str] = Field(default_factory=list)
    month_year: date | None = None
    revenue_percentile: int | None = None
    growth_percentile: int | None = None
    performance_score: int | None = None
    sample_size: int = 0


class ConcentrationRiskResponse(BaseModel):
    average_hhi_points: int
    risk_level: str


class RiskAnalysisResponse(BaseModel):
    profile_id: UUID
    canonical_name: str
    display_name: str
    ueis: list[str] = Field(default_factory=list)
    month_year: date | None = None
    agency_concentration: ConcentrationRiskResponse
    naics_concentration: ConcentrationRiskResponse
    average_diversification_score: int | None = None
    sample_size: int = 0
