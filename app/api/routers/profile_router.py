"""
Contractor profile rebuild and analysis endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.ratelimit import enforce_rate_limit
from app.schemas.profiles import (
    ConcentrationRiskResponse,
    PeerComparisonResponse,
    ProfileAggregationStatusResponse,
    ProfileIncrementalAcceptedResponse,
    ProfileIncrementalRequest,
    ProfileRebuildAcceptedResponse,
    RiskAnalysisResponse,
)
from app.services.pipeline_service import (
    FastAPIBackgroundTaskExecutor,
    PipelineBusyError,
    PipelineService,
    get_pipeline_service,
)
from app.services.profile_analysis_service import (
    ProfileAnalysisService,
    ProfileNotFoundError,
    get_profile_analysis_service,
)
from db.repositories.profile_repository import ProfileRepository
from db.session import get_db

router = APIRouter(tags=["profiles"], dependencies=[Depends(enforce_rate_limit)])


@router.post(
    "/profiles/rebuild",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ProfileRebuildAcceptedResponse,
)
def trigger_profile_rebuild(
    background_tasks: BackgroundTasks,
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> ProfileRebuildAcceptedResponse:
    try:
        pipeline.trigger_profile_rebuild(executor=FastAPIBackgroundTaskExecutor(background_tasks))
    except PipelineBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return ProfileRebuildAcceptedResponse(requested_at=datetime.now(timezone.utc))


@router.post(
    "/profiles/rebuild/incremental",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ProfileIncrementalAcceptedResponse,
)
def trigger_incremental_profile_update(
    background_tasks: BackgroundTasks,
    payload: ProfileIncrementalRequest | None = Body(default=None),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> ProfileIncrementalAcceptedResponse:
    since = payload.since if payload else None
    try:
        pipeline.trigger_incremental_profile_update(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            since=since,
        )
    except PipelineBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return ProfileIncrementalAcceptedResponse(since=since, requested_at=datetime.now(timezone.utc))


@router.get("/profiles/aggregation-status", response_model=ProfileAggregationStatusResponse)
def get_aggregation_status(db: Session = Depends(get_db)) -> ProfileAggregationStatusResponse:
    run = ProfileRepository(db).latest_run()
    if run is None:
        return ProfileAggregationStatusResponse(status="never_run")
    return ProfileAggregationStatusResponse(
        status=run.status,
        run_started_at=run.run_started_at,
        run_completed_at=run.run_completed_at,
        duration_ms=run.duration_ms,
        profiles_created=run.profiles_created,
        ueis_mapped=run.ueis_mapped,
        profiles_deactivated=run.profiles_deactivated,
        error_count=run.error_count,
        error_message=run.error_message,
    )


@router.get("/profiles/{profile_id}/peer-comparison", response_model=PeerComparisonResponse)
def get_peer_comparison(
    profile_id: UUID,
    db: Session = Depends(get_db),
    service: ProfileAnalysisService = Depends(get_profile_analysis_service),
) -> PeerComparisonResponse:
    try:
        comparison = service.get_peer_comparison(db=db, profile_id=profile_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return PeerComparisonResponse(
        profile_id=comparison.profile.id,
        canonical_name=comparison.profile.canonical_name,
        display_name=comparison.profile.display_name,
        ueis=comparison.ueis,
        month_year=comparison.month_year,
        revenue_percentile=comparison.percentiles.revenue_percentile,
        growth_percentile=comparison.percentiles.growth_percentile,
        performance_score=comparison.percentiles.performance_score,
        sample_size=comparison.percentiles.sample_size,
    )


@router.get("/profiles/{profile_id}/risk-analysis", response_model=RiskAnalysisResponse)
def get_risk_analysis(
    profile_id: UUID,
    db: Session = Depends(get_db),
    service: ProfileAnalysisService = Depends(get_profile_analysis_service),
) -> RiskAnalysisResponse:
    try:
        analysis = service.get_risk_analysis(db=db, profile_id=profile_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return RiskAnalysisResponse(
        profile_id=analysis.profile.id,
        canonical_name=analysis.profile.canonical_name,
        display_name=analysis.profile.display_name,
        ueis=analysis.ueis,
        month_year=analysis.month_year,
        agency_concentration=ConcentrationRiskResponse(
            average_hhi_points=analysis.agency.average_hhi_points,
            risk_level=analysis.agency.risk_level,
        ),
        naics_concentration=ConcentrationRiskResponse(
            average_hhi_points=analysis.naics.average_hhi_points,
            risk_level=analysis.naics.risk_level,
        ),
        average_diversification_score=analysis.average_diversification_score,
        sample_size=analysis.sample_size,
    )
