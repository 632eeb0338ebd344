"""
ETL trigger and run-log endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.ratelimit import enforce_rate_limit
from app.schemas.etl import ETLAcceptedResponse, ETLRunListResponse, ETLRunResponse, ETLTriggerRequest
from app.services.pipeline_service import (
    FastAPIBackgroundTaskExecutor,
    PipelineBusyError,
    PipelineService,
    get_pipeline_service,
)
from db.models.etl_run_log import EtlRunLog
from db.repositories.etl_run_repository import EtlRunRepository
from db.session import get_db
from etl.errors import UnknownTableError

router = APIRouter(tags=["etl"], dependencies=[Depends(enforce_rate_limit)])


@router.post(
    "/etl/loads",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ETLAcceptedResponse,
)
def trigger_etl_load(
    background_tasks: BackgroundTasks,
    payload: ETLTriggerRequest | None = Body(default=None),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> ETLAcceptedResponse:
    try:
        tables = pipeline.trigger_etl(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            tables=payload.tables if payload else None,
        )
    except UnknownTableError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PipelineBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return ETLAcceptedResponse(tables=tables, requested_at=datetime.now(timezone.utc))


@router.get("/etl/runs", response_model=ETLRunListResponse)
def list_etl_runs(
    table_name: str | None = Query(default=None, description="Optional destination table filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional load status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max runs returned"),
    db: Session = Depends(get_db),
) -> ETLRunListResponse:
    runs = EtlRunRepository(db).list_runs(limit=limit, table_name=table_name, status=status_filter)
    return ETLRunListResponse(runs=[_to_run_response(run) for run in runs])


@router.get("/etl/runs/latest", response_model=ETLRunListResponse)
def latest_etl_runs(db: Session = Depends(get_db)) -> ETLRunListResponse:
    latest = EtlRunRepository(db).latest_by_table()
    return ETLRunListResponse(runs=[_to_run_response(run) for run in latest.values()])


def _to_run_response(run: EtlRunLog) -> ETLRunResponse:
    return ETLRunResponse(
        run_id=run.id,
        table_name=run.table_name,
        source_file=run.source_file,
        records_processed=run.records_processed,
        records_inserted=run.records_inserted,
        records_updated=run.records_updated,
        records_skipped=run.records_skipped,
        records_failed=run.records_failed,
        load_start_time=run.load_start_time,
        load_end_time=run.load_end_time,
        load_duration_ms=run.load_duration_ms,
        load_status=run.load_status,
        error_message=run.error_message,
        data_quality_checks=run.data_quality_checks,
        loaded_by=run.loaded_by,
        load_type=run.load_type,
    )
