"""
Repository for the ETL run log (``contractor_etl_metadata``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.etl_run_log import EtlRunLog


class EtlRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def record_run(
        self,
        *,
        table_name: str,
        source_file: str | None,
        records_processed: int,
        records_inserted: int,
        records_updated: int,
        records_skipped: int,
        records_failed: int,
        load_start_time: datetime,
        load_end_time: datetime,
        load_status: str,
        error_message: str | None,
        loaded_by: str,
        load_type: str,
        data_quality_checks: dict[str, Any] | None = None,
    ) -> EtlRunLog:
        duration_ms = int((load_end_time - load_start_time).total_seconds() * 1000)
        run = EtlRunLog(
            table_name=table_name,
            source_file=source_file,
            records_processed=records_processed,
            records_inserted=records_inserted,
            records_updated=records_updated,
            records_skipped=records_skipped,
            records_failed=records_failed,
            load_start_time=load_start_time,
            load_end_time=load_end_time,
            load_duration_ms=duration_ms,
            load_status=load_status,
            error_message=error_message,
            data_quality_checks=data_quality_checks,
            loaded_by=loaded_by,
            load_type=load_type,
        )
        self._session.add(run)
        self._session.flush()
        return run

    def list_runs(
        self,
        *,
        limit: int = 100,
        table_name: str | None = None,
        status: str | None = None,
    ) -> list[EtlRunLog]:
        stmt: Select[tuple[EtlRunLog]] = select(EtlRunLog)

        if table_name:
            stmt = stmt.where(EtlRunLog.table_name == table_name)
        if status:
            stmt = stmt.where(EtlRunLog.load_status == status)

        stmt = stmt.order_by(EtlRunLog.load_start_time.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def latest_by_table(self) -> dict[str, EtlRunLog]:
        """Most recent run per table, keyed by table name."""
        stmt = (
            select(EtlRunLog)
            .distinct(EtlRunLog.table_name)
            .order_by(EtlRunLog.table_name, EtlRunLog.load_start_time.desc())
        )
        return {run.table_name: run for run in self._session.scalars(stmt)}
