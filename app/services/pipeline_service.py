"""
app/services/pipeline_service.py

Runs the batch pipeline (ETL refresh, profile rebuild) outside the request
cycle and guards against overlapping runs inside one process.

Both the API trigger endpoints and the APScheduler jobs go through this
service, so a scheduled refresh and a manual trigger never load the same
tables concurrently from this process.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from etl.orchestrator import TableLoadResult, build_etl_orchestrator
from etl.specs import resolve_table_specs
from profiles.aggregator import (
    ProfileAggregationSummary,
    ProfileAggregator,
    build_profile_aggregator,
)

logger = logging.getLogger(__name__)


class PipelineBusyError(RuntimeError):
    """
    Raised when a run is requested while the same kind of run is in progress.
    """


class PipelineTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class PipelineService:
    """
    Owns the session lifecycle and the in-process run locks.
    """

    def __init__(self, *, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory
        self._etl_lock = threading.Lock()
        self._profile_lock = threading.Lock()

    # ------------------------------------------------------------------
    # ETL
    # ------------------------------------------------------------------

    def trigger_etl(
        self,
        *,
        executor: PipelineTaskExecutor,
        tables: list[str] | None = None,
    ) -> list[str]:
        """
        Validate ``tables`` and schedule a refresh. Returns the table names
        that will be loaded, in load order.

        Raises:
            UnknownTableError: a requested table has no load mapping.
            PipelineBusyError: a refresh is already running.
        """
        specs = resolve_table_specs(tables)
        if self._etl_lock.locked():
            raise PipelineBusyError("An ETL refresh is already running.")
        names = [spec.name for spec in specs]
        executor.submit(self.run_etl, tables=names)
        return names

    def run_etl(
        self,
        *,
        tables: list[str] | None = None,
        data_dir: Path | None = None,
        batch_size: int | None = None,
    ) -> list[TableLoadResult]:
        if not self._etl_lock.acquire(blocking=False):
            raise PipelineBusyError("An ETL refresh is already running.")
        try:
            db = self._session_factory()
            try:
                orchestrator = build_etl_orchestrator(db, data_dir=data_dir, batch_size=batch_size)
                return orchestrator.run(tables)
            finally:
                db.close()
        finally:
            self._etl_lock.release()

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def trigger_profile_rebuild(self, *, executor: PipelineTaskExecutor) -> None:
        if self._profile_lock.locked():
            raise PipelineBusyError("A profile rebuild is already running.")
        executor.submit(self.run_profile_rebuild)

    def trigger_incremental_profile_update(
        self,
        *,
        executor: PipelineTaskExecutor,
        since: datetime | None = None,
    ) -> None:
        """
        Schedule an update of profiles changed after ``since``. Shares the
        rebuild lock, so it never overlaps a full rebuild.

        Raises:
            PipelineBusyError: a rebuild or incremental update is running.
        """
        if self._profile_lock.locked():
            raise PipelineBusyError("A profile rebuild is already running.")
        executor.submit(self.run_incremental_profile_update, since=since)

    def run_profile_rebuild(self) -> ProfileAggregationSummary:
        return self._run_profiles(lambda aggregator: aggregator.build_all_profiles())

    def run_incremental_profile_update(self, *, since: datetime | None = None) -> ProfileAggregationSummary:
        return self._run_profiles(lambda aggregator: aggregator.update_recent_profiles(since))

    def _run_profiles(
        self,
        action: Callable[[ProfileAggregator], ProfileAggregationSummary],
    ) -> ProfileAggregationSummary:
        if not self._profile_lock.acquire(blocking=False):
            raise PipelineBusyError("A profile rebuild is already running.")
        try:
            db = self._session_factory()
            try:
                return action(build_profile_aggregator(db))
            finally:
                db.close()
        finally:
            self._profile_lock.release()


@lru_cache(maxsize=1)
def get_pipeline_service() -> PipelineService:
    return PipelineService()
