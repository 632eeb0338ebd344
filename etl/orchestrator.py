"""
etl/orchestrator.py

Runs the table loads of a full Snowflake refresh in dependency order.

Each table is independent: a fatal error on one table (missing or corrupt
export) is logged to the run log and the refresh moves on to the next
table. Every attempted table gets exactly one ``contractor_etl_metadata``
row, including tables that failed before loading a single row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_etl_settings
from db.models.etl_run_log import EtlLoadStatus
from db.repositories.etl_run_repository import EtlRunRepository
from etl.errors import SourceFileError
from etl.loader import BatchCSVLoader, LoadProgress
from etl.specs import TableSpec, resolve_table_specs

logger = logging.getLogger(__name__)


class RunLogWriter(Protocol):
    def record_run(self, **fields: Any) -> Any: ...


@dataclass
class TableLoadResult:
    table: str
    table_name: str
    source: str
    status: str
    progress: LoadProgress
    started_at: datetime
    finished_at: datetime
    files: list[str] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "table_name": self.table_name,
            "source": self.source,
            "status": self.status,
            "files": list(self.files),
            "duration_ms": self.duration_ms,
            **self.progress.to_dict(),
        }


class ETLOrchestrator:
    """
    Discovers export files under ``data_dir`` and loads them table by table.
    """

    def __init__(
        self,
        *,
        db: Session,
        data_dir: Path,
        loaded_by: str,
        load_type: str = "full",
        batch_size: int | None = None,
        max_error_messages: int = 100,
        loader: BatchCSVLoader | None = None,
        run_log: RunLogWriter | None = None,
    ) -> None:
        self._db = db
        self._data_dir = Path(data_dir)
        self._loaded_by = loaded_by
        self._load_type = load_type
        self._loader = loader or BatchCSVLoader(
            db=db,
            batch_size=batch_size,
            max_error_messages=max_error_messages,
        )
        self._run_log: RunLogWriter = run_log or EtlRunRepository(db)

    def run(self, tables: list[str] | None = None) -> list[TableLoadResult]:
        """
        Load ``tables`` (spec names) in load order, or every table when empty.

        Raises:
            UnknownTableError: a requested table has no load mapping.
        """
        specs = resolve_table_specs(tables)
        logger.info(
            "ETL run starting tables=%s data_dir=%s",
            [spec.name for spec in specs],
            self._data_dir,
        )

        results = [self.run_table(spec) for spec in specs]

        failed = [result.table for result in results if result.status == EtlLoadStatus.FAILED]
        logger.info(
            "ETL run complete tables=%d failed=%s inserted=%d updated=%d",
            len(results),
            failed,
            sum(result.progress.total_inserted for result in results),
            sum(result.progress.total_updated for result in results),
        )
        return results

    def discover_files(self, spec: TableSpec) -> list[Path]:
        return sorted(path for path in self._data_dir.glob(spec.source_pattern) if path.is_file())

    def run_table(self, spec: TableSpec) -> TableLoadResult:
        started_at = _now_utc()
        progress = LoadProgress(table_name=spec.table_name)
        source = str(self._data_dir / spec.source_pattern)
        paths = self.discover_files(spec)
        fatal_error: str | None = None

        if not paths:
            fatal_error = f"No source files match {source}"
        else:
            try:
                for path in paths:
                    self._loader.load_file(spec, path, progress=progress)
            except SourceFileError as exc:
                fatal_error = str(exc)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected failure loading %s", spec.label)
                fatal_error = f"{exc.__class__.__name__}: {exc}"

        if fatal_error is not None:
            progress.errors.append(f"Fatal error: {fatal_error}")
            status = EtlLoadStatus.FAILED
            logger.error("Table %s failed: %s", spec.label, fatal_error)
        elif progress.total_failed > 0:
            status = EtlLoadStatus.COMPLETED_WITH_ERRORS
        else:
            status = EtlLoadStatus.COMPLETED

        result = TableLoadResult(
            table=spec.name,
            table_name=spec.table_name,
            source=source,
            status=status,
            progress=progress,
            started_at=started_at,
            finished_at=_now_utc(),
            files=[str(path) for path in paths],
        )
        self._record_run(spec, result)
        logger.info(
            "Table %s %s processed=%d inserted=%d updated=%d skipped=%d failed=%d",
            spec.label,
            status,
            progress.total_processed,
            progress.total_inserted,
            progress.total_updated,
            progress.total_skipped,
            progress.total_failed,
        )
        return result

    def _record_run(self, spec: TableSpec, result: TableLoadResult) -> None:
        """Write the run-log row. A failure here is logged, never raised."""
        progress = result.progress
        try:
            self._run_log.record_run(
                table_name=spec.table_name,
                source_file=result.source,
                records_processed=progress.total_processed,
                records_inserted=progress.total_inserted,
                records_updated=progress.total_updated,
                records_skipped=progress.total_skipped,
                records_failed=progress.total_failed,
                load_start_time=result.started_at,
                load_end_time=result.finished_at,
                load_status=result.status,
                error_message="\n".join(progress.errors) if progress.errors else None,
                loaded_by=self._loaded_by,
                load_type=self._load_type,
                data_quality_checks={
                    "mapping": spec.name,
                    "files": len(result.files),
                    "batches": progress.batches,
                },
            )
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.warning("Failed to record ETL run for %s: %s", spec.table_name, exc)


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def build_etl_orchestrator(
    db: Session,
    *,
    data_dir: Path | None = None,
    batch_size: int | None = None,
) -> ETLOrchestrator:
    """Construct an orchestrator from environment settings; arguments override them."""
    settings = get_etl_settings()
    return ETLOrchestrator(
        db=db,
        data_dir=data_dir or settings.data_dir,
        loaded_by=settings.loaded_by,
        load_type=settings.load_type,
        batch_size=batch_size or settings.batch_size,
        max_error_messages=settings.max_error_messages,
    )
