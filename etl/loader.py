"""
etl/loader.py

Batch CSV loader: streams one Snowflake export into its destination table.

Rows are read lazily and grouped into fixed-size batches. The batch size is capped so
one upsert stays within PostgreSQL's bind-parameter limit. Each batch is
transformed through the table's ``TableSpec``, collapsed to one record per
natural key (last row wins), written with a single multi-row upsert and
committed on its own. A batch that fails at the database is rolled back,
counted as failed and recorded; the load continues with the next batch.
Only an unreadable source file stops the load, by raising
``SourceFileError`` to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_utils import log_event
from db.repositories.contractor_metrics_repository import (
    ContractorMetricsRepository,
    UpsertCounts,
    max_rows_per_statement,
)
from etl.errors import BatchPersistenceError
from etl.reader import iter_marked_batches, iter_rows, open_source
from etl.specs import Record, TableSpec

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ERROR_MESSAGES = 100


class BatchWriter(Protocol):
    def upsert_batch(self, spec: TableSpec, records: Sequence[Record]) -> UpsertCounts: ...


@dataclass
class LoadProgress:
    """Running counters for one table load."""

    table_name: str
    total_processed: int = 0
    total_inserted: int = 0
    total_updated: int = 0
    total_skipped: int = 0
    total_failed: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return self.total_failed > 0 or bool(self.errors)

    def merge(self, other: LoadProgress) -> LoadProgress:
        self.total_processed += other.total_processed
        self.total_inserted += other.total_inserted
        self.total_updated += other.total_updated
        self.total_skipped += other.total_skipped
        self.total_failed += other.total_failed
        self.batches += other.batches
        self.errors.extend(other.errors)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "total_processed": self.total_processed,
            "total_inserted": self.total_inserted,
            "total_updated": self.total_updated,
            "total_skipped": self.total_skipped,
            "total_failed": self.total_failed,
            "batches": self.batches,
            "errors": list(self.errors),
        }


class BatchCSVLoader:
    """
    Loads CSV exports into PostgreSQL according to a ``TableSpec``.
    """

    def __init__(
        self,
        *,
        db: Session,
        writer: BatchWriter | None = None,
        batch_size: int | None = None,
        max_error_messages: int = _DEFAULT_MAX_ERROR_MESSAGES,
    ) -> None:
        self._db = db
        self._writer: BatchWriter = writer or ContractorMetricsRepository(db)
        self._batch_size = batch_size
        self._max_error_messages = max(1, max_error_messages)

    def load_files(self, spec: TableSpec, paths: Iterable[Path]) -> LoadProgress:
        """Load every shard of a table in order, merging the progress."""
        progress = LoadProgress(table_name=spec.table_name)
        for path in paths:
            progress.merge(self.load_file(spec, path))
        return progress

    def load_file(
        self,
        spec: TableSpec,
        path: Path,
        *,
        progress: LoadProgress | None = None,
    ) -> LoadProgress:
        """
        Stream one file into ``spec``'s table.

        Counters accumulate into ``progress`` when given, so a caller keeps
        the partial counts of a file that fails midway.

        Raises:
            SourceFileError: the file cannot be opened or read to the end.
                Batches committed before the error stay committed.
        """
        batch_size = self._effective_batch_size(spec)
        if progress is None:
            progress = LoadProgress(table_name=spec.table_name)
        log_event(
            logger,
            logging.INFO,
            "etl_file_started",
            table=spec.table_name,
            file=str(path),
            batch_size=batch_size,
        )

        with open_source(path) as stream:
            rows = iter_rows(stream, source=str(path))
            for batch, is_last in iter_marked_batches(rows, batch_size):
                self._load_batch(spec, batch, progress, final=is_last)

        summary = progress.to_dict()
        summary["errors"] = len(progress.errors)
        log_event(logger, logging.INFO, "etl_file_completed", file=str(path), **summary)
        return progress

    def _effective_batch_size(self, spec: TableSpec) -> int:
        requested = self._batch_size or spec.batch_size
        limit = max_rows_per_statement(spec)
        if requested <= limit:
            return requested
        logger.warning(
            "Batch size %d for %s exceeds the %d rows one statement can bind; using %d",
            requested,
            spec.table_name,
            limit,
            limit,
        )
        return limit

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def _load_batch(
        self,
        spec: TableSpec,
        rows: Sequence[Mapping[str, Any]],
        progress: LoadProgress,
        *,
        final: bool = False,
    ) -> None:
        progress.batches += 1
        progress.total_processed += len(rows)

        records = _deduplicate(spec, _transform_rows(spec, rows))
        progress.total_skipped += len(rows) - len(records)
        if not records:
            return

        try:
            counts = self._persist_batch(spec, records)
        except BatchPersistenceError as exc:
            progress.total_failed += len(records)
            prefix = "Final batch error" if final else "Batch error"
            self._record_error(progress, f"{prefix}: {exc}")
            logger.warning(
                "Batch %d of %s failed (%d rows): %s",
                progress.batches,
                spec.table_name,
                len(records),
                exc,
            )
            return

        progress.total_inserted += counts.inserted
        progress.total_updated += counts.updated
        log_event(
            logger,
            logging.DEBUG,
            "etl_batch_committed",
            table=spec.table_name,
            batch=progress.batches,
            rows=len(rows),
            inserted=counts.inserted,
            updated=counts.updated,
        )

    def _persist_batch(self, spec: TableSpec, records: Sequence[Record]) -> UpsertCounts:
        try:
            counts = self._writer.upsert_batch(spec, records)
            self._db.commit()
        except BatchPersistenceError:
            self._db.rollback()
            raise
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise BatchPersistenceError(_describe_db_error(exc)) from exc
        return counts

    def _record_error(self, progress: LoadProgress, message: str) -> None:
        if len(progress.errors) < self._max_error_messages:
            progress.errors.append(message)


# ---------------------------------------------------------------------------
# Module-level helpers (no I/O)
# ---------------------------------------------------------------------------


def _transform_rows(spec: TableSpec, rows: Sequence[Mapping[str, Any]]) -> list[Record]:
    records: list[Record] = []
    for raw_row in rows:
        record = spec.transform(raw_row)
        if record is not None:
            records.append(record)
    return records


def _deduplicate(spec: TableSpec, records: Sequence[Record]) -> list[Record]:
    """Last-write-wins deduplication keyed on the TableSpec natural key."""
    seen: dict[tuple[Any, ...], Record] = {}
    for record in records:
        key = spec.natural_key(record)
        seen.pop(key, None)
        seen[key] = record
    return list(seen.values())


def _describe_db_error(exc: SQLAlchemyError) -> str:
    origin = getattr(exc, "orig", None)
    message = str(origin) if origin is not None else str(exc)
    return message.strip().splitlines()[0] if message.strip() else exc.__class__.__name__
