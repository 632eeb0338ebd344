"""
db/repositories/contractor_metrics_repository.py

Generic batch upsert for every table described by an ``etl.specs.TableSpec``.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import Column, Date, func, literal_column
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from etl.specs import TableSpec

# PostgreSQL wire protocol limit on bind parameters in a single statement.
POSTGRES_MAX_BIND_PARAMETERS = 65535


@dataclass(frozen=True)
class UpsertCounts:
    inserted: int = 0
    updated: int = 0


class ContractorMetricsRepository:
    """
    Writes destination records with one multi-row
    ``INSERT ... ON CONFLICT (natural key) DO UPDATE`` per batch.

    Every non-key field is overwritten from ``EXCLUDED`` (last load wins)
    unless the TableSpec narrows ``update_fields``. Timestamp "touch" columns are
    set to the database clock on conflict. Inserted and updated rows are
    told apart with ``RETURNING (xmax = 0)``, which is true only for rows
    created by this statement.

    Records must already be unique by natural key: PostgreSQL rejects a
    statement that updates the same row twice.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_batch(self, spec: TableSpec, records: Sequence[dict[str, Any]]) -> UpsertCounts:
        if not records:
            return UpsertCounts()

        stmt = build_upsert_statement(spec, records)
        flags = self._session.execute(stmt).scalars().all()
        inserted = sum(1 for flag in flags if flag)
        return UpsertCounts(inserted=inserted, updated=len(flags) - inserted)


# ---------------------------------------------------------------------------
# Statement builder (no session required)
# ---------------------------------------------------------------------------


def max_rows_per_statement(spec: TableSpec) -> int:
    """
    Largest number of rows one upsert for ``spec`` can carry. Each row binds
    at most one parameter per table column (the generated ``id`` included).
    """

    columns = len(spec.model.__table__.columns)
    return max(1, POSTGRES_MAX_BIND_PARAMETERS // columns)


def build_upsert_statement(spec: TableSpec, records: Sequence[dict[str, Any]]) -> Insert:
    table = spec.model.__table__
    record_fields = list(records[0].keys())
    payloads = [{"id": uuid.uuid4(), **record} for record in records]

    stmt = insert(table).values(payloads)
    set_: dict[str, Any] = {
        name: stmt.excluded[name] for name in spec.conflict_update_fields(record_fields)
    }
    for name in spec.touch_fields:
        set_[name] = _touch_value(table.c[name])

    return stmt.on_conflict_do_update(
        index_elements=[table.c[key] for key in spec.key_fields],
        set_=set_,
    ).returning(literal_column("(xmax = 0)").label("inserted"))


def _touch_value(column: Column[Any]) -> Any:
    if isinstance(column.type, Date):
        return func.current_date()
    return func.now()
