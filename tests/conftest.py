"""
tests/conftest.py

Shared fakes for loader and orchestrator tests. Nothing here touches a
database: sessions only count commits and rollbacks.
"""

from __future__ import annotations

import csv
import gzip
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from db.repositories.contractor_metrics_repository import UpsertCounts

UNIVERSE_HEADERS = (
    "RECIPIENT_UEI",
    "RECIPIENT_NAME",
    "ENTITY_TYPE",
    "TOTAL_REVENUE_LIFETIME_MILLIONS",
    "HAS_PRIME_ACTIVITY",
    "HAS_SUB_ACTIVITY",
)


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeWriter:
    """
    Records every batch and keeps the resulting table contents in ``rows``,
    keyed by table name and natural key. A conflicting record overwrites only
    the fields the upsert would update. ``fail_on`` maps a 1-based call
    number to the exception that call raises.
    """

    def __init__(self, fail_on: dict[int, Exception] | None = None) -> None:
        self.batches: list[list[dict[str, Any]]] = []
        self.rows: dict[tuple[str, tuple[Any, ...]], dict[str, Any]] = {}
        self._fail_on = fail_on or {}

    def upsert_batch(self, spec, records: Sequence[dict[str, Any]]) -> UpsertCounts:
        self.batches.append(list(records))
        error = self._fail_on.get(len(self.batches))
        if error is not None:
            raise error
        updated = 0
        for record in records:
            key = (spec.table_name, spec.natural_key(record))
            stored = self.rows.get(key)
            if stored is None:
                self.rows[key] = dict(record)
                continue
            updated += 1
            for name in spec.conflict_update_fields(list(record)):
                stored[name] = record.get(name)
        return UpsertCounts(inserted=len(records) - updated, updated=updated)

    def table_rows(self, table_name: str) -> dict[tuple[Any, ...], dict[str, Any]]:
        return {key: row for (table, key), row in self.rows.items() if table == table_name}


class FakeRunLog:
    def __init__(self) -> None:
        self.runs: list[dict[str, Any]] = []

    def record_run(self, **fields: Any) -> None:
        self.runs.append(fields)


def write_gzip_csv(path: Path, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, mode="wt", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(headers)
        writer.writerows(rows)
    return path


def universe_rows(count: int, *, start: int = 0) -> list[tuple[str, ...]]:
    return [
        (f"UEI{index:08d}", f"Contractor {index}", "PRIME", "1.5", "true", "false")
        for index in range(start, start + count)
    ]


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def make_universe_file(tmp_path: Path) -> Callable[..., Path]:
    def _make(rows: Sequence[Sequence[Any]], name: str = "full_contractor_universe.csv.gz") -> Path:
        return write_gzip_csv(tmp_path / name, UNIVERSE_HEADERS, rows)

    return _make
