"""
tests/test_etl_orchestrator.py

Table-level status handling and run logging, with fake persistence.
"""

from __future__ import annotations

from pathlib import Path

from conftest import UNIVERSE_HEADERS, FakeRunLog, FakeSession, FakeWriter, universe_rows, write_gzip_csv
from db.models.etl_run_log import EtlLoadStatus, EtlRunLog
from etl.errors import BatchPersistenceError
from etl.loader import BatchCSVLoader
from etl.orchestrator import ETLOrchestrator
from etl.specs import MONTHLY_METRICS, UNIVERSE


def _orchestrator(data_dir: Path, writer: FakeWriter, run_log: FakeRunLog) -> ETLOrchestrator:
    session = FakeSession()
    return ETLOrchestrator(
        db=session,
        data_dir=data_dir,
        loaded_by="test-suite",
        loader=BatchCSVLoader(db=session, writer=writer, batch_size=100),
        run_log=run_log,
    )


def test_missing_files_fail_the_table_and_the_run_moves_on(tmp_path: Path) -> None:
    write_gzip_csv(tmp_path / "full_contractor_universe.csv.gz", UNIVERSE_HEADERS, universe_rows(5))
    run_log = FakeRunLog()
    orchestrator = _orchestrator(tmp_path, FakeWriter(), run_log)

    results = orchestrator.run(["metrics", "universe"])

    assert [result.table for result in results] == ["universe", "metrics"]
    universe, metrics = results
    assert universe.status == EtlLoadStatus.COMPLETED
    assert universe.progress.total_inserted == 5
    assert metrics.status == EtlLoadStatus.FAILED
    assert metrics.progress.errors[0].startswith("Fatal error: No source files match")

    assert [run["table_name"] for run in run_log.runs] == [
        "contractor_universe",
        "contractor_metrics_monthly",
    ]
    assert run_log.runs[1]["load_status"] == EtlLoadStatus.FAILED
    assert run_log.runs[0]["loaded_by"] == "test-suite"
    assert run_log.runs[0]["data_quality_checks"]["mapping"] == "universe"


def test_failed_batches_complete_with_errors(tmp_path: Path) -> None:
    write_gzip_csv(tmp_path / "full_contractor_universe.csv.gz", UNIVERSE_HEADERS, universe_rows(250))
    run_log = FakeRunLog()
    writer = FakeWriter(fail_on={1: BatchPersistenceError("deadlock detected")})
    orchestrator = _orchestrator(tmp_path, writer, run_log)

    (result,) = orchestrator.run(["universe"])

    assert result.status == EtlLoadStatus.COMPLETED_WITH_ERRORS
    assert result.progress.total_failed == 100
    assert result.progress.total_inserted == 150
    assert run_log.runs[0]["records_failed"] == 100
    assert "deadlock detected" in run_log.runs[0]["error_message"]


def test_corrupt_shard_is_fatal_but_keeps_earlier_counts(tmp_path: Path) -> None:
    write_gzip_csv(tmp_path / "full_contractor_universe_0.csv.gz", UNIVERSE_HEADERS, universe_rows(3))
    (tmp_path / "full_contractor_universe_1.csv.gz").write_bytes(b"garbage")
    run_log = FakeRunLog()
    orchestrator = _orchestrator(tmp_path, FakeWriter(), run_log)

    result = orchestrator.run_table(UNIVERSE)

    assert result.status == EtlLoadStatus.FAILED
    assert result.progress.total_inserted == 3
    assert len(result.files) == 2
    assert any(error.startswith("Fatal error:") for error in result.progress.errors)


def test_sharded_exports_are_discovered_in_order(tmp_path: Path) -> None:
    shard_dir = tmp_path / "full_contractor_metrics_monthly"
    for name in ("part_2.csv.gz", "part_0.csv.gz", "part_1.csv.gz"):
        write_gzip_csv(shard_dir / name, ("RECIPIENT_UEI",), [])
    orchestrator = _orchestrator(tmp_path, FakeWriter(), FakeRunLog())

    files = orchestrator.discover_files(MONTHLY_METRICS)

    assert [path.name for path in files] == ["part_0.csv.gz", "part_1.csv.gz", "part_2.csv.gz"]


def test_result_summary(tmp_path: Path) -> None:
    write_gzip_csv(tmp_path / "full_contractor_universe.csv.gz", UNIVERSE_HEADERS, universe_rows(2))
    orchestrator = _orchestrator(tmp_path, FakeWriter(), FakeRunLog())

    (result,) = orchestrator.run(["universe"])
    summary = result.to_dict()

    assert summary["table"] == "universe"
    assert summary["table_name"] == "contractor_universe"
    assert summary["total_processed"] == 2
    assert summary["duration_ms"] >= 0


def test_every_run_log_column_is_written(tmp_path: Path) -> None:
    write_gzip_csv(tmp_path / "full_contractor_universe.csv.gz", UNIVERSE_HEADERS, universe_rows(3))
    run_log = FakeRunLog()

    _orchestrator(tmp_path, FakeWriter(), run_log).run(["universe"])

    (run,) = run_log.runs
    generated = {"id", "created_at", "load_duration_ms"}
    assert set(run) | generated == set(EtlRunLog.__table__.c.keys())
