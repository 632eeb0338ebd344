"""
Load Snowflake exports into PostgreSQL from the CLI.

    python -m scripts.run_etl --table universe --table metrics --data-dir /exports
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from app.logging_utils import configure_logging
from db.models.etl_run_log import EtlLoadStatus
from db.session import SessionLocal
from etl.orchestrator import build_etl_orchestrator
from etl.specs import TABLE_SPECS


def main() -> int:
    parser = argparse.ArgumentParser(description="Load Snowflake CSV exports into PostgreSQL.")
    parser.add_argument(
        "--table",
        dest="tables",
        action="append",
        choices=[spec.name for spec in TABLE_SPECS],
        default=None,
        help="Table mapping to load. Repeat for several; all tables when omitted.",
    )
    parser.add_argument(
        "--data-dir",
        dest="data_dir",
        type=Path,
        default=None,
        help="Directory holding the *.csv.gz exports (default: ETL_DATA_DIR).",
    )
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Override every table's batch size.",
    )
    args = parser.parse_args()

    configure_logging()
    with SessionLocal() as db:
        orchestrator = build_etl_orchestrator(db, data_dir=args.data_dir, batch_size=args.batch_size)
        results = orchestrator.run(args.tables)

    print(json.dumps([result.to_dict() for result in results], indent=2, default=str))
    return 1 if any(result.status == EtlLoadStatus.FAILED for result in results) else 0


if __name__ == "__main__":
    raise SystemExit(main())
