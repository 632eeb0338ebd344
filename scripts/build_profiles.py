"""
Rebuild contractor profiles from the contractors cache.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime

from app.logging_utils import configure_logging
from db.session import SessionLocal
from profiles.aggregator import ProfileAggregationError, build_profile_aggregator


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild contractor profiles from contractors_cache.")
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print the most recent aggregation run instead of rebuilding.",
    )
    parser.add_argument(
        "--incremental",
        action="store_true",
        help="Only rebuild profiles whose cache rows changed recently.",
    )
    parser.add_argument(
        "--since",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp for --incremental (default: the configured lookback).",
    )
    args = parser.parse_args()

    configure_logging()
    with SessionLocal() as db:
        aggregator = build_profile_aggregator(db)
        if args.status:
            run = aggregator.get_status()
            payload = None if run is None else {
                "status": run.status,
                "run_started_at": run.run_started_at,
                "run_completed_at": run.run_completed_at,
                "profiles_created": run.profiles_created,
                "ueis_mapped": run.ueis_mapped,
                "profiles_deactivated": run.profiles_deactivated,
                "error_count": run.error_count,
            }
            print(json.dumps(payload, indent=2, default=str))
            return 0

        try:
            if args.incremental or args.since is not None:
                summary = aggregator.update_recent_profiles(args.since)
            else:
                summary = aggregator.build_all_profiles()
        except ProfileAggregationError as exc:
            print(json.dumps({"status": "failed", "error": str(exc)}, indent=2))
            return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
