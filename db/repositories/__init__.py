"""
Repository layer exports.
"""

from db.repositories.contractor_metrics_repository import (
    ContractorMetricsRepository,
    UpsertCounts,
    build_upsert_statement,
)
from db.repositories.etl_run_repository import EtlRunRepository
from db.repositories.profile_repository import ProfileRepository

__all__ = [
    "ContractorMetricsRepository",
    "UpsertCounts",
    "build_upsert_statement",
    "EtlRunRepository",
    "ProfileRepository",
]
