"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.contractor_cache import ContractorCache
from db.models.contractor_metrics_monthly import ContractorMetricsMonthly
from db.models.contractor_profile import (
    ContractorAgencyRelationship,
    ContractorProfile,
    ContractorProfileStats,
    ContractorUeiMapping,
)
from db.models.contractor_search_index import ContractorSearchIndex
from db.models.contractor_universe import ContractorUniverse
from db.models.etl_run_log import EtlRunLog
from db.models.iceberg_opportunity import ContractorIcebergOpportunity
from db.models.network_metric import ContractorNetworkMetric
from db.models.peer_comparison import PeerComparisonMonthly
from db.models.portfolio_breakdown import PortfolioBreakdownMonthly
from db.models.rate_limit_window import RateLimitWindow
from db.models.subcontractor_metrics import SubcontractorMetricsMonthly

__all__ = [
    "ContractorUniverse",
    "ContractorMetricsMonthly",
    "PeerComparisonMonthly",
    "PortfolioBreakdownMonthly",
    "SubcontractorMetricsMonthly",
    "ContractorNetworkMetric",
    "ContractorIcebergOpportunity",
    "ContractorSearchIndex",
    "ContractorCache",
    "ContractorProfile",
    "ContractorUeiMapping",
    "ContractorAgencyRelationship",
    "ContractorProfileStats",
    "EtlRunLog",
    "RateLimitWindow",
]
