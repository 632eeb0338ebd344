"""
app/schemas package marker.
"""

from app.schemas.etl import (
    ETLAcceptedResponse,
    ETLRunListResponse,
    ETLRunResponse,
    ETLTriggerRequest,
)
from app.schemas.profiles import (
    ConcentrationRiskResponse,
    PeerComparisonResponse,
    ProfileAggregationStatusResponse,
    ProfileRebuildAcceptedResponse,
    RiskAnalysisResponse,
)

__all__ = [
    "ETLAcceptedResponse",
    "ETLRunListResponse",
    "ETLRunResponse",
    "ETLTriggerRequest",
    "ConcentrationRiskResponse",
    "PeerComparisonResponse",
    "ProfileAggregationStatusResponse",
    "ProfileRebuildAcceptedResponse",
    "RiskAnalysisResponse",
]
