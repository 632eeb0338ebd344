"""
app/services package marker.
"""

from app.services.pipeline_service import (
    FastAPIBackgroundTaskExecutor,
    PipelineBusyError,
    PipelineService,
    get_pipeline_service,
)
from app.services.profile_analysis_service import (
    ProfileAnalysisService,
    ProfileNotFoundError,
    get_profile_analysis_service,
)

__all__ = [
    "FastAPIBackgroundTaskExecutor",
    "PipelineBusyError",
    "PipelineService",
    "get_pipeline_service",
    "ProfileAnalysisService",
    "ProfileNotFoundError",
    "get_profile_analysis_service",
]
