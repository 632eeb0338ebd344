"""
app/api/routers package marker.
"""

from app.api.routers.etl_router import router as etl_router
from app.api.routers.profile_router import router as profile_router

__all__ = [
    "etl_router",
    "profile_router",
]
