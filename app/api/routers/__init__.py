"""
app/api/routers package marker.
"""

from app.api.routers.analysis_router import router as analysis_router
from app.api.routers.predict_router import router as predict_router
from app.api.routers.report_router import router as report_router

__all__ = [
    "analysis_router",
    "predict_router",
    "report_router",
]
