"""
app/services package marker.
"""

from app.services.analysis_service import AnalysisService, get_analysis_service
from app.services.prediction_service import PredictionService, get_prediction_service
from app.services.report_service import (
    FastAPIBackgroundTaskExecutor,
    ReportService,
    ReportTaskExecutor,
    get_report_service,
)
from app.services.upload_service import SampleUploadService, get_upload_service

__all__ = [
    "AnalysisService",
    "get_analysis_service",
    "PredictionService",
    "get_prediction_service",
    "FastAPIBackgroundTaskExecutor",
    "ReportService",
    "ReportTaskExecutor",
    "get_report_service",
    "SampleUploadService",
    "get_upload_service",
]
