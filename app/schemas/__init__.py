"""
app/schemas package marker.
"""

from app.schemas.analyses import AnalysisListResponse, AnalysisResponse
from app.schemas.predictions import (
    BatchResultsResponse,
    BatchSummaryResponse,
    HealthResponse,
    MessageResponse,
    PredictionPageResponse,
    PredictionResponse,
    StatisticsResponse,
    UploadSummaryResponse,
)
from app.schemas.reports import (
    CsvExportRequest,
    ReportAcceptedResponse,
    ReportConfig,
    ReportDataResponse,
    ReportPageResponse,
    ReportStatusResponse,
    ReportSummaryResponse,
    ReportTemplateResponse,
)

__all__ = [
    "AnalysisListResponse",
    "AnalysisResponse",
    "BatchResultsResponse",
    "BatchSummaryResponse",
    "CsvExportRequest",
    "HealthResponse",
    "MessageResponse",
    "PredictionPageResponse",
    "PredictionResponse",
    "ReportAcceptedResponse",
    "ReportConfig",
    "ReportDataResponse",
    "ReportPageResponse",
    "ReportStatusResponse",
    "ReportSummaryResponse",
    "ReportTemplateResponse",
    "StatisticsResponse",
    "UploadSummaryResponse",
]
