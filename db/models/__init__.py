"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.analysis_run import AnalysisRun, AnalysisScoringStatus
from db.models.prediction import Prediction
from db.models.report import Report, ReportStatus

__all__ = [
    "AnalysisRun",
    "AnalysisScoringStatus",
    "Prediction",
    "Report",
    "ReportStatus",
]
