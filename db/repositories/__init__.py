"""
Repository layer exports.
"""

from db.repositories.analysis_run_repository import AnalysisRunRepository
from db.repositories.ownership import get_owned
from db.repositories.prediction_repository import PredictionRepository
from db.repositories.report_repository import ReportRepository

__all__ = [
    "AnalysisRunRepository",
    "PredictionRepository",
    "ReportRepository",
    "get_owned",
]
