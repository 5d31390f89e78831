"""
app/domain package marker.
"""

from app.domain.samples import (
    InvalidSample,
    PredictionResult,
    RiskCategory,
    Sample,
    UploadSummary,
    ValidationOutcome,
)

__all__ = [
    "InvalidSample",
    "PredictionResult",
    "RiskCategory",
    "Sample",
    "UploadSummary",
    "ValidationOutcome",
]
