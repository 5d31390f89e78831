"""
Schemas for upload, prediction and calculator health endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.domain.samples import PredictionResult, UploadSummary
from app.schemas.base import CamelModel
from hmpi.aggregator import AggregateSummary
from hmpi.base import HealthStatus


class LocationResponse(CamelModel):
    latitude: float
    longitude: float


class PredictionResponse(CamelModel):
    id: UUID
    sample_id: str
    analysis_run_id: UUID | None = None
    hmpi_score: float
    risk_category: str
    metal_concentrations: dict[str, float] = Field(default_factory=dict)
    location: LocationResponse
    date: datetime
    created_at: datetime

    @classmethod
    def from_result(cls, result: PredictionResult) -> "PredictionResponse":
        return cls(
            id=result.id,
            sample_id=result.sample_id,
            analysis_run_id=result.analysis_run_id,
            hmpi_score=result.hmpi_score,
            risk_category=result.risk_category,
            metal_concentrations=result.metal_concentrations,
            location=LocationResponse(latitude=result.latitude, longitude=result.longitude),
            date=result.sample_date,
            created_at=result.created_at,
        )


class UploadSummaryResponse(CamelModel):
    message: str = "File processed successfully"
    upload_id: UUID
    samples_count: int
    valid_samples: int
    invalid_samples: int
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: UploadSummary) -> "UploadSummaryResponse":
        return cls(
            upload_id=summary.upload_id,
            samples_count=summary.samples_count,
            valid_samples=summary.valid_samples,
            invalid_samples=summary.invalid_samples,
            errors=summary.errors,
        )


class PredictionPageResponse(CamelModel):
    predictions: list[PredictionResponse] = Field(default_factory=list)
    total: int
    page: int
    total_pages: int


class HistogramBinResponse(CamelModel):
    range: str
    low: float
    high: float
    count: int


class MetalStatisticsResponse(CamelModel):
    average: float
    min: float
    max: float
    count: int


class BatchSummaryResponse(CamelModel):
    total_samples: int
    safe_count: int
    caution_count: int
    unsafe_count: int
    average_hmpi: float = Field(alias="averageHMPI")
    category_percentages: dict[str, float] = Field(default_factory=dict)
    histogram: list[HistogramBinResponse] = Field(default_factory=list)
    metal_statistics: dict[str, MetalStatisticsResponse] = Field(default_factory=dict)

    @classmethod
    def from_summary(cls, summary: AggregateSummary) -> "BatchSummaryResponse":
        counts = summary.category_counts
        return cls(
            total_samples=summary.total,
            safe_count=counts.get("safe", 0),
            caution_count=counts.get("caution", 0),
            unsafe_count=counts.get("unsafe", 0),
            average_hmpi=round(summary.average_hmpi, 4),
            category_percentages=summary.category_percentages,
            histogram=[
                HistogramBinResponse(range=b.label, low=b.low, high=b.high, count=b.count)
                for b in summary.histogram
            ],
            metal_statistics={
                metal: MetalStatisticsResponse(
                    average=stats.average,
                    min=stats.minimum,
                    max=stats.maximum,
                    count=stats.count,
                )
                for metal, stats in summary.metal_statistics.items()
            },
        )


class BatchResultsResponse(CamelModel):
    upload_id: UUID
    scoring_status: str
    results: list[PredictionResponse] = Field(default_factory=list)
    summary: BatchSummaryResponse


class StatisticsResponse(CamelModel):
    total_predictions: int
    safe_percentage: float
    caution_percentage: float
    unsafe_percentage: float
    average_hmpi: float = Field(alias="averageHMPI")
    recent_predictions: list[PredictionResponse] = Field(default_factory=list)


class HealthResponse(CamelModel):
    status: str
    service: str
    endpoint: str | None = None
    error: str | None = None
    checked_at: datetime

    @classmethod
    def from_status(cls, health: HealthStatus) -> "HealthResponse":
        return cls(
            status=health.status,
            service=health.service,
            endpoint=health.endpoint,
            error=health.error,
            checked_at=health.checked_at,
        )


class MessageResponse(CamelModel):
    message: str
    details: dict[str, Any] | None = None
