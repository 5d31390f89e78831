"""
Schemas for report generation, status, preview and export endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.base import CamelModel
from app.schemas.predictions import PredictionResponse
from db.models.report import Report
from reporting.lifecycle import progress_for


class DateRange(CamelModel):
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class ReportLocation(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: float = Field(gt=0, description="Radius in kilometres")


class ReportConfig(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    date_range: DateRange | None = None
    location: ReportLocation | None = None
    include_charts: bool = True
    include_map: bool = True
    include_raw_data: bool = True
    format: Literal["pdf", "excel"] = "pdf"
    prediction_ids: list[UUID] | None = None

    def snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReportAcceptedResponse(CamelModel):
    report_id: UUID
    status: str
    message: str = "Report generation started"


class ReportSummaryResponse(CamelModel):
    id: UUID
    title: str
    description: str | None = None
    format: str
    config: dict[str, Any] = Field(default_factory=dict)
    status: str
    status_message: str | None = None
    progress: int
    samples_count: int
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    download_url: str | None = None
    file_size: int | None = None

    @classmethod
    def from_model(cls, report: Report) -> "ReportSummaryResponse":
        return cls(
            id=report.id,
            title=report.title,
            description=report.description,
            format=report.format,
            config=report.config or {},
            status=report.status,
            status_message=report.status_message,
            progress=progress_for(report.status),
            samples_count=report.samples_count,
            created_at=report.created_at,
            started_at=report.started_at,
            completed_at=report.completed_at,
            download_url=report.download_url,
            file_size=report.file_size,
        )


class ReportPageResponse(CamelModel):
    reports: list[ReportSummaryResponse] = Field(default_factory=list)
    total: int
    page: int
    total_pages: int


class ReportStatusResponse(CamelModel):
    status: str
    progress: int
    message: str | None = None


class ReportDataResponse(CamelModel):
    summary: dict[str, Any]
    predictions: list[PredictionResponse] = Field(default_factory=list)
    charts: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


class CsvExportRequest(CamelModel):
    prediction_ids: list[UUID] = Field(min_length=1)


class ReportTemplateResponse(CamelModel):
    id: str
    name: str
    description: str
    config: dict[str, Any]
