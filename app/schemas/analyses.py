"""
Schemas for stored analysis runs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from db.models.analysis_run import AnalysisRun


class AnalysisResponse(CamelModel):
    id: UUID
    file_name: str
    scoring_status: str
    retry_of: UUID | None = None
    input_parameters: dict[str, Any] = Field(default_factory=dict)
    results: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_model(cls, run: AnalysisRun) -> "AnalysisResponse":
        return cls(
            id=run.id,
            file_name=run.file_name,
            scoring_status=run.scoring_status,
            retry_of=run.retry_of,
            input_parameters=run.input_parameters or {},
            results=run.results or {},
            created_at=run.created_at,
        )


class AnalysisListResponse(CamelModel):
    analyses: list[AnalysisResponse] = Field(default_factory=list)
