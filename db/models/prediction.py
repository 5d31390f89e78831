"""
db/models/prediction.py

One persisted per-sample score.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.samples import PredictionResult
from db.base import Base, CreatedAtMixin, JSONType, OwnedMixin


class Prediction(Base, OwnedMixin, CreatedAtMixin):
    __tablename__ = "predictions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    analysis_run_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("analysis_runs.id", ondelete="CASCADE"),
        nullable=True,
        comment="Null for single-sample predictions",
    )
    sample_id: Mapped[str] = mapped_column(String(128), nullable=False)
    hmpi_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_category: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="safe, caution, unsafe",
    )
    metal_concentrations: Mapped[dict[str, float]] = mapped_column(JSONType, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    sample_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_predictions_owner_created_at", "owner_id", "created_at"),
        Index("ix_predictions_owner_sample_date", "owner_id", "sample_date"),
        Index("ix_predictions_analysis_run_id", "analysis_run_id"),
    )

    def to_result(self) -> PredictionResult:
        return PredictionResult(
            id=self.id,
            sample_id=self.sample_id,
            hmpi_score=self.hmpi_score,
            risk_category=self.risk_category,
            metal_concentrations=dict(self.metal_concentrations or {}),
            latitude=self.latitude,
            longitude=self.longitude,
            sample_date=self.sample_date,
            created_at=self.created_at,
            analysis_run_id=self.analysis_run_id,
        )
