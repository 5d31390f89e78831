"""
db/models/analysis_run.py

Persisted record of one CSV upload and its calculator results.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, JSONType, OwnedMixin


class AnalysisScoringStatus:
    SCORED = "scored"
    UNSCORED = "unscored"
    FAILED = "failed"


class AnalysisRun(Base, OwnedMixin, CreatedAtMixin):
    """
    Immutable once created. A run whose scoring failed keeps its validated
    samples so it can be re-scored into a new run (``retry_of``).
    """

    __tablename__ = "analysis_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    input_parameters: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="metals, standards, backgrounds, presenceLimits",
    )
    results: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Calculator output or validity-count summary",
    )
    samples: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Validated samples, kept for re-scoring",
    )
    scoring_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=AnalysisScoringStatus.SCORED,
    )
    retry_of: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("analysis_runs.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_analysis_runs_owner_created_at", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AnalysisRun id={self.id} owner={self.owner_id!r} file={self.file_name!r}>"
