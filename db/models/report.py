"""
db/models/report.py

Report record with its lifecycle status and, once completed, the artifact.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, OwnedMixin, TimestampMixin


class ReportStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Report(Base, OwnedMixin, TimestampMixin):
    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    format: Mapped[str] = mapped_column(String(16), nullable=False, comment="pdf, excel")
    config: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Snapshot of the submitted report configuration",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ReportStatus.PENDING,
    )
    status_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    samples_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    download_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    artifact: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True, deferred=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_reports_owner_created_at", "owner_id", "created_at"),
        Index("ix_reports_status", "status"),
    )
