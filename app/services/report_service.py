"""
Report lifecycle service: request, background assembly, status and download.

Every generate call inserts a new pending report and hands assembly to a
task executor. The assembly job claims the report with a compare-and-set
``pending -> processing`` update, renders the artifact, and finishes with
``processing -> completed`` (or ``failed``). A job that loses either
compare-and-set stops without writing.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_report_settings
from app.errors import HMPIServiceError, InvalidReportTransition, NotFound
from db.models.report import Report, ReportStatus
from db.repositories.prediction_repository import PredictionRepository
from db.repositories.report_repository import ReportRepository
from reporting.artifacts import extension_for, render_artifact, render_predictions_csv
from reporting.dataset import ReportCriteria, build_dataset, require_owned_predictions
from reporting.lifecycle import is_terminal, progress_for

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

REPORT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "id": "standard",
        "name": "Standard Report",
        "description": "Water quality report with charts, sample locations and raw data",
        "config": {"includeCharts": True, "includeMap": True, "includeRawData": True, "format": "pdf"},
    },
    {
        "id": "summary",
        "name": "Summary Report",
        "description": "Risk summary and HMPI distribution without per-sample rows",
        "config": {"includeCharts": True, "includeMap": False, "includeRawData": False, "format": "pdf"},
    },
    {
        "id": "data-export",
        "name": "Data Export Workbook",
        "description": "Excel workbook with every sample, metal concentrations and statistics",
        "config": {"includeCharts": True, "includeMap": True, "includeRawData": True, "format": "excel"},
    },
)

_INTERNAL_FAILURE_MESSAGE = "Report generation failed due to an internal error."


class ReportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


@dataclass(frozen=True)
class ReportStatusView:
    status: str
    progress: int
    message: str | None


@dataclass(frozen=True)
class ReportPage:
    reports: list[Report]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


@dataclass(frozen=True)
class ReportData:
    summary: dict[str, Any]
    charts: dict[str, list[dict[str, Any]]]
    predictions: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ReportDownload:
    content: bytes
    content_type: str
    filename: str


class ReportService:
    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        preview_limit: int | None = None,
        download_base_path: str | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        settings = get_report_settings()
        self._preview_limit = settings.preview_limit if preview_limit is None else preview_limit
        self._download_base_path = (download_base_path or settings.download_base_path).rstrip("/")

    def generate_report(
        self,
        db: Session,
        *,
        owner_id: str,
        config: Mapping[str, Any],
        executor: ReportTaskExecutor,
    ) -> Report:
        report_format = str(config.get("format") or "pdf")
        extension_for(report_format)
        ReportCriteria.from_config(config)

        repository = ReportRepository(db)
        try:
            report = repository.create_report(
                owner_id=owner_id,
                title=str(config.get("title") or "Water Quality Report"),
                description=config.get("description"),
                report_format=report_format,
                config=dict(config),
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Report requested report_id=%s owner=%s format=%s", report.id, owner_id, report_format)

        try:
            executor.submit(self.run_report_job, report.id)
        except Exception:
            logger.exception("Failed to schedule report job report_id=%s", report.id)
            repository.delete_for_owner(report.id, owner_id)
            db.commit()
            raise

        return report

    def run_report_job(self, report_id: uuid.UUID) -> None:
        with self._session_factory() as db:
            repository = ReportRepository(db)
            claimed = repository.transition(
                report_id,
                expected=ReportStatus.PENDING,
                target=ReportStatus.PROCESSING,
            )
            db.commit()
            if not claimed:
                current = repository.get_report(report_id)
                if current is None:
                    logger.warning("Report job skipped, report deleted report_id=%s", report_id)
                elif is_terminal(current.status):
                    logger.info("Report job skipped, report already %s report_id=%s", current.status, report_id)
                else:
                    logger.warning(
                        "Report job skipped, report claimed elsewhere status=%s report_id=%s",
                        current.status,
                        report_id,
                    )
                return
            logger.info("Report processing report_id=%s", report_id)

            try:
                report = repository.get_report(report_id)
                if report is None:
                    logger.warning("Report deleted during processing report_id=%s", report_id)
                    return
                dataset = build_dataset(
                    PredictionRepository(db),
                    report.owner_id,
                    title=report.title,
                    description=report.description,
                    config=report.config,
                )
                artifact = render_artifact(report.format, dataset)
                finished = repository.transition(
                    report_id,
                    expected=ReportStatus.PROCESSING,
                    target=ReportStatus.COMPLETED,
                    artifact=artifact.content,
                    content_type=artifact.content_type,
                    file_size=artifact.size,
                    samples_count=len(dataset.predictions),
                    download_url=f"{self._download_base_path}/{report_id}/download",
                )
                db.commit()
            except Exception as exc:
                self._mark_report_failed(db=db, report_id=report_id, exc=exc)
                return

            if finished:
                logger.info(
                    "Report completed report_id=%s samples=%d bytes=%d",
                    report_id,
                    len(dataset.predictions),
                    artifact.size,
                )
            else:
                logger.warning("Report completion lost to a concurrent update report_id=%s", report_id)

    def get_status(self, db: Session, *, owner_id: str, report_id: uuid.UUID) -> ReportStatusView:
        report = ReportRepository(db).get_for_owner(report_id, owner_id)
        return ReportStatusView(
            status=report.status,
            progress=progress_for(report.status),
            message=report.status_message,
        )

    def list_reports(self, db: Session, *, owner_id: str, page: int = 1, limit: int = 20) -> ReportPage:
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        repository = ReportRepository(db)
        return ReportPage(
            reports=repository.list_for_owner(owner_id, offset=(page - 1) * limit, limit=limit),
            total=repository.count_for_owner(owner_id),
            page=page,
            limit=limit,
        )

    def get_report(self, db: Session, *, owner_id: str, report_id: uuid.UUID) -> Report:
        return ReportRepository(db).get_for_owner(report_id, owner_id)

    def get_report_data(self, db: Session, *, owner_id: str, report_id: uuid.UUID) -> ReportData:
        report = ReportRepository(db).get_for_owner(report_id, owner_id)
        dataset = build_dataset(
            PredictionRepository(db),
            owner_id,
            title=report.title,
            description=report.description,
            config=report.config,
        )
        return ReportData(
            summary=dataset.summary_payload(),
            charts=dataset.charts_payload(),
            predictions=dataset.predictions[: self._preview_limit],
        )

    def download_report(self, db: Session, *, owner_id: str, report_id: uuid.UUID) -> ReportDownload:
        report = ReportRepository(db).get_for_owner(report_id, owner_id)
        if report.status != ReportStatus.COMPLETED:
            raise InvalidReportTransition(
                "Report is not ready for download.",
                context={"id": str(report_id), "status": report.status},
            )
        if report.artifact is None:
            raise NotFound("Report file not found.", context={"id": str(report_id)})
        return ReportDownload(
            content=report.artifact,
            content_type=report.content_type or "application/octet-stream",
            filename=f"report-{report.id}.{extension_for(report.format)}",
        )

    def delete_report(self, db: Session, *, owner_id: str, report_id: uuid.UUID) -> None:
        try:
            ReportRepository(db).delete_for_owner(report_id, owner_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Report deleted report_id=%s owner=%s", report_id, owner_id)

    def export_csv(self, db: Session, *, owner_id: str, prediction_ids: Sequence[uuid.UUID]) -> bytes:
        predictions = require_owned_predictions(PredictionRepository(db), owner_id, prediction_ids)
        logger.info("CSV export owner=%s rows=%d", owner_id, len(predictions))
        return render_predictions_csv(predictions)

    def list_templates(self) -> list[dict[str, Any]]:
        return [
            {**template, "config": dict(template["config"])} for template in REPORT_TEMPLATES
        ]

    def _mark_report_failed(self, *, db: Session, report_id: uuid.UUID, exc: Exception) -> None:
        if isinstance(exc, HMPIServiceError):
            message = exc.message
            logger.warning("Report failed report_id=%s kind=%s message=%s", report_id, exc.kind, exc.message)
        else:
            message = _INTERNAL_FAILURE_MESSAGE
            logger.exception("Report failed report_id=%s", report_id)
        try:
            db.rollback()
            failed = ReportRepository(db).transition(
                report_id,
                expected=ReportStatus.PROCESSING,
                target=ReportStatus.FAILED,
                status_message=message[:2000],
            )
            db.commit()
            if not failed:
                logger.warning("Report failure lost to a concurrent update report_id=%s", report_id)
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed report state report_id=%s", report_id)


@lru_cache(maxsize=1)
def get_report_service() -> ReportService:
    return ReportService()
