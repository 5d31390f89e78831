"""
app/api/routers/report_router.py

Report generation and retrieval under /api/reports.

POST /generate answers 202 with the new report id; assembly continues in a
background task. Poll /{id}/status until it reports completed or failed,
then fetch /{id}/download.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.dependencies import get_owner_id
from app.schemas.predictions import MessageResponse, PredictionResponse
from app.schemas.reports import (
    CsvExportRequest,
    ReportAcceptedResponse,
    ReportConfig,
    ReportDataResponse,
    ReportPageResponse,
    ReportStatusResponse,
    ReportSummaryResponse,
    ReportTemplateResponse,
)
from app.services.report_service import (
    MAX_PAGE_SIZE,
    FastAPIBackgroundTaskExecutor,
    ReportService,
    get_report_service,
)
from db.session import get_db

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post(
    "/generate",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ReportAcceptedResponse,
)
def generate_report(
    config: ReportConfig,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> ReportAcceptedResponse:
    report = service.generate_report(
        db,
        owner_id=owner_id,
        config=config.snapshot(),
        executor=FastAPIBackgroundTaskExecutor(background_tasks),
    )
    return ReportAcceptedResponse(report_id=report.id, status=report.status)


@router.get("", response_model=ReportPageResponse)
def list_reports(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> ReportPageResponse:
    result = service.list_reports(db, owner_id=owner_id, page=page, limit=limit)
    return ReportPageResponse(
        reports=[ReportSummaryResponse.from_model(report) for report in result.reports],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get(
    "/templates",
    response_model=list[ReportTemplateResponse],
    dependencies=[Depends(get_owner_id)],
)
def list_templates(
    service: ReportService = Depends(get_report_service),
) -> list[ReportTemplateResponse]:
    return [ReportTemplateResponse(**template) for template in service.list_templates()]


@router.post("/export/csv")
def export_csv(
    request: CsvExportRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> Response:
    content = service.export_csv(db, owner_id=owner_id, prediction_ids=request.prediction_ids)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="export.csv"'},
    )


@router.get("/{report_id}", response_model=ReportSummaryResponse)
def get_report(
    report_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> ReportSummaryResponse:
    return ReportSummaryResponse.from_model(service.get_report(db, owner_id=owner_id, report_id=report_id))


@router.get("/{report_id}/data", response_model=ReportDataResponse)
def get_report_data(
    report_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> ReportDataResponse:
    data = service.get_report_data(db, owner_id=owner_id, report_id=report_id)
    return ReportDataResponse(
        summary=data.summary,
        charts=data.charts,
        predictions=[PredictionResponse.from_result(p) for p in data.predictions],
    )


@router.get("/{report_id}/status", response_model=ReportStatusResponse)
def get_report_status(
    report_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> ReportStatusResponse:
    view = service.get_status(db, owner_id=owner_id, report_id=report_id)
    return ReportStatusResponse(status=view.status, progress=view.progress, message=view.message)


@router.get("/{report_id}/download")
def download_report(
    report_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> Response:
    download = service.download_report(db, owner_id=owner_id, report_id=report_id)
    return Response(
        content=download.content,
        media_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


@router.delete("/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> MessageResponse:
    service.delete_report(db, owner_id=owner_id, report_id=report_id)
    return MessageResponse(message="Report deleted successfully")
