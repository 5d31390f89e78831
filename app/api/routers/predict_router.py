"""
app/api/routers/predict_router.py

Upload, scoring and prediction query endpoints under /api/predict.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload, get_owner_id
from app.schemas.predictions import (
    BatchResultsResponse,
    BatchSummaryResponse,
    HealthResponse,
    MessageResponse,
    PredictionPageResponse,
    PredictionResponse,
    StatisticsResponse,
    UploadSummaryResponse,
)
from app.services.prediction_service import MAX_PAGE_SIZE, PredictionService, get_prediction_service
from app.services.upload_service import SampleUploadService, get_upload_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/predict", tags=["predict"])


@router.post("/upload", response_model=UploadSummaryResponse)
def upload_samples(
    owner_id: str = Depends(get_owner_id),
    csvfile: UploadFile = Depends(get_csv_upload),
    metals: str | None = Form(default=None, description="JSON list of metal names"),
    standards: str | None = Form(default=None, description="JSON object metal -> standard"),
    backgrounds: str | None = Form(default=None, description="JSON object metal -> background"),
    presence_limits: str | None = Form(default=None, alias="presenceLimits"),
    db: Session = Depends(get_db),
    service: SampleUploadService = Depends(get_upload_service),
) -> UploadSummaryResponse:
    try:
        summary = service.process_upload(
            db,
            owner_id=owner_id,
            stream=csvfile.file,
            file_name=csvfile.filename or "upload.csv",
            raw_parameters={
                "metals": metals,
                "standards": standards,
                "backgrounds": backgrounds,
                "presenceLimits": presence_limits,
            },
        )
    finally:
        csvfile.file.close()
    return UploadSummaryResponse.from_summary(summary)


@router.post("/single", response_model=PredictionResponse)
def predict_single(
    payload: dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> PredictionResponse:
    return PredictionResponse.from_result(service.score_single(db, owner_id=owner_id, payload=payload))


@router.get("/batch/{upload_id}", response_model=BatchResultsResponse)
def get_batch_results(
    upload_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> BatchResultsResponse:
    batch = service.get_batch_results(db, owner_id=owner_id, upload_id=upload_id)
    return BatchResultsResponse(
        upload_id=batch.upload_id,
        scoring_status=batch.scoring_status,
        results=[PredictionResponse.from_result(result) for result in batch.results],
        summary=BatchSummaryResponse.from_summary(batch.summary),
    )


@router.post("/batch/{upload_id}/rescore", response_model=UploadSummaryResponse)
def rescore_batch(
    upload_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: SampleUploadService = Depends(get_upload_service),
) -> UploadSummaryResponse:
    summary = service.rescore_upload(db, owner_id=owner_id, upload_id=upload_id)
    return UploadSummaryResponse.from_summary(summary).model_copy(update={"message": "Upload re-scored"})


@router.get("/all", response_model=PredictionPageResponse)
def list_predictions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> PredictionPageResponse:
    result = service.list_predictions(db, owner_id=owner_id, page=page, limit=limit)
    return PredictionPageResponse(
        predictions=[PredictionResponse.from_result(p) for p in result.predictions],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/location", response_model=list[PredictionResponse])
def predictions_by_location(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    radius: float = Query(gt=0, description="Radius in kilometres"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> list[PredictionResponse]:
    results = service.by_location(
        db,
        owner_id=owner_id,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius,
    )
    return [PredictionResponse.from_result(result) for result in results]


@router.get("/date-range", response_model=list[PredictionResponse])
def predictions_by_date_range(
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> list[PredictionResponse]:
    results = service.by_date_range(db, owner_id=owner_id, start_date=start_date, end_date=end_date)
    return [PredictionResponse.from_result(result) for result in results]


@router.get("/statistics", response_model=StatisticsResponse)
def prediction_statistics(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> StatisticsResponse:
    stats = service.statistics(db, owner_id=owner_id)
    percentages = stats.summary.category_percentages
    return StatisticsResponse(
        total_predictions=stats.summary.total,
        safe_percentage=percentages.get("safe", 0.0),
        caution_percentage=percentages.get("caution", 0.0),
        unsafe_percentage=percentages.get("unsafe", 0.0),
        average_hmpi=round(stats.summary.average_hmpi, 4),
        recent_predictions=[PredictionResponse.from_result(p) for p in stats.recent],
    )


@router.get("/latest", response_model=PredictionResponse | None)
def latest_prediction(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> PredictionResponse | None:
    result = service.latest(db, owner_id=owner_id)
    return PredictionResponse.from_result(result) if result is not None else None


@router.get("/health", response_model=HealthResponse, dependencies=[Depends(get_owner_id)])
def calculator_health(
    service: PredictionService = Depends(get_prediction_service),
) -> HealthResponse:
    health = service.health()
    if not health.healthy:
        logger.warning("Calculator unhealthy service=%s error=%s", health.service, health.error)
    return HealthResponse.from_status(health)


@router.delete("/{prediction_id}", response_model=MessageResponse)
def delete_prediction(
    prediction_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: PredictionService = Depends(get_prediction_service),
) -> MessageResponse:
    service.delete(db, owner_id=owner_id, prediction_id=prediction_id)
    return MessageResponse(message="Prediction deleted successfully")
