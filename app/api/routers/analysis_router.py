"""
app/api/routers/analysis_router.py

Stored analysis runs under /api/data.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dependencies import get_owner_id
from app.schemas.analyses import AnalysisListResponse, AnalysisResponse
from app.schemas.predictions import MessageResponse
from app.services.analysis_service import AnalysisService, get_analysis_service
from db.session import get_db

router = APIRouter(prefix="/api/data", tags=["data"])


@router.get("", response_model=AnalysisListResponse)
def list_analyses(
    limit: int = Query(default=100, ge=1, le=500),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisListResponse:
    runs = service.list_analyses(db, owner_id=owner_id, limit=limit)
    return AnalysisListResponse(analyses=[AnalysisResponse.from_model(run) for run in runs])


@router.get("/{analysis_id}", response_model=AnalysisResponse)
def get_analysis(
    analysis_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    return AnalysisResponse.from_model(service.get_analysis(db, owner_id=owner_id, analysis_id=analysis_id))


@router.delete("/{analysis_id}", response_model=MessageResponse)
def delete_analysis(
    analysis_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    service: AnalysisService = Depends(get_analysis_service),
) -> MessageResponse:
    service.delete_analysis(db, owner_id=owner_id, analysis_id=analysis_id)
    return MessageResponse(message="Analysis deleted successfully")
