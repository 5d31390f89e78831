"""
Read and delete access to stored analysis runs.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache

from sqlalchemy.orm import Session

from db.models.analysis_run import AnalysisRun
from db.repositories.analysis_run_repository import AnalysisRunRepository

logger = logging.getLogger(__name__)


class AnalysisService:
    def list_analyses(self, db: Session, *, owner_id: str, limit: int = 100) -> list[AnalysisRun]:
        return AnalysisRunRepository(db).list_for_owner(owner_id, limit=limit)

    def get_analysis(self, db: Session, *, owner_id: str, analysis_id: uuid.UUID) -> AnalysisRun:
        return AnalysisRunRepository(db).get_for_owner(analysis_id, owner_id)

    def delete_analysis(self, db: Session, *, owner_id: str, analysis_id: uuid.UUID) -> None:
        """Deletes the run together with the predictions it produced."""
        try:
            AnalysisRunRepository(db).delete_for_owner(analysis_id, owner_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Analysis deleted owner=%s analysis_id=%s", owner_id, analysis_id)


@lru_cache(maxsize=1)
def get_analysis_service() -> AnalysisService:
    return AnalysisService()
