"""
Repository for analysis run persistence and owner-scoped lookup.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from db.models.analysis_run import AnalysisRun, AnalysisScoringStatus
from db.models.prediction import Prediction
from db.repositories.ownership import get_owned


class AnalysisRunRepository:
    """
    Data access for AnalysisRun records. No commits are issued; the caller
    owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(
        self,
        *,
        owner_id: str,
        file_name: str,
        input_parameters: dict[str, Any],
        results: dict[str, Any],
        samples: list[dict[str, Any]] | None = None,
        scoring_status: str = AnalysisScoringStatus.SCORED,
        retry_of: uuid.UUID | None = None,
    ) -> AnalysisRun:
        run = AnalysisRun(
            owner_id=owner_id,
            file_name=file_name,
            input_parameters=input_parameters,
            results=results,
            samples=samples,
            scoring_status=scoring_status,
            retry_of=retry_of,
        )
        self._session.add(run)
        self._session.flush()
        return run

    def get_for_owner(self, run_id: uuid.UUID, owner_id: str) -> AnalysisRun:
        return get_owned(self._session, AnalysisRun, run_id, owner_id, label="Analysis")

    def list_for_owner(self, owner_id: str, *, limit: int = 100) -> list[AnalysisRun]:
        stmt: Select[tuple[AnalysisRun]] = (
            select(AnalysisRun)
            .where(AnalysisRun.owner_id == owner_id)
            .order_by(AnalysisRun.created_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def delete_for_owner(self, run_id: uuid.UUID, owner_id: str) -> None:
        run = self.get_for_owner(run_id, owner_id)
        self._session.execute(delete(Prediction).where(Prediction.analysis_run_id == run.id))
        self._session.delete(run)
        self._session.flush()
