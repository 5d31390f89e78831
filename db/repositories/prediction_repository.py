"""
Repository for per-sample prediction persistence and owner-scoped queries.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.prediction import Prediction
from db.repositories.ownership import get_owned


class PredictionRepository:
    """
    Data access for Prediction records. Scores are written once and read
    back unchanged. No commits are issued; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def add_all(self, predictions: Sequence[Prediction]) -> list[Prediction]:
        if not predictions:
            return []
        self._session.add_all(list(predictions))
        self._session.flush()
        return list(predictions)

    def get_for_owner(self, prediction_id: uuid.UUID, owner_id: str) -> Prediction:
        return get_owned(self._session, Prediction, prediction_id, owner_id, label="Prediction")

    def get_many_for_owner(self, prediction_ids: Sequence[uuid.UUID], owner_id: str) -> list[Prediction]:
        if not prediction_ids:
            return []
        stmt = (
            select(Prediction)
            .where(Prediction.owner_id == owner_id, Prediction.id.in_(list(prediction_ids)))
            .order_by(Prediction.created_at.asc(), Prediction.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def count_for_owner(self, owner_id: str) -> int:
        stmt = select(func.count()).select_from(Prediction).where(Prediction.owner_id == owner_id)
        return int(self._session.scalar(stmt) or 0)

    def page_for_owner(self, owner_id: str, *, offset: int, limit: int) -> list[Prediction]:
        stmt: Select[tuple[Prediction]] = (
            select(Prediction)
            .where(Prediction.owner_id == owner_id)
            .order_by(Prediction.created_at.desc(), Prediction.id.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def list_for_run(self, run_id: uuid.UUID, owner_id: str) -> list[Prediction]:
        stmt = (
            select(Prediction)
            .where(Prediction.owner_id == owner_id, Prediction.analysis_run_id == run_id)
            .order_by(Prediction.created_at.asc(), Prediction.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def list_for_owner(
        self,
        owner_id: str,
        *,
        sample_date_from: datetime | None = None,
        sample_date_to: datetime | None = None,
        limit: int | None = None,
    ) -> list[Prediction]:
        stmt: Select[tuple[Prediction]] = select(Prediction).where(Prediction.owner_id == owner_id)
        if sample_date_from is not None:
            stmt = stmt.where(Prediction.sample_date >= sample_date_from)
        if sample_date_to is not None:
            stmt = stmt.where(Prediction.sample_date <= sample_date_to)
        stmt = stmt.order_by(Prediction.created_at.desc(), Prediction.id.desc())
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def latest_for_owner(self, owner_id: str) -> Prediction | None:
        rows = self.page_for_owner(owner_id, offset=0, limit=1)
        return rows[0] if rows else None

    def delete_for_owner(self, prediction_id: uuid.UUID, owner_id: str) -> None:
        prediction = self.get_for_owner(prediction_id, owner_id)
        self._session.delete(prediction)
        self._session.flush()
