"""
Prediction queries and single-sample scoring.

Scores are computed once, persisted, and always read back from storage; no
read path recomputes or perturbs a stored score.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_upload_settings
from app.domain.geo import ensure_utc, haversine_km
from app.domain.samples import PredictionResult
from app.errors import ConfigurationError, SampleValidationError
from app.services.upload_service import build_predictions
from app.validators.sample_validator import SampleValidator
from db.repositories.analysis_run_repository import AnalysisRunRepository
from db.repositories.prediction_repository import PredictionRepository
from hmpi.aggregator import AggregateSummary, summarize
from hmpi.base import HealthStatus, IndexParameters, IndexStrategy, metal_names
from hmpi.factory import get_index_strategy

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500
RECENT_PREDICTIONS = 5


@dataclass(frozen=True)
class PredictionPage:
    predictions: list[PredictionResult]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


@dataclass(frozen=True)
class BatchResults:
    upload_id: uuid.UUID
    scoring_status: str
    results: list[PredictionResult]
    summary: AggregateSummary


@dataclass(frozen=True)
class PredictionStatistics:
    summary: AggregateSummary
    recent: list[PredictionResult] = field(default_factory=list)


class PredictionService:
    def __init__(
        self,
        *,
        strategy: IndexStrategy | None = None,
        validator: SampleValidator | None = None,
        default_metals: tuple[str, ...] | None = None,
    ) -> None:
        settings = get_upload_settings()
        self._strategy = strategy or get_index_strategy()
        self._validator = validator or SampleValidator(log_validation_errors=settings.log_validation_errors)
        self._default_metals = default_metals or settings.default_metals

    def score_single(self, db: Session, *, owner_id: str, payload: Mapping[str, Any]) -> PredictionResult:
        """
        Validate, score and persist one sample submitted as a JSON object.

        Metals default to the configured CSV metal set; ``standards``,
        ``backgrounds`` and ``presenceLimits`` may be supplied alongside the
        sample fields.
        """

        declared = payload.get("metals")
        parameters = IndexParameters(
            metals=self._default_metals if declared is None else metal_names(declared),
            standards=self._mapping(payload, "standards"),
            backgrounds=self._mapping(payload, "backgrounds"),
            presence_limits=self._mapping(payload, "presenceLimits"),
        )
        sample, reasons = self._validator.validate_record(payload, parameters, row_number=1)
        if sample is None:
            raise SampleValidationError(reasons)

        result = self._strategy.compute([sample], parameters)
        predictions = build_predictions(
            owner_id=owner_id,
            analysis_run_id=None,
            samples=[sample],
            result=result,
            metals=parameters.metals,
        )
        try:
            PredictionRepository(db).add_all(predictions)
            db.commit()
        except Exception:
            db.rollback()
            raise

        prediction = predictions[0]
        logger.info(
            "Single sample scored owner=%s prediction_id=%s score=%.4f category=%s",
            owner_id,
            prediction.id,
            prediction.hmpi_score,
            prediction.risk_category,
        )
        return prediction.to_result()

    def list_predictions(self, db: Session, *, owner_id: str, page: int = 1, limit: int = 50) -> PredictionPage:
        if page < 1:
            raise ConfigurationError("page must be >= 1.", context={"page": page})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ConfigurationError(f"limit must be between 1 and {MAX_PAGE_SIZE}.", context={"limit": limit})

        repository = PredictionRepository(db)
        total = repository.count_for_owner(owner_id)
        rows = repository.page_for_owner(owner_id, offset=(page - 1) * limit, limit=limit)
        return PredictionPage(
            predictions=[row.to_result() for row in rows],
            total=total,
            page=page,
            limit=limit,
        )

    def get_batch_results(self, db: Session, *, owner_id: str, upload_id: uuid.UUID) -> BatchResults:
        run = AnalysisRunRepository(db).get_for_owner(upload_id, owner_id)
        results = [row.to_result() for row in PredictionRepository(db).list_for_run(run.id, owner_id)]
        return BatchResults(
            upload_id=run.id,
            scoring_status=run.scoring_status,
            results=results,
            summary=summarize(results),
        )

    def by_date_range(
        self,
        db: Session,
        *,
        owner_id: str,
        start_date: datetime,
        end_date: datetime,
    ) -> list[PredictionResult]:
        start, end = ensure_utc(start_date), ensure_utc(end_date)
        if start > end:
            raise ConfigurationError("startDate must not be after endDate.")
        rows = PredictionRepository(db).list_for_owner(owner_id, sample_date_from=start, sample_date_to=end)
        return [row.to_result() for row in rows]

    def by_location(
        self,
        db: Session,
        *,
        owner_id: str,
        latitude: float,
        longitude: float,
        radius_km: float,
    ) -> list[PredictionResult]:
        if radius_km <= 0:
            raise ConfigurationError("radius must be positive.", context={"radius": radius_km})
        rows = PredictionRepository(db).list_for_owner(owner_id)
        return [
            row.to_result()
            for row in rows
            if haversine_km(latitude, longitude, row.latitude, row.longitude) <= radius_km
        ]

    def statistics(self, db: Session, *, owner_id: str) -> PredictionStatistics:
        repository = PredictionRepository(db)
        results = [row.to_result() for row in repository.list_for_owner(owner_id)]
        return PredictionStatistics(summary=summarize(results), recent=results[:RECENT_PREDICTIONS])

    def latest(self, db: Session, *, owner_id: str) -> PredictionResult | None:
        row = PredictionRepository(db).latest_for_owner(owner_id)
        return row.to_result() if row is not None else None

    def delete(self, db: Session, *, owner_id: str, prediction_id: uuid.UUID) -> None:
        try:
            PredictionRepository(db).delete_for_owner(prediction_id, owner_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Prediction deleted owner=%s prediction_id=%s", owner_id, prediction_id)

    def health(self) -> HealthStatus:
        return self._strategy.health_check()

    @staticmethod
    def _mapping(payload: Mapping[str, Any], key: str) -> dict[str, float]:
        value = payload.get(key) or {}
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Parameter '{key}' must be an object of metal -> number.")
        try:
            return {str(name): float(number) for name, number in value.items()}
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Parameter '{key}' has a non-numeric value.") from exc


@lru_cache(maxsize=1)
def get_prediction_service() -> PredictionService:
    return PredictionService()
