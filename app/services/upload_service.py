"""
Sample upload service: parse -> validate -> score -> persist.

One upload produces one AnalysisRun. When scoring succeeds the run and one
Prediction per valid sample are committed together. When the calculator
fails the run is still committed with its validity summary and validated
samples so it can be re-scored later, and the calculator error propagates.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any, BinaryIO

from sqlalchemy.orm import Session

from app.config import get_upload_settings
from app.domain.samples import Sample, UploadSummary, ValidationOutcome
from app.errors import ConfigurationError, IndexCalculationError
from app.parsers.row_parser import iter_rows
from app.validators.sample_validator import SampleValidator
from db.models.analysis_run import AnalysisRun, AnalysisScoringStatus
from db.models.prediction import Prediction
from db.repositories.analysis_run_repository import AnalysisRunRepository
from db.repositories.prediction_repository import PredictionRepository
from hmpi.base import IndexParameters, IndexResult, IndexStrategy
from hmpi.factory import get_index_strategy
from hmpi.scoring import classify_risk, resolve_sample_score

logger = logging.getLogger(__name__)

FILE_NAME_MAX_LENGTH = 255


def build_predictions(
    *,
    owner_id: str,
    analysis_run_id: uuid.UUID | None,
    samples: Sequence[Sample],
    result: IndexResult,
    metals: Sequence[str],
) -> list[Prediction]:
    predictions: list[Prediction] = []
    for position, sample in enumerate(samples):
        score = resolve_sample_score(result.processed_data, position, sample, metals)
        predictions.append(
            Prediction(
                owner_id=owner_id,
                analysis_run_id=analysis_run_id,
                sample_id=sample.sample_id,
                hmpi_score=score,
                risk_category=classify_risk(score),
                metal_concentrations=dict(sample.concentrations),
                latitude=sample.latitude,
                longitude=sample.longitude,
                sample_date=sample.sample_date,
            )
        )
    return predictions


def _stored_samples(samples: Sequence[Sample]) -> list[dict[str, Any]]:
    return [{**sample.to_payload(), "rowNumber": sample.row_number} for sample in samples]


def stored_file_name(file_name: str) -> str:
    """
    Shorten an upload name to the stored column width, keeping its extension.
    """

    name = file_name.strip() or "upload.csv"
    if len(name) <= FILE_NAME_MAX_LENGTH:
        return name
    stem, extension = os.path.splitext(name)
    if len(extension) >= FILE_NAME_MAX_LENGTH:
        return name[:FILE_NAME_MAX_LENGTH]
    return stem[: FILE_NAME_MAX_LENGTH - len(extension)] + extension


def _restore_samples(payloads: Sequence[Mapping[str, Any]], metals: tuple[str, ...]) -> list[Sample]:
    return [
        Sample.from_payload(payload, metals, row_number=int(payload.get("rowNumber") or 0))
        for payload in payloads
    ]


class SampleUploadService:
    """
    Coordinates one CSV upload end to end. The caller owns the session; this
    service commits it.
    """

    def __init__(
        self,
        *,
        strategy: IndexStrategy | None = None,
        validator: SampleValidator | None = None,
        max_reported_errors: int | None = None,
    ) -> None:
        settings = get_upload_settings()
        self._strategy = strategy or get_index_strategy()
        self._validator = validator or SampleValidator(
            log_validation_errors=settings.log_validation_errors,
        )
        self._max_reported_errors = (
            settings.max_reported_errors if max_reported_errors is None else max_reported_errors
        )

    def process_upload(
        self,
        db: Session,
        *,
        owner_id: str,
        stream: BinaryIO,
        file_name: str,
        raw_parameters: Mapping[str, Any],
    ) -> UploadSummary:
        file_name = stored_file_name(file_name)
        parameters = IndexParameters.from_raw(raw_parameters)
        outcome = self._validator.validate(iter_rows(stream), parameters)
        logger.info(
            "Upload validated owner=%s file=%s rows=%d valid=%d invalid=%d",
            owner_id,
            file_name,
            outcome.total_rows,
            outcome.valid_count,
            outcome.invalid_count,
        )

        counts = self._counts(outcome)
        run = self._score_and_persist(
            db,
            owner_id=owner_id,
            file_name=file_name,
            parameters=parameters,
            samples=outcome.valid_samples,
            counts=counts,
        )
        return UploadSummary(
            upload_id=run.id,
            samples_count=outcome.total_rows,
            valid_samples=outcome.valid_count,
            invalid_samples=outcome.invalid_count,
            errors=counts["errors"],
        )

    def rescore_upload(self, db: Session, *, owner_id: str, upload_id: uuid.UUID) -> UploadSummary:
        """
        Re-run scoring over a stored run's validated samples. The original run
        is left untouched; a new run links back to it through ``retry_of``.
        """

        source = AnalysisRunRepository(db).get_for_owner(upload_id, owner_id)
        if not source.samples:
            raise ConfigurationError(
                "Analysis has no validated samples to score.",
                context={"upload_id": str(upload_id)},
            )

        parameters = IndexParameters.from_raw(source.input_parameters)
        samples = _restore_samples(source.samples, parameters.metals)
        previous = source.results or {}
        counts = {
            "samplesCount": int(previous.get("samplesCount", len(samples))),
            "validSamples": len(samples),
            "invalidSamples": int(previous.get("invalidSamples", 0)),
            "errors": list(previous.get("errors") or []),
        }
        logger.info("Re-scoring upload owner=%s upload_id=%s samples=%d", owner_id, upload_id, len(samples))

        run = self._score_and_persist(
            db,
            owner_id=owner_id,
            file_name=source.file_name,
            parameters=parameters,
            samples=samples,
            counts=counts,
            retry_of=source.id,
        )
        return UploadSummary(
            upload_id=run.id,
            samples_count=counts["samplesCount"],
            valid_samples=counts["validSamples"],
            invalid_samples=counts["invalidSamples"],
            errors=counts["errors"],
        )

    def _counts(self, outcome: ValidationOutcome) -> dict[str, Any]:
        return {
            "samplesCount": outcome.total_rows,
            "validSamples": outcome.valid_count,
            "invalidSamples": outcome.invalid_count,
            "errors": outcome.errors(limit=self._max_reported_errors),
        }

    def _score_and_persist(
        self,
        db: Session,
        *,
        owner_id: str,
        file_name: str,
        parameters: IndexParameters,
        samples: Sequence[Sample],
        counts: dict[str, Any],
        retry_of: uuid.UUID | None = None,
    ) -> AnalysisRun:
        runs = AnalysisRunRepository(db)
        stored_samples = _stored_samples(samples)

        if not samples:
            run = runs.create_run(
                owner_id=owner_id,
                file_name=file_name,
                input_parameters=parameters.to_payload(),
                results={**counts, "scoring": {"status": AnalysisScoringStatus.UNSCORED}},
                samples=stored_samples,
                scoring_status=AnalysisScoringStatus.UNSCORED,
                retry_of=retry_of,
            )
            db.commit()
            logger.info("Upload has no valid samples, skipped scoring upload_id=%s", run.id)
            return run

        try:
            result = self._strategy.compute(samples, parameters)
        except IndexCalculationError as exc:
            db.rollback()
            run = runs.create_run(
                owner_id=owner_id,
                file_name=file_name,
                input_parameters=parameters.to_payload(),
                results={
                    **counts,
                    "scoring": {
                        "status": AnalysisScoringStatus.FAILED,
                        "kind": exc.kind,
                        "message": exc.message,
                    },
                },
                samples=stored_samples,
                scoring_status=AnalysisScoringStatus.FAILED,
                retry_of=retry_of,
            )
            db.commit()
            logger.warning(
                "Scoring failed, analysis kept unscored upload_id=%s kind=%s",
                run.id,
                exc.kind,
            )
            raise exc.with_context(upload_id=str(run.id))

        try:
            run = runs.create_run(
                owner_id=owner_id,
                file_name=file_name,
                input_parameters=parameters.to_payload(),
                results={**result.to_payload(), **counts},
                samples=stored_samples,
                scoring_status=AnalysisScoringStatus.SCORED,
                retry_of=retry_of,
            )
            predictions = build_predictions(
                owner_id=owner_id,
                analysis_run_id=run.id,
                samples=samples,
                result=result,
                metals=parameters.metals,
            )
            PredictionRepository(db).add_all(predictions)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "Upload scored upload_id=%s strategy=%s predictions=%d",
            run.id,
            result.strategy,
            len(predictions),
        )
        return run


@lru_cache(maxsize=1)
def get_upload_service() -> SampleUploadService:
    return SampleUploadService()
