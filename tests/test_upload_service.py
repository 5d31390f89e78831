"""
tests/test_upload_service.py

Upload flow against an in-memory database: validation counts, scoring,
persistence, failed scoring and re-scoring.
"""

from __future__ import annotations

import io
import uuid
from collections.abc import Sequence

import pytest
from sqlalchemy import func, select

from app.domain.samples import Sample
from app.errors import ConfigurationError, Forbidden, MalformedInputError, ScoringTimeout
from app.services.upload_service import FILE_NAME_MAX_LENGTH, SampleUploadService
from app.validators.sample_validator import SampleValidator
from db.models.analysis_run import AnalysisRun, AnalysisScoringStatus
from db.models.prediction import Prediction
from hmpi.base import HealthStatus, IndexParameters, IndexResult, IndexStrategy
from hmpi.mock_strategy import MockIndexStrategy

OWNER = "user-1"


class TimingOutStrategy(IndexStrategy):
    name = "remote"

    def __init__(self) -> None:
        self.calls = 0

    def compute(self, samples: Sequence[Sample], parameters: IndexParameters) -> IndexResult:
        self.calls += 1
        raise ScoringTimeout("Request to calculation service timed out. Please try again.")

    def health_check(self) -> HealthStatus:
        return HealthStatus(status="unhealthy", service=self.name)


class FixedScoreStrategy(IndexStrategy):
    """Returns the given HMPI values row by row."""

    name = "fixed"

    def __init__(self, scores: list[object]) -> None:
        self._scores = scores

    def compute(self, samples: Sequence[Sample], parameters: IndexParameters) -> IndexResult:
        rows = [{"HMPI": score} for score in self._scores]
        return IndexResult(processed_data=rows, summary={}, metadata={}, strategy=self.name)

    def health_check(self) -> HealthStatus:
        return HealthStatus(status="healthy", service=self.name)


def _service(strategy: IndexStrategy | None = None) -> SampleUploadService:
    return SampleUploadService(
        strategy=strategy or MockIndexStrategy(latency_seconds=0),
        validator=SampleValidator(log_validation_errors=False),
        max_reported_errors=10,
    )


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class TestProcessUpload:
    def test_three_rows_two_valid(self, db, three_row_csv, upload_parameters) -> None:
        summary = _service().process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(three_row_csv),
            file_name="wells.csv",
            raw_parameters=upload_parameters,
        )

        assert (summary.samples_count, summary.valid_samples, summary.invalid_samples) == (3, 2, 1)
        assert summary.errors == ["Row 4: missing or non-numeric coordinate 'latitude'"]

        run = db.get(AnalysisRun, summary.upload_id)
        assert run.scoring_status == AnalysisScoringStatus.SCORED
        assert run.file_name == "wells.csv"
        assert run.results["validSamples"] == 2
        assert run.results["strategy"] == "mock"
        assert run.input_parameters["metals"] == ["lead", "zinc"]

        predictions = db.scalars(
            select(Prediction).where(Prediction.analysis_run_id == run.id).order_by(Prediction.sample_id)
        ).all()
        assert [(p.sample_id, p.hmpi_score, p.risk_category) for p in predictions] == [
            ("W-1", 30.0, "safe"),
            ("W-2", 250.0, "unsafe"),
        ]
        assert all(p.owner_id == OWNER for p in predictions)

    def test_overlong_sample_id_becomes_invalid_row(self, db, upload_parameters) -> None:
        content = (
            b"sample_id,latitude,longitude,lead,zinc\n"
            b"W-1,10.5,20.1,20,40\n" + b"X" * 200 + b",11.5,21.1,200,300\n"
        )

        summary = _service().process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(content),
            file_name="wells.csv",
            raw_parameters=upload_parameters,
        )

        assert (summary.valid_samples, summary.invalid_samples) == (1, 1)
        assert summary.errors == ["Row 3: sample id longer than 128 characters"]
        assert _count(db, Prediction) == 1

    def test_overlong_file_name_is_shortened(self, db, three_row_csv, upload_parameters) -> None:
        summary = _service().process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(three_row_csv),
            file_name="w" * 400 + ".csv",
            raw_parameters=upload_parameters,
        )

        run = db.get(AnalysisRun, summary.upload_id)
        assert len(run.file_name) == FILE_NAME_MAX_LENGTH
        assert run.file_name.endswith("w.csv")

    def test_calculator_scores_take_precedence(self, db, three_row_csv, upload_parameters) -> None:
        summary = _service(FixedScoreStrategy([75.0, "bad"])).process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(three_row_csv),
            file_name="wells.csv",
            raw_parameters=upload_parameters,
        )

        scores = db.scalars(
            select(Prediction.hmpi_score)
            .where(Prediction.analysis_run_id == summary.upload_id)
            .order_by(Prediction.sample_id)
        ).all()
        # Second row falls back to the local mean.
        assert scores == [75.0, 250.0]

    def test_no_valid_rows_skips_scoring(self, db, upload_parameters) -> None:
        strategy = TimingOutStrategy()

        summary = _service(strategy).process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(b"latitude,longitude,lead,zinc\n,,1,1\n"),
            file_name="empty.csv",
            raw_parameters=upload_parameters,
        )

        assert summary.valid_samples == 0
        assert strategy.calls == 0
        assert db.get(AnalysisRun, summary.upload_id).scoring_status == AnalysisScoringStatus.UNSCORED
        assert _count(db, Prediction) == 0

    def test_timeout_keeps_run_without_predictions(self, db, three_row_csv, upload_parameters) -> None:
        with pytest.raises(ScoringTimeout) as excinfo:
            _service(TimingOutStrategy()).process_upload(
                db,
                owner_id=OWNER,
                stream=io.BytesIO(three_row_csv),
                file_name="wells.csv",
                raw_parameters=upload_parameters,
            )

        upload_id = uuid.UUID(excinfo.value.context["upload_id"])
        run = db.get(AnalysisRun, upload_id)
        assert run.scoring_status == AnalysisScoringStatus.FAILED
        assert run.results["scoring"]["kind"] == "timeout"
        assert len(run.samples) == 2
        assert _count(db, Prediction) == 0

    def test_missing_parameters_reject_before_reading(self, db, three_row_csv) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            _service().process_upload(
                db,
                owner_id=OWNER,
                stream=io.BytesIO(three_row_csv),
                file_name="wells.csv",
                raw_parameters={"metals": '["lead"]'},
            )

        assert excinfo.value.context["missing"] == ["standards", "backgrounds", "presenceLimits"]
        assert _count(db, AnalysisRun) == 0

    def test_malformed_stream_persists_nothing(self, db, upload_parameters) -> None:
        with pytest.raises(MalformedInputError):
            _service().process_upload(
                db,
                owner_id=OWNER,
                stream=io.BytesIO(b"\xff\xfe\x00bad"),
                file_name="bad.csv",
                raw_parameters=upload_parameters,
            )

        assert _count(db, AnalysisRun) == 0


class TestRescoreUpload:
    def test_rescore_after_failure(self, db, three_row_csv, upload_parameters) -> None:
        with pytest.raises(ScoringTimeout) as excinfo:
            _service(TimingOutStrategy()).process_upload(
                db,
                owner_id=OWNER,
                stream=io.BytesIO(three_row_csv),
                file_name="wells.csv",
                raw_parameters=upload_parameters,
            )
        failed_id = uuid.UUID(excinfo.value.context["upload_id"])

        summary = _service().rescore_upload(db, owner_id=OWNER, upload_id=failed_id)

        assert summary.upload_id != failed_id
        assert (summary.samples_count, summary.valid_samples, summary.invalid_samples) == (3, 2, 1)
        retry = db.get(AnalysisRun, summary.upload_id)
        assert retry.retry_of == failed_id
        assert retry.scoring_status == AnalysisScoringStatus.SCORED
        assert db.get(AnalysisRun, failed_id).scoring_status == AnalysisScoringStatus.FAILED
        assert _count(db, Prediction) == 2

    def test_rescore_requires_samples(self, db, upload_parameters) -> None:
        summary = _service().process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(b"latitude,longitude,lead,zinc\n,,1,1\n"),
            file_name="empty.csv",
            raw_parameters=upload_parameters,
        )

        with pytest.raises(ConfigurationError):
            _service().rescore_upload(db, owner_id=OWNER, upload_id=summary.upload_id)

    def test_rescore_is_owner_scoped(self, db, three_row_csv, upload_parameters) -> None:
        summary = _service().process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(three_row_csv),
            file_name="wells.csv",
            raw_parameters=upload_parameters,
        )

        with pytest.raises(Forbidden):
            _service().rescore_upload(db, owner_id="someone-else", upload_id=summary.upload_id)
