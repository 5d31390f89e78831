"""
tests/test_prediction_service.py

Single-sample scoring and owner-scoped prediction queries.
"""

from __future__ import annotations

import io
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.errors import ConfigurationError, Forbidden, NotFound, SampleValidationError
from app.services.analysis_service import AnalysisService
from app.services.prediction_service import PredictionService
from app.services.upload_service import SampleUploadService
from app.validators.sample_validator import SampleValidator
from db.models.prediction import Prediction
from hmpi.mock_strategy import MockIndexStrategy

OWNER = "user-1"
OTHER = "user-2"


@pytest.fixture()
def service() -> PredictionService:
    return PredictionService(
        strategy=MockIndexStrategy(latency_seconds=0),
        validator=SampleValidator(log_validation_errors=False),
        default_metals=("lead", "zinc"),
    )


def _store(db, owner_id: str, score: float, *, day: int, lat: float = 0.0, lng: float = 0.0) -> Prediction:
    prediction = Prediction(
        owner_id=owner_id,
        sample_id=f"S-{day}",
        hmpi_score=score,
        risk_category="safe" if score <= 50 else ("caution" if score <= 100 else "unsafe"),
        metal_concentrations={"lead": score},
        latitude=lat,
        longitude=lng,
        sample_date=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(days=day),
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc) + timedelta(minutes=day),
    )
    db.add(prediction)
    db.commit()
    return prediction


class TestScoreSingle:
    def test_scores_and_persists(self, db, service) -> None:
        result = service.score_single(
            db,
            owner_id=OWNER,
            payload={"latitude": 12.5, "longitude": 77.1, "lead": 60, "zinc": 80, "date": "2024-03-04"},
        )

        assert result.hmpi_score == 70.0
        assert result.risk_category == "caution"
        assert result.analysis_run_id is None
        stored = db.get(Prediction, result.id)
        assert stored.owner_id == OWNER
        assert stored.hmpi_score == 70.0

    def test_payload_metals_override_defaults(self, db, service) -> None:
        result = service.score_single(
            db,
            owner_id=OWNER,
            payload={"latitude": 1, "longitude": 1, "arsenic": 300, "metals": ["arsenic"]},
        )

        assert result.hmpi_score == 300.0
        assert result.risk_category == "unsafe"

    @pytest.mark.parametrize("metals", ["lead", [], ["  ", ""], 5])
    def test_malformed_metals_are_rejected(self, db, service, metals) -> None:
        with pytest.raises(ConfigurationError):
            service.score_single(
                db,
                owner_id=OWNER,
                payload={"latitude": 1, "longitude": 1, "lead": 500, "metals": metals},
            )

        assert db.query(Prediction).count() == 0

    def test_payload_metals_are_stripped_and_deduplicated(self, db, service) -> None:
        result = service.score_single(
            db,
            owner_id=OWNER,
            payload={"latitude": 1, "longitude": 1, "lead": 40, "metals": [" lead ", "lead"]},
        )

        assert result.metal_concentrations == {"lead": 40.0}
        assert result.hmpi_score == 40.0

    def test_invalid_sample_lists_reasons(self, db, service) -> None:
        with pytest.raises(SampleValidationError) as excinfo:
            service.score_single(db, owner_id=OWNER, payload={"latitude": 120, "longitude": 1, "lead": -1})

        assert len(excinfo.value.reasons) == 2
        assert excinfo.value.status_code == 422
        assert db.query(Prediction).count() == 0

    def test_malformed_standards(self, db, service) -> None:
        with pytest.raises(ConfigurationError):
            service.score_single(
                db,
                owner_id=OWNER,
                payload={"latitude": 1, "longitude": 1, "lead": 1, "zinc": 1, "standards": {"lead": "x"}},
            )


class TestQueries:
    def test_pagination_newest_first(self, db, service) -> None:
        for day in range(5):
            _store(db, OWNER, 10.0 + day, day=day)
        _store(db, OTHER, 99.0, day=9)

        first = service.list_predictions(db, owner_id=OWNER, page=1, limit=2)
        last = service.list_predictions(db, owner_id=OWNER, page=3, limit=2)

        assert first.total == 5
        assert first.total_pages == 3
        assert [p.sample_id for p in first.predictions] == ["S-4", "S-3"]
        assert [p.sample_id for p in last.predictions] == ["S-0"]

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (1, 501)])
    def test_pagination_bounds(self, db, service, page: int, limit: int) -> None:
        with pytest.raises(ConfigurationError):
            service.list_predictions(db, owner_id=OWNER, page=page, limit=limit)

    def test_date_range_is_inclusive(self, db, service) -> None:
        for day in range(5):
            _store(db, OWNER, 10.0, day=day)

        results = service.by_date_range(
            db,
            owner_id=OWNER,
            start_date=datetime(2024, 1, 2, tzinfo=timezone.utc),
            end_date=datetime(2024, 1, 4),
        )

        assert sorted(p.sample_id for p in results) == ["S-1", "S-2", "S-3"]

    def test_date_range_rejects_reversed_bounds(self, db, service) -> None:
        with pytest.raises(ConfigurationError):
            service.by_date_range(
                db,
                owner_id=OWNER,
                start_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
                end_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    def test_location_radius(self, db, service) -> None:
        _store(db, OWNER, 10.0, day=0, lat=0.0, lng=0.0)
        _store(db, OWNER, 10.0, day=1, lat=0.5, lng=0.0)
        _store(db, OWNER, 10.0, day=2, lat=3.0, lng=0.0)
        _store(db, OTHER, 10.0, day=3, lat=0.0, lng=0.0)

        results = service.by_location(db, owner_id=OWNER, latitude=0.0, longitude=0.0, radius_km=100.0)

        assert sorted(p.sample_id for p in results) == ["S-0", "S-1"]

    def test_location_requires_positive_radius(self, db, service) -> None:
        with pytest.raises(ConfigurationError):
            service.by_location(db, owner_id=OWNER, latitude=0.0, longitude=0.0, radius_km=0)

    def test_statistics(self, db, service) -> None:
        for day, score in enumerate([10.0, 20.0, 80.0, 150.0, 40.0, 60.0]):
            _store(db, OWNER, score, day=day)

        stats = service.statistics(db, owner_id=OWNER)

        assert stats.summary.total == 6
        assert stats.summary.category_counts == {"safe": 3, "caution": 2, "unsafe": 1}
        assert stats.summary.average_hmpi == pytest.approx(60.0)
        assert [p.sample_id for p in stats.recent] == ["S-5", "S-4", "S-3", "S-2", "S-1"]

    def test_statistics_without_predictions(self, db, service) -> None:
        stats = service.statistics(db, owner_id=OWNER)

        assert stats.summary.total == 0
        assert stats.summary.category_percentages == {"safe": 0.0, "caution": 0.0, "unsafe": 0.0}
        assert stats.recent == []

    def test_latest(self, db, service) -> None:
        assert service.latest(db, owner_id=OWNER) is None
        _store(db, OWNER, 1.0, day=0)
        _store(db, OWNER, 2.0, day=1)

        assert service.latest(db, owner_id=OWNER).sample_id == "S-1"


class TestOwnership:
    def test_delete_foreign_prediction_is_forbidden(self, db, service) -> None:
        prediction = _store(db, OTHER, 10.0, day=0)

        with pytest.raises(Forbidden):
            service.delete(db, owner_id=OWNER, prediction_id=prediction.id)
        assert db.get(Prediction, prediction.id) is not None

    def test_delete_missing_prediction(self, db, service) -> None:
        with pytest.raises(NotFound):
            service.delete(db, owner_id=OWNER, prediction_id=uuid.uuid4())

    def test_delete_own_prediction(self, db, service) -> None:
        prediction = _store(db, OWNER, 10.0, day=0)

        service.delete(db, owner_id=OWNER, prediction_id=prediction.id)

        assert service.latest(db, owner_id=OWNER) is None


class TestBatchResults:
    def test_batch_summary_and_analysis_deletion(self, db, service, three_row_csv, upload_parameters) -> None:
        uploads = SampleUploadService(
            strategy=MockIndexStrategy(latency_seconds=0),
            validator=SampleValidator(log_validation_errors=False),
        )
        summary = uploads.process_upload(
            db,
            owner_id=OWNER,
            stream=io.BytesIO(three_row_csv),
            file_name="wells.csv",
            raw_parameters=upload_parameters,
        )

        batch = service.get_batch_results(db, owner_id=OWNER, upload_id=summary.upload_id)

        assert batch.scoring_status == "scored"
        assert len(batch.results) == 2
        assert batch.summary.category_counts == {"safe": 1, "caution": 0, "unsafe": 1}
        assert batch.summary.average_hmpi == pytest.approx(140.0)

        with pytest.raises(Forbidden):
            service.get_batch_results(db, owner_id=OTHER, upload_id=summary.upload_id)

        analyses = AnalysisService()
        assert [run.id for run in analyses.list_analyses(db, owner_id=OWNER)] == [summary.upload_id]
        analyses.delete_analysis(db, owner_id=OWNER, analysis_id=summary.upload_id)

        assert db.query(Prediction).count() == 0
        with pytest.raises(NotFound):
            analyses.get_analysis(db, owner_id=OWNER, analysis_id=summary.upload_id)
