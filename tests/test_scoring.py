"""
tests/test_scoring.py

Risk thresholds, mean scoring and calculator-row score resolution.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.domain.samples import RiskCategory, Sample
from hmpi.scoring import (
    classify_risk,
    heavy_metal_evaluation_index,
    resolve_sample_score,
    score_concentrations,
)


def _sample(**concentrations: float) -> Sample:
    return Sample(
        sample_id="s-1",
        row_number=2,
        latitude=1.0,
        longitude=2.0,
        sample_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        concentrations=concentrations,
    )


class TestClassifyRisk:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (150.0, RiskCategory.UNSAFE),
            (100.01, RiskCategory.UNSAFE),
            (100.0, RiskCategory.CAUTION),
            (75.0, RiskCategory.CAUTION),
            (50.0, RiskCategory.SAFE),
            (10.0, RiskCategory.SAFE),
            (0.0, RiskCategory.SAFE),
        ],
    )
    def test_thresholds(self, score: float, expected: str) -> None:
        assert classify_risk(score) == expected


class TestScoreConcentrations:
    def test_mean_over_declared_metals(self) -> None:
        assert score_concentrations({"lead": 10.0, "zinc": 30.0}, ["lead", "zinc"]) == 20.0

    def test_absent_metal_counts_as_zero(self) -> None:
        assert score_concentrations({"lead": 10.0}, ["lead", "zinc"]) == 5.0

    def test_no_metals_scores_zero(self) -> None:
        assert score_concentrations({"lead": 10.0}, []) == 0.0


class TestHeavyMetalEvaluationIndex:
    def test_skips_metals_without_positive_standard(self) -> None:
        hei = heavy_metal_evaluation_index({"lead": 20.0, "zinc": 5.0}, {"lead": 10.0, "zinc": 0.0})
        assert hei == 2.0


class TestResolveSampleScore:
    def test_uses_calculator_hmpi(self) -> None:
        sample = _sample(lead=10.0)
        assert resolve_sample_score([{"HMPI": 42.5}], 0, sample, ["lead"]) == 42.5

    @pytest.mark.parametrize("row", [{"HMPI": -1}, {"HMPI": "12"}, {"HMPI": True}, {"HMPI": float("nan")}, {}])
    def test_falls_back_to_mean_for_unusable_values(self, row: dict) -> None:
        sample = _sample(lead=10.0, zinc=20.0)
        assert resolve_sample_score([row], 0, sample, ["lead", "zinc"]) == 15.0

    def test_falls_back_when_row_missing(self) -> None:
        sample = _sample(lead=8.0)
        assert resolve_sample_score([], 3, sample, ["lead"]) == 8.0
