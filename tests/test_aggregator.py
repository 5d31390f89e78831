"""
tests/test_aggregator.py

Batch statistics: counts, averages, histogram bins and per-metal figures.
"""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone

import pytest

from app.domain.samples import PredictionResult
from hmpi.aggregator import HISTOGRAM_EDGES, histogram_bin_index, summarize
from hmpi.scoring import classify_risk

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _prediction(score: float, **metals: float) -> PredictionResult:
    return PredictionResult(
        id=uuid.uuid4(),
        sample_id=f"s-{score}",
        hmpi_score=score,
        risk_category=classify_risk(score),
        metal_concentrations=metals,
        latitude=0.0,
        longitude=0.0,
        sample_date=NOW,
        created_at=NOW,
    )


class TestSummarize:
    def test_empty_input(self) -> None:
        summary = summarize([])

        assert summary.total == 0
        assert summary.average_hmpi == 0.0
        assert summary.category_counts == {"safe": 0, "caution": 0, "unsafe": 0}
        assert summary.category_percentages == {"safe": 0.0, "caution": 0.0, "unsafe": 0.0}
        assert all(b.count == 0 for b in summary.histogram)
        assert summary.metal_statistics == {}

    def test_counts_and_average(self) -> None:
        summary = summarize([_prediction(10.0), _prediction(75.0), _prediction(150.0), _prediction(20.0)])

        assert summary.total == 4
        assert summary.category_counts == {"safe": 2, "caution": 1, "unsafe": 1}
        assert summary.average_hmpi == pytest.approx(63.75)
        assert summary.category_percentages["safe"] == 50.0

    def test_order_independent(self) -> None:
        predictions = [_prediction(score * 0.1, lead=score * 0.3) for score in range(1, 400)]
        shuffled = list(predictions)
        random.Random(7).shuffle(shuffled)

        assert summarize(predictions) == summarize(shuffled)

    def test_histogram_bins_are_half_open(self) -> None:
        summary = summarize([_prediction(0.0), _prediction(25.0), _prediction(299.99), _prediction(300.0)])
        counts = {b.label: b.count for b in summary.histogram}

        assert counts["0-25"] == 1
        assert counts["25-50"] == 1
        assert counts["200-300"] == 1
        assert sum(counts.values()) == 3
        assert len(summary.histogram) == len(HISTOGRAM_EDGES) - 1

    def test_metal_statistics_only_cover_declared_values(self) -> None:
        summary = summarize([_prediction(1.0, lead=2.0, zinc=4.0), _prediction(1.0, lead=6.0)])

        lead = summary.metal_statistics["lead"]
        zinc = summary.metal_statistics["zinc"]
        assert (lead.average, lead.minimum, lead.maximum, lead.count) == (4.0, 2.0, 6.0, 2)
        assert zinc.count == 1
        assert "arsenic" not in summary.metal_statistics


class TestHistogramBinIndex:
    @pytest.mark.parametrize(("score", "index"), [(0.0, 0), (24.999, 0), (50.0, 2), (100.0, 4), (299.0, 6)])
    def test_bin_lookup(self, score: float, index: int) -> None:
        assert histogram_bin_index(score) == index

    @pytest.mark.parametrize("score", [-0.1, 300.0, 1000.0])
    def test_out_of_range(self, score: float) -> None:
        assert histogram_bin_index(score) is None
