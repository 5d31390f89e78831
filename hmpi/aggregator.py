"""
hmpi/aggregator.py

Pure reduction of scored samples into batch statistics.

All outputs are independent of input order: sums use ``math.fsum`` and the
histogram uses fixed edges.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.domain.samples import PredictionResult, RiskCategory

HISTOGRAM_EDGES: tuple[float, ...] = (0.0, 25.0, 50.0, 75.0, 100.0, 150.0, 200.0, 300.0)


@dataclass(frozen=True)
class HistogramBin:
    low: float
    high: float
    count: int

    @property
    def label(self) -> str:
        return f"{self.low:g}-{self.high:g}"


@dataclass(frozen=True)
class MetalStatistics:
    average: float
    minimum: float
    maximum: float
    count: int


@dataclass(frozen=True)
class AggregateSummary:
    """
    Batch statistics for a collection of predictions.
    """

    total: int
    category_counts: dict[str, int]
    average_hmpi: float
    histogram: list[HistogramBin] = field(default_factory=list)
    metal_statistics: dict[str, MetalStatistics] = field(default_factory=dict)

    @property
    def category_percentages(self) -> dict[str, float]:
        if not self.total:
            return {category: 0.0 for category in RiskCategory.ALL}
        return {
            category: round(count * 100.0 / self.total, 2)
            for category, count in self.category_counts.items()
        }


def histogram_bin_index(score: float) -> int | None:
    """
    Index of the half-open bin ``[low, high)`` containing ``score``, or None
    when the score falls outside the bounded range.
    """

    for index in range(len(HISTOGRAM_EDGES) - 1):
        if HISTOGRAM_EDGES[index] <= score < HISTOGRAM_EDGES[index + 1]:
            return index
    return None


def summarize(predictions: Iterable[PredictionResult]) -> AggregateSummary:
    counts = {category: 0 for category in RiskCategory.ALL}
    bins = [0] * (len(HISTOGRAM_EDGES) - 1)
    scores: list[float] = []
    metal_values: dict[str, list[float]] = {}

    for prediction in predictions:
        score = float(prediction.hmpi_score)
        scores.append(score)
        counts[prediction.risk_category] = counts.get(prediction.risk_category, 0) + 1

        index = histogram_bin_index(score)
        if index is not None:
            bins[index] += 1

        for metal, value in prediction.metal_concentrations.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                continue
            metal_values.setdefault(metal, []).append(float(value))

    total = len(scores)
    average = math.fsum(scores) / total if total else 0.0

    histogram = [
        HistogramBin(low=HISTOGRAM_EDGES[i], high=HISTOGRAM_EDGES[i + 1], count=bins[i])
        for i in range(len(bins))
    ]
    metal_statistics = {
        metal: MetalStatistics(
            average=math.fsum(values) / len(values),
            minimum=min(values),
            maximum=max(values),
            count=len(values),
        )
        for metal, values in sorted(metal_values.items())
    }

    return AggregateSummary(
        total=total,
        category_counts=counts,
        average_hmpi=average,
        histogram=histogram,
        metal_statistics=metal_statistics,
    )
