"""
hmpi/scoring.py

Placeholder per-sample HMPI scoring and fixed risk thresholds.

The score is the arithmetic mean of the declared metal concentrations. The
thresholds are shared with downstream aggregation and must not change:

    score > 100        -> unsafe
    50 < score <= 100  -> caution
    score <= 50        -> safe
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any

from app.domain.samples import RiskCategory, Sample

UNSAFE_THRESHOLD = 100.0
CAUTION_THRESHOLD = 50.0


def score_concentrations(concentrations: Mapping[str, float], metals: Sequence[str]) -> float:
    """Mean concentration across ``metals``; absent metals count as 0."""
    if not metals:
        return 0.0
    total = sum(float(concentrations.get(metal, 0.0)) for metal in metals)
    return total / len(metals)


def classify_risk(score: float) -> str:
    if score > UNSAFE_THRESHOLD:
        return RiskCategory.UNSAFE
    if score > CAUTION_THRESHOLD:
        return RiskCategory.CAUTION
    return RiskCategory.SAFE


def heavy_metal_evaluation_index(
    concentrations: Mapping[str, float],
    standards: Mapping[str, float],
) -> float:
    """HEI: sum of concentration / standard over metals with a positive standard."""
    return sum(
        float(value) / standards[metal]
        for metal, value in concentrations.items()
        if standards.get(metal, 0.0) > 0
    )


def resolve_sample_score(
    processed_data: Sequence[Any],
    position: int,
    sample: Sample,
    metals: Sequence[str],
) -> float:
    """
    Score for the sample at ``position`` of a calculator batch.

    Uses the processed row's ``HMPI`` when it is a non-negative number,
    otherwise falls back to the local mean.
    """

    if position < len(processed_data):
        row = processed_data[position]
        if isinstance(row, Mapping):
            value = row.get("HMPI", row.get("hmpi"))
            if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value) and value >= 0:
                return float(value)
    return score_concentrations(sample.concentrations, metals)
