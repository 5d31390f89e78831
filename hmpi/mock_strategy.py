"""
hmpi/mock_strategy.py

Deterministic calculator used for local development and CI pipelines where
no scoring service is available.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone

from app.domain.samples import RiskCategory, Sample
from hmpi.base import HealthStatus, IndexParameters, IndexResult, IndexStrategy
from hmpi.scoring import classify_risk, heavy_metal_evaluation_index, score_concentrations

logger = logging.getLogger(__name__)

MOCK_MODEL_NAME = "mock-pollution-model-v1.0"
MOCK_MODEL_VERSION = "1.0.0"


class MockIndexStrategy(IndexStrategy):
    """Returns illustrative indices computed locally after a simulated delay.

    The shape of the output matches the remote service. Always succeeds and
    always reports healthy.
    """

    name = "mock"

    def __init__(self, latency_seconds: float = 1.0) -> None:
        self._latency_seconds = max(0.0, latency_seconds)

    def compute(self, samples: Sequence[Sample], parameters: IndexParameters) -> IndexResult:
        logger.info(
            "Mock index calculation samples=%d metals=%d latency_seconds=%.2f",
            len(samples),
            len(parameters.metals),
            self._latency_seconds,
        )
        started = time.monotonic()
        if self._latency_seconds:
            time.sleep(self._latency_seconds)

        now = datetime.now(timezone.utc).isoformat()
        processed: list[dict] = []
        categories: Counter[str] = Counter({category: 0 for category in RiskCategory.ALL})
        hmpi_total = 0.0
        hei_total = 0.0

        for sample in samples:
            hmpi = round(score_concentrations(sample.concentrations, parameters.metals), 4)
            hei = round(heavy_metal_evaluation_index(sample.concentrations, parameters.standards), 4)
            quality = classify_risk(hmpi)
            categories[quality] += 1
            hmpi_total += hmpi
            hei_total += hei

            row = {"sampleId": sample.sample_id}
            row.update({metal: sample.concentrations.get(metal, 0.0) for metal in parameters.metals})
            row.update(
                {
                    "HMPI": hmpi,
                    "HEI": hei,
                    "Quality": quality.capitalize(),
                    "Note": "Mock Data",
                    "timestamp": now,
                }
            )
            processed.append(row)

        count = len(samples)
        elapsed = time.monotonic() - started
        summary = {
            "meanIndices": {
                "HPI": round(hmpi_total / count, 2) if count else 0.0,
                "HEI": round(hei_total / count, 2) if count else 0.0,
            },
            "categoryCounts": {category.capitalize(): categories[category] for category in RiskCategory.ALL},
            "totalSamples": count,
            "processingTime": f"{elapsed:.1f}s",
        }
        metadata = {"model": MOCK_MODEL_NAME, "version": MOCK_MODEL_VERSION, "timestamp": now}
        return IndexResult(processed_data=processed, summary=summary, metadata=metadata, strategy=self.name)

    def health_check(self) -> HealthStatus:
        return HealthStatus(status="healthy", service=self.name)
