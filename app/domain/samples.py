"""
app/domain/samples.py

Domain models used by the upload, scoring and reporting flows.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


class RiskCategory:
    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"

    ALL: tuple[str, ...] = (SAFE, CAUTION, UNSAFE)


@dataclass(frozen=True)
class Sample:
    """
    One validated, geolocated and dated water-quality observation.
    """

    sample_id: str
    row_number: int
    latitude: float
    longitude: float
    sample_date: datetime
    concentrations: Mapping[str, float]

    def to_payload(self) -> dict[str, Any]:
        """
        JSON-safe flat representation, one key per metal.
        """

        payload: dict[str, Any] = {
            "sampleId": self.sample_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "date": self.sample_date.isoformat(),
        }
        payload.update(self.concentrations)
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], metals: tuple[str, ...], row_number: int = 0) -> "Sample":
        return cls(
            sample_id=str(payload["sampleId"]),
            row_number=row_number,
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            sample_date=datetime.fromisoformat(str(payload["date"])),
            concentrations={metal: float(payload.get(metal) or 0.0) for metal in metals},
        )


@dataclass(frozen=True)
class InvalidSample:
    """
    One rejected input record with every reason it failed.
    """

    row_number: int
    raw: dict[str, Any]
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Partition of an input batch into valid and invalid samples.
    """

    valid_samples: list[Sample] = field(default_factory=list)
    invalid_samples: list[InvalidSample] = field(default_factory=list)

    @property
    def valid_count(self) -> int:
        return len(self.valid_samples)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_samples)

    @property
    def total_rows(self) -> int:
        return self.valid_count + self.invalid_count

    def errors(self, limit: int | None = None) -> list[str]:
        messages = [reason for invalid in self.invalid_samples for reason in invalid.reasons]
        return messages if limit is None else messages[:limit]


@dataclass(frozen=True)
class PredictionResult:
    """
    Score computed once for one sample; never mutated after creation.
    """

    id: uuid.UUID
    sample_id: str
    hmpi_score: float
    risk_category: str
    metal_concentrations: dict[str, float]
    latitude: float
    longitude: float
    sample_date: datetime
    created_at: datetime
    analysis_run_id: uuid.UUID | None = None


@dataclass(frozen=True)
class UploadSummary:
    """
    End-of-upload summary returned to the caller.
    """

    upload_id: uuid.UUID
    samples_count: int
    valid_samples: int
    invalid_samples: int
    errors: list[str] = field(default_factory=list)
