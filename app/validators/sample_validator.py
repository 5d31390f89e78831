"""
app/validators/sample_validator.py

Row-level validation and type parsing for water-quality samples.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Mapping

from app.domain.samples import InvalidSample, Sample, ValidationOutcome
from app.errors import ConfigurationError
from hmpi.base import IndexParameters

logger = logging.getLogger(__name__)

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
)

SAMPLE_ID_COLUMNS: tuple[str, ...] = ("sample_id", "sampleId", "id")
SAMPLE_ID_MAX_LENGTH = 128

_COORDINATE_BOUNDS = {
    "latitude": 90.0,
    "longitude": 180.0,
}


class SampleValidator:
    """
    Validates raw records against the coordinate, date and metal schema.

    Dirty data never raises: every problem becomes a per-row reason and the
    row is reported as invalid. Only a structurally missing metal list is
    treated as a caller error.
    """

    def __init__(self, *, log_validation_errors: bool = True) -> None:
        self._log_validation_errors = log_validation_errors

    def validate(
        self,
        records: Iterable[Mapping[str, Any]],
        parameters: IndexParameters,
        *,
        ingested_at: datetime | None = None,
    ) -> ValidationOutcome:
        """
        Consume ``records`` in one pass and partition them into valid and
        invalid samples.
        """

        self._require_metals(parameters)
        ingested_at = ingested_at or datetime.now(timezone.utc)
        valid: list[Sample] = []
        invalid: list[InvalidSample] = []

        for row_number, record in enumerate(records, start=2):
            sample, reasons = self.validate_record(
                record,
                parameters,
                row_number=row_number,
                ingested_at=ingested_at,
            )
            if sample is None:
                invalid.append(InvalidSample(row_number=row_number, raw=dict(record), reasons=reasons))
                continue
            valid.append(sample)

        return ValidationOutcome(valid_samples=valid, invalid_samples=invalid)

    def validate_record(
        self,
        record: Mapping[str, Any],
        parameters: IndexParameters,
        *,
        row_number: int,
        ingested_at: datetime | None = None,
    ) -> tuple[Sample | None, list[str]]:
        """
        Validate and parse one record. Values may be strings or numbers.
        """

        self._require_metals(parameters)
        reasons: list[str] = []

        latitude = self._parse_coordinate(record, "latitude", row_number, reasons)
        longitude = self._parse_coordinate(record, "longitude", row_number, reasons)

        concentrations: dict[str, float] = {}
        for metal in parameters.metals:
            concentrations[metal] = self._parse_concentration(record.get(metal), metal, row_number, reasons)

        sample_date = self._parse_date(record.get("date"), row_number, reasons, ingested_at)

        sample_id = self._sample_id(record)
        if len(sample_id) > SAMPLE_ID_MAX_LENGTH:
            reasons.append(f"Row {row_number}: sample id longer than {SAMPLE_ID_MAX_LENGTH} characters")

        if reasons:
            if self._log_validation_errors:
                for reason in reasons:
                    logger.warning("Sample validation error %s", reason)
            return None, reasons

        return (
            Sample(
                sample_id=sample_id,
                row_number=row_number,
                latitude=latitude,
                longitude=longitude,
                sample_date=sample_date,
                concentrations=concentrations,
            ),
            [],
        )

    @staticmethod
    def _require_metals(parameters: IndexParameters) -> None:
        if not parameters.metals:
            raise ConfigurationError("At least one metal must be declared for validation.")

    def _parse_coordinate(
        self,
        record: Mapping[str, Any],
        column: str,
        row_number: int,
        reasons: list[str],
    ) -> float:
        value = self._parse_float(record.get(column))
        if value is None:
            reasons.append(f"Row {row_number}: missing or non-numeric coordinate '{column}'")
            return 0.0
        if abs(value) > _COORDINATE_BOUNDS[column]:
            reasons.append(f"Row {row_number}: coordinate '{column}' out of range")
        return value

    def _parse_concentration(
        self,
        value: Any,
        metal: str,
        row_number: int,
        reasons: list[str],
    ) -> float:
        if self._is_blank(value):
            return 0.0
        parsed = self._parse_float(value)
        if parsed is None:
            reasons.append(f"Row {row_number}: non-numeric value for metal '{metal}'")
            return 0.0
        if parsed < 0:
            reasons.append(f"Row {row_number}: negative concentration for metal '{metal}'")
        return parsed

    def _parse_date(
        self,
        value: Any,
        row_number: int,
        reasons: list[str],
        ingested_at: datetime | None,
    ) -> datetime:
        fallback = ingested_at or datetime.now(timezone.utc)
        if self._is_blank(value):
            return fallback
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

        raw = str(value).strip()
        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

        reasons.append(f"Row {row_number}: invalid date")
        return fallback

    @classmethod
    def _sample_id(cls, record: Mapping[str, Any]) -> str:
        for column in SAMPLE_ID_COLUMNS:
            value = record.get(column)
            if not cls._is_blank(value):
                return str(value).strip()
        return str(uuid.uuid4())

    @classmethod
    def _parse_float(cls, value: Any) -> float | None:
        if cls._is_blank(value) or isinstance(value, bool):
            return None
        try:
            parsed = float(str(value).strip()) if not isinstance(value, (int, float)) else float(value)
        except ValueError:
            return None
        if not math.isfinite(parsed):
            return None
        return parsed

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
