"""
reporting/dataset.py

Selects the predictions a report covers and shapes them into the summary and
chart series used by the preview endpoint and the rendered artifacts.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from app.domain.geo import ensure_utc, haversine_km
from app.domain.samples import PredictionResult, RiskCategory
from app.errors import ConfigurationError, NotFound
from db.repositories.prediction_repository import PredictionRepository
from hmpi.aggregator import AggregateSummary, summarize


def _parse_timestamp(name: str, value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError as exc:
        raise ConfigurationError(f"Report '{name}' is not a valid date.", context={"value": value}) from exc


@dataclass(frozen=True)
class LocationFilter:
    latitude: float
    longitude: float
    radius_km: float

    def contains(self, prediction: PredictionResult) -> bool:
        distance = haversine_km(self.latitude, self.longitude, prediction.latitude, prediction.longitude)
        return distance <= self.radius_km


@dataclass(frozen=True)
class ReportCriteria:
    """
    Selection and rendering options read from a stored report config.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    location: LocationFilter | None = None
    prediction_ids: tuple[uuid.UUID, ...] = ()
    include_charts: bool = True
    include_map: bool = True
    include_raw_data: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ReportCriteria":
        date_range = config.get("dateRange") or {}
        start = _parse_timestamp("startDate", date_range.get("startDate"))
        end = _parse_timestamp("endDate", date_range.get("endDate"))
        if start and end and start > end:
            raise ConfigurationError("Report startDate must not be after endDate.")

        location = None
        raw_location = config.get("location")
        if raw_location:
            location = LocationFilter(
                latitude=float(raw_location["latitude"]),
                longitude=float(raw_location["longitude"]),
                radius_km=float(raw_location["radius"]),
            )

        ids: list[uuid.UUID] = []
        for raw_id in config.get("predictionIds") or ():
            try:
                ids.append(uuid.UUID(str(raw_id)))
            except ValueError as exc:
                raise NotFound("Prediction not found.", context={"id": str(raw_id)}) from exc

        return cls(
            start_date=start,
            end_date=end,
            location=location,
            prediction_ids=tuple(ids),
            include_charts=bool(config.get("includeCharts", True)),
            include_map=bool(config.get("includeMap", True)),
            include_raw_data=bool(config.get("includeRawData", True)),
        )


def require_owned_predictions(
    repository: PredictionRepository,
    owner_id: str,
    prediction_ids: Sequence[uuid.UUID],
) -> list[PredictionResult]:
    """
    Resolve every id to an owned prediction, preserving the requested order.
    Raises NotFound naming the first id that does not resolve.
    """

    found = {row.id: row.to_result() for row in repository.get_many_for_owner(prediction_ids, owner_id)}
    missing = [str(pid) for pid in prediction_ids if pid not in found]
    if missing:
        raise NotFound("Prediction not found.", context={"id": missing[0], "missing": missing})
    return [found[pid] for pid in dict.fromkeys(prediction_ids)]


def select_predictions(
    repository: PredictionRepository,
    owner_id: str,
    criteria: ReportCriteria,
) -> list[PredictionResult]:
    if criteria.prediction_ids:
        return require_owned_predictions(repository, owner_id, criteria.prediction_ids)

    rows = repository.list_for_owner(
        owner_id,
        sample_date_from=criteria.start_date,
        sample_date_to=criteria.end_date,
    )
    results = [row.to_result() for row in rows]
    if criteria.location is not None:
        results = [result for result in results if criteria.location.contains(result)]
    return results


def _iso(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value is not None else None


@dataclass(frozen=True)
class ReportDataset:
    """
    Everything a rendered report needs, computed once per assembly.
    """

    title: str
    description: str | None
    criteria: ReportCriteria
    predictions: list[PredictionResult]
    summary: AggregateSummary
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def date_range(self) -> tuple[datetime | None, datetime | None]:
        if self.criteria.start_date or self.criteria.end_date:
            return self.criteria.start_date, self.criteria.end_date
        if not self.predictions:
            return None, None
        dates = [ensure_utc(p.sample_date) for p in self.predictions]
        return min(dates), max(dates)

    def summary_payload(self) -> dict[str, Any]:
        counts = self.summary.category_counts
        start, end = self.date_range
        payload: dict[str, Any] = {
            "totalSamples": self.summary.total,
            "safeCount": counts.get(RiskCategory.SAFE, 0),
            "cautionCount": counts.get(RiskCategory.CAUTION, 0),
            "unsafeCount": counts.get(RiskCategory.UNSAFE, 0),
            "averageHMPI": round(self.summary.average_hmpi, 2),
            "dateRange": {"startDate": _iso(start), "endDate": _iso(end)},
        }
        if self.criteria.location is not None:
            payload["location"] = {
                "centerLat": self.criteria.location.latitude,
                "centerLng": self.criteria.location.longitude,
                "radius": self.criteria.location.radius_km,
            }
        return payload

    def charts_payload(self) -> dict[str, list[dict[str, Any]]]:
        percentages = self.summary.category_percentages
        ordered = sorted(self.predictions, key=lambda p: (ensure_utc(p.sample_date), str(p.id)))
        return {
            "hmpiDistribution": [
                {
                    "category": category,
                    "count": self.summary.category_counts.get(category, 0),
                    "percentage": percentages.get(category, 0.0),
                }
                for category in RiskCategory.ALL
            ],
            "hmpiHistogram": [
                {"range": bin_.label, "count": bin_.count} for bin_ in self.summary.histogram
            ],
            "metalConcentrations": [
                {
                    "metal": metal,
                    "average": round(stats.average, 4),
                    "max": stats.maximum,
                    "min": stats.minimum,
                }
                for metal, stats in self.summary.metal_statistics.items()
            ],
            "timeSeriesData": [
                {
                    "date": _iso(p.sample_date),
                    "hmpiScore": round(p.hmpi_score, 2),
                    "category": p.risk_category,
                }
                for p in ordered
            ],
            "locationData": [
                {
                    "lat": p.latitude,
                    "lng": p.longitude,
                    "hmpiScore": round(p.hmpi_score, 2),
                    "category": p.risk_category,
                }
                for p in ordered
            ],
        }


def build_dataset(
    repository: PredictionRepository,
    owner_id: str,
    *,
    title: str,
    description: str | None,
    config: Mapping[str, Any],
) -> ReportDataset:
    criteria = ReportCriteria.from_config(config)
    predictions = select_predictions(repository, owner_id, criteria)
    return ReportDataset(
        title=title,
        description=description,
        criteria=criteria,
        predictions=predictions,
        summary=summarize(predictions),
    )
