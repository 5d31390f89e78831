"""
tests/test_artifacts.py

Report dataset shaping and PDF / Excel / CSV rendering.
"""

from __future__ import annotations

import csv
import io
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from openpyxl import load_workbook
from reportlab.pdfgen import canvas

from app.domain.samples import PredictionResult
from app.errors import ConfigurationError, NotFound
from hmpi.aggregator import summarize
from hmpi.scoring import classify_risk
from reporting.artifacts import (
    CSV_COLUMNS,
    PDF_CONTENT_TYPE,
    XLSX_CONTENT_TYPE,
    extension_for,
    render_artifact,
    render_predictions_csv,
    wrap_text,
)
from reporting.dataset import LocationFilter, ReportCriteria, ReportDataset

BASE = datetime(2024, 2, 1, tzinfo=timezone.utc)


def _prediction(score: float, *, days: int = 0, lat: float = 10.0, lng: float = 20.0) -> PredictionResult:
    return PredictionResult(
        id=uuid.uuid4(),
        sample_id=f"S-{score}",
        hmpi_score=score,
        risk_category=classify_risk(score),
        metal_concentrations={"lead": score / 2, "zinc": score / 4},
        latitude=lat,
        longitude=lng,
        sample_date=BASE + timedelta(days=days),
        created_at=BASE,
    )


def _dataset(predictions: list[PredictionResult], **config) -> ReportDataset:
    return ReportDataset(
        title="Quarterly groundwater",
        description="Wells in the northern district",
        criteria=ReportCriteria.from_config(config),
        predictions=predictions,
        summary=summarize(predictions),
    )


class TestReportCriteria:
    def test_reads_nested_config(self) -> None:
        pid = uuid.uuid4()
        criteria = ReportCriteria.from_config(
            {
                "dateRange": {"startDate": "2024-01-01T00:00:00Z", "endDate": "2024-02-01"},
                "location": {"latitude": 1, "longitude": 2, "radius": 5},
                "predictionIds": [str(pid)],
                "includeMap": False,
            }
        )

        assert criteria.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert criteria.end_date == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert criteria.location == LocationFilter(1.0, 2.0, 5.0)
        assert criteria.prediction_ids == (pid,)
        assert criteria.include_map is False
        assert criteria.include_charts is True

    def test_reversed_range(self) -> None:
        with pytest.raises(ConfigurationError):
            ReportCriteria.from_config({"dateRange": {"startDate": "2024-03-01", "endDate": "2024-01-01"}})

    def test_unparseable_date(self) -> None:
        with pytest.raises(ConfigurationError):
            ReportCriteria.from_config({"dateRange": {"startDate": "yesterday"}})

    def test_malformed_prediction_id(self) -> None:
        with pytest.raises(NotFound):
            ReportCriteria.from_config({"predictionIds": ["not-a-uuid"]})


class TestLocationFilter:
    def test_radius_in_kilometres(self) -> None:
        center = LocationFilter(0.0, 0.0, 120.0)

        # One degree of latitude is roughly 111 km.
        assert center.contains(_prediction(1.0, lat=1.0, lng=0.0))
        assert not center.contains(_prediction(1.0, lat=2.0, lng=0.0))


class TestReportDataset:
    def test_summary_payload(self) -> None:
        dataset = _dataset(
            [_prediction(10.0, days=3), _prediction(80.0, days=1), _prediction(150.0, days=2)],
            location={"latitude": 10.0, "longitude": 20.0, "radius": 50},
        )

        summary = dataset.summary_payload()

        assert summary["totalSamples"] == 3
        assert (summary["safeCount"], summary["cautionCount"], summary["unsafeCount"]) == (1, 1, 1)
        assert summary["averageHMPI"] == 80.0
        assert summary["dateRange"] == {
            "startDate": (BASE + timedelta(days=1)).isoformat(),
            "endDate": (BASE + timedelta(days=3)).isoformat(),
        }
        assert summary["location"] == {"centerLat": 10.0, "centerLng": 20.0, "radius": 50.0}

    def test_empty_dataset_has_open_range(self) -> None:
        summary = _dataset([]).summary_payload()

        assert summary["totalSamples"] == 0
        assert summary["dateRange"] == {"startDate": None, "endDate": None}
        assert "location" not in summary

    def test_chart_series_are_date_ordered(self) -> None:
        dataset = _dataset([_prediction(12.3456, days=2), _prediction(99.999, days=0)])

        charts = dataset.charts_payload()

        assert [point["hmpiScore"] for point in charts["timeSeriesData"]] == [100.0, 12.35]
        assert [entry["category"] for entry in charts["hmpiDistribution"]] == ["safe", "caution", "unsafe"]
        assert {entry["metal"] for entry in charts["metalConcentrations"]} == {"lead", "zinc"}
        assert charts["locationData"][0] == {"lat": 10.0, "lng": 20.0, "hmpiScore": 100.0, "category": "caution"}
        assert sum(entry["count"] for entry in charts["hmpiHistogram"]) == 2


class TestRenderers:
    def test_pdf(self) -> None:
        predictions = [_prediction(float(score), days=score % 30) for score in range(0, 300, 7)]

        artifact = render_artifact("pdf", _dataset(predictions))

        assert artifact.content.startswith(b"%PDF")
        assert artifact.content_type == PDF_CONTENT_TYPE
        assert artifact.extension == "pdf"
        assert artifact.size == len(artifact.content)

    def test_pdf_without_predictions(self) -> None:
        artifact = render_artifact("pdf", _dataset([], includeCharts=False, includeRawData=False))

        assert artifact.content.startswith(b"%PDF")

    def test_wrap_text_hard_breaks_wide_words_without_blank_lines(self) -> None:
        c = canvas.Canvas(io.BytesIO())
        drawn: list[tuple[float, str]] = []
        c.drawString = lambda x, y, text: drawn.append((y, text))
        column = c.stringWidth("W" * 10, "Helvetica", 10)

        y = wrap_text(c, "W" * 25 + " tail", 50, 700, column, size=10, leading=12)

        assert drawn == [(700, "W" * 10), (688, "W" * 10), (676, "WWWWW tail")]
        assert y == 664

    def test_excel_workbook(self) -> None:
        predictions = [_prediction(10.0), _prediction(120.0, days=1)]

        artifact = render_artifact("excel", _dataset(predictions))

        assert artifact.content_type == XLSX_CONTENT_TYPE
        workbook = load_workbook(io.BytesIO(artifact.content))
        assert workbook.sheetnames == ["Summary", "Distribution", "Metals", "Predictions"]
        rows = list(workbook["Predictions"].iter_rows(values_only=True))
        assert list(rows[0]) == list(CSV_COLUMNS) + ["lead", "zinc"]
        assert len(rows) == 3

    def test_excel_without_optional_sheets(self) -> None:
        artifact = render_artifact(
            "excel",
            _dataset([_prediction(1.0)], includeCharts=False, includeMap=False, includeRawData=False),
        )

        assert load_workbook(io.BytesIO(artifact.content)).sheetnames == ["Summary"]

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigurationError):
            render_artifact("docx", _dataset([]))
        with pytest.raises(ConfigurationError):
            extension_for("docx")

    def test_csv_export(self) -> None:
        first, second = _prediction(12.3456), _prediction(150.0, days=1)

        content = render_predictions_csv([first, second])

        assert b"\r\n" in content
        rows = list(csv.DictReader(io.StringIO(content.decode("utf-8"))))
        assert [row["id"] for row in rows] == [str(first.id), str(second.id)]
        assert rows[0]["hmpiScore"] == "12.35"
        assert rows[1]["riskCategory"] == "unsafe"
        assert rows[0]["date"] == BASE.isoformat()

    def test_csv_export_of_nothing_is_header_only(self) -> None:
        assert render_predictions_csv([]).decode("utf-8") == ",".join(CSV_COLUMNS) + "\r\n"
