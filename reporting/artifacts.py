"""
reporting/artifacts.py

Renders a ReportDataset into downloadable bytes.

pdf   -> reportlab canvas, letter pages
excel -> openpyxl workbook (Summary, Distribution, Metals, Predictions sheets)

The predictions CSV export lives here as well so every tabular rendering of
a prediction shares the same column order and rounding.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from app.domain.geo import ensure_utc
from app.domain.samples import PredictionResult
from app.errors import ConfigurationError
from reporting.dataset import ReportDataset

PDF_CONTENT_TYPE = "application/pdf"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CSV_COLUMNS: tuple[str, ...] = (
    "id",
    "sampleId",
    "hmpiScore",
    "riskCategory",
    "latitude",
    "longitude",
    "date",
    "createdAt",
)

# Raw-data rows rendered into the PDF before it points to the Excel export.
_PDF_RAW_ROW_LIMIT = 200


@dataclass(frozen=True)
class RenderedArtifact:
    content: bytes
    content_type: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.content)


def prediction_row(prediction: PredictionResult) -> dict[str, Any]:
    return {
        "id": str(prediction.id),
        "sampleId": prediction.sample_id,
        "hmpiScore": round(prediction.hmpi_score, 2),
        "riskCategory": prediction.risk_category,
        "latitude": prediction.latitude,
        "longitude": prediction.longitude,
        "date": ensure_utc(prediction.sample_date).isoformat(),
        "createdAt": ensure_utc(prediction.created_at).isoformat(),
    }


def render_predictions_csv(predictions: Iterable[PredictionResult]) -> bytes:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(CSV_COLUMNS), lineterminator="\r\n")
    writer.writeheader()
    for prediction in predictions:
        writer.writerow(prediction_row(prediction))
    return buf.getvalue().encode("utf-8")


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def _fit_prefix(c: canvas.Canvas, word: str, max_width: float, size: float) -> int:
    cut = len(word)
    while cut > 1 and c.stringWidth(word[:cut], "Helvetica", size) > max_width:
        cut -= 1
    return cut


def wrap_text(c: canvas.Canvas, text: str, x: float, y: float, max_width: float, size=10, leading=12) -> float:
    c.setFont("Helvetica", size)
    words = (text or "").split()
    line = ""
    for w in words:
        test = (line + " " + w).strip()
        if c.stringWidth(test, "Helvetica", size) <= max_width:
            line = test
            continue
        if line:
            c.drawString(x, y, line)
            y -= leading
        # words wider than the column are hard-broken
        while len(w) > 1 and c.stringWidth(w, "Helvetica", size) > max_width:
            cut = _fit_prefix(c, w, max_width, size)
            c.drawString(x, y, w[:cut])
            y -= leading
            w = w[cut:]
        line = w
    if line:
        c.drawString(x, y, line)
        y -= leading
    return y


class _PdfWriter:
    """Cursor over a canvas that starts a new page when the bottom is reached."""

    def __init__(self, buf: io.BytesIO) -> None:
        self.c = canvas.Canvas(buf, pagesize=letter)
        self.width, self.height = letter
        self.margin = 0.75 * inch
        self.x = self.margin
        self.y = self.height - self.margin
        self.max_w = self.width - 2 * self.margin

    def ensure_space(self, needed: float) -> None:
        if self.y - needed < self.margin:
            self.c.showPage()
            self.y = self.height - self.margin

    def heading(self, text: str, size: int = 12) -> None:
        self.ensure_space(size + 10)
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(self.x, self.y, text)
        self.y -= size + 6

    def paragraph(self, text: str, size: int = 10) -> None:
        self.ensure_space(size + 4)
        self.y = wrap_text(self.c, text, self.x, self.y, self.max_w, size=size, leading=size + 2)

    def row(self, cells: list[str], widths: list[float], *, bold: bool = False, size: int = 8) -> None:
        self.ensure_space(size + 4)
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        offset = self.x
        for cell, width in zip(cells, widths):
            self.c.drawString(offset, self.y, cell)
            offset += width
        self.y -= size + 3

    def gap(self, amount: float = 8) -> None:
        self.y -= amount


def render_pdf(dataset: ReportDataset) -> bytes:
    buf = io.BytesIO()
    pdf = _PdfWriter(buf)
    summary = dataset.summary_payload()

    pdf.heading(dataset.title, size=18)
    pdf.paragraph(f"Generated (UTC): {dataset.generated_at.isoformat(timespec='seconds')}")
    if dataset.description:
        pdf.paragraph(dataset.description)
    date_range = summary["dateRange"]
    pdf.paragraph(f"Date range: {date_range['startDate'] or '-'} to {date_range['endDate'] or '-'}")
    if "location" in summary:
        loc = summary["location"]
        pdf.paragraph(f"Area: {loc['radius']:g} km around ({loc['centerLat']:.4f}, {loc['centerLng']:.4f})")
    pdf.gap()

    pdf.heading("Summary")
    pdf.paragraph(f"Total samples: {summary['totalSamples']}")
    pdf.paragraph(f"Average HMPI: {summary['averageHMPI']:.2f}")
    pdf.paragraph(
        f"Safe: {summary['safeCount']}  Caution: {summary['cautionCount']}  Unsafe: {summary['unsafeCount']}"
    )
    pdf.gap()

    if not dataset.predictions:
        pdf.paragraph("No samples matched the selected criteria.", size=11)
        pdf.c.save()
        return buf.getvalue()

    charts = dataset.charts_payload()
    if dataset.criteria.include_charts:
        pdf.heading("HMPI distribution")
        for entry in charts["hmpiHistogram"]:
            pdf.paragraph(f"{entry['range']}: {entry['count']}", size=9)
        pdf.gap()

        pdf.heading("Metal concentrations")
        widths = [1.8 * inch, 1.4 * inch, 1.4 * inch, 1.4 * inch]
        pdf.row(["Metal", "Average", "Min", "Max"], widths, bold=True)
        for entry in charts["metalConcentrations"]:
            pdf.row(
                [entry["metal"], f"{entry['average']:.4f}", f"{entry['min']:g}", f"{entry['max']:g}"],
                widths,
            )
        pdf.gap()

    if dataset.criteria.include_map:
        pdf.heading("Sample locations")
        widths = [2.2 * inch, 1.4 * inch, 1.4 * inch, 1.0 * inch]
        pdf.row(["Sample", "Latitude", "Longitude", "Risk"], widths, bold=True)
        for prediction in dataset.predictions[:_PDF_RAW_ROW_LIMIT]:
            pdf.row(
                [
                    prediction.sample_id[:36],
                    f"{prediction.latitude:.5f}",
                    f"{prediction.longitude:.5f}",
                    prediction.risk_category,
                ],
                widths,
            )
        pdf.gap()

    if dataset.criteria.include_raw_data:
        pdf.heading("Samples")
        widths = [2.2 * inch, 1.0 * inch, 1.0 * inch, 1.6 * inch]
        pdf.row(["Sample", "HMPI", "Risk", "Date"], widths, bold=True)
        for prediction in dataset.predictions[:_PDF_RAW_ROW_LIMIT]:
            pdf.row(
                [
                    prediction.sample_id[:36],
                    f"{prediction.hmpi_score:.2f}",
                    prediction.risk_category,
                    ensure_utc(prediction.sample_date).date().isoformat(),
                ],
                widths,
            )
        remaining = len(dataset.predictions) - _PDF_RAW_ROW_LIMIT
        if remaining > 0:
            pdf.paragraph(f"... {remaining} more samples; use the Excel or CSV export for the full list.", size=9)

    pdf.c.save()
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------


def _write_table(ws, headers: list[str], rows: Iterable[list[Any]]) -> None:
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(row)
    ws.freeze_panes = "A2"

    for idx, header in enumerate(headers, start=1):
        column = get_column_letter(idx)
        max_len = max(
            (len(str(cell.value)) for cell in ws[column] if cell.value is not None),
            default=len(header),
        )
        ws.column_dimensions[column].width = min(max(10, max_len + 2), 60)


def render_xlsx(dataset: ReportDataset) -> bytes:
    wb = Workbook()
    summary = dataset.summary_payload()

    ws_summary = wb.active
    ws_summary.title = "Summary"
    date_range = summary["dateRange"]
    summary_rows: list[list[Any]] = [
        ["Title", dataset.title],
        ["Description", dataset.description or ""],
        ["Generated (UTC)", dataset.generated_at.isoformat(timespec="seconds")],
        ["Start date", date_range["startDate"] or ""],
        ["End date", date_range["endDate"] or ""],
        ["Total samples", summary["totalSamples"]],
        ["Safe", summary["safeCount"]],
        ["Caution", summary["cautionCount"]],
        ["Unsafe", summary["unsafeCount"]],
        ["Average HMPI", summary["averageHMPI"]],
    ]
    if "location" in summary:
        loc = summary["location"]
        summary_rows.append(["Center latitude", loc["centerLat"]])
        summary_rows.append(["Center longitude", loc["centerLng"]])
        summary_rows.append(["Radius (km)", loc["radius"]])
    _write_table(ws_summary, ["Field", "Value"], summary_rows)

    charts = dataset.charts_payload()
    if dataset.criteria.include_charts:
        ws_dist = wb.create_sheet("Distribution")
        _write_table(
            ws_dist,
            ["Range", "Count"],
            ([entry["range"], entry["count"]] for entry in charts["hmpiHistogram"]),
        )
        ws_metals = wb.create_sheet("Metals")
        _write_table(
            ws_metals,
            ["Metal", "Average", "Min", "Max"],
            ([e["metal"], e["average"], e["min"], e["max"]] for e in charts["metalConcentrations"]),
        )

    if dataset.criteria.include_raw_data or dataset.criteria.include_map:
        metals = sorted({metal for p in dataset.predictions for metal in p.metal_concentrations})
        ws_rows = wb.create_sheet("Predictions")
        _write_table(
            ws_rows,
            list(CSV_COLUMNS) + metals,
            (
                list(prediction_row(p).values()) + [p.metal_concentrations.get(metal) for metal in metals]
                for p in dataset.predictions
            ),
        )

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


_RENDERERS = {
    "pdf": (render_pdf, PDF_CONTENT_TYPE, "pdf"),
    "excel": (render_xlsx, XLSX_CONTENT_TYPE, "xlsx"),
}


def extension_for(report_format: str) -> str:
    try:
        return _RENDERERS[report_format][2]
    except KeyError as exc:
        raise ConfigurationError(f"Unsupported report format '{report_format}'.") from exc


def render_artifact(report_format: str, dataset: ReportDataset) -> RenderedArtifact:
    try:
        renderer, content_type, extension = _RENDERERS[report_format]
    except KeyError as exc:
        raise ConfigurationError(f"Unsupported report format '{report_format}'.") from exc
    return RenderedArtifact(content=renderer(dataset), content_type=content_type, extension=extension)
