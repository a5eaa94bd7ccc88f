"""CSV and PDF exports of ranked booking tables."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from fpdf import FPDF

from config import APP_TITLE
from formatters import (
    format_change,
    format_currency,
    format_number,
    format_percentage,
    format_point_change,
)

CELL_FORMATTERS = {
    "text": lambda value: "" if value is None else str(value),
    "currency": format_currency,
    "count": format_number,
    "rate": format_percentage,
    "change": format_change,
    "points": format_point_change,
}

BASE_COLUMNS = [
    ("City", "City", "text"),
    ("RevenueEUR", "Revenue", "currency"),
    ("Bookings", "Bookings", "count"),
    ("CommissionEUR", "Commission", "currency"),
    ("Nights", "Nights", "count"),
    ("CancellationRate", "Cancellation rate", "rate"),
]
CHANGE_EXPORT_COLUMNS = [
    ("RevenueChange", "Revenue ±%", "change"),
    ("BookingsChange", "Bookings ±%", "change"),
    ("CommissionChange", "Commission ±%", "change"),
    ("NightsChange", "Nights ±%", "change"),
    ("CancellationRateChange", "Cancellation rate ±pp", "points"),
]


@dataclass(frozen=True)
class ExportCell:
    value: object
    kind: str = "text"

    @property
    def is_missing(self) -> bool:
        return self.value is None or bool(pd.isna(self.value))

    def formatted(self) -> str:
        if self.is_missing:
            return CELL_FORMATTERS[self.kind](None)
        return CELL_FORMATTERS[self.kind](self.value)

    def raw(self) -> object:
        return None if self.is_missing else self.value


@dataclass(frozen=True)
class ExportTable:
    """Ordered rows of typed cells handed to the document writers."""

    title: str
    headers: tuple[str, ...]
    rows: tuple[tuple[ExportCell, ...], ...]

    @property
    def has_changes(self) -> bool:
        return len(self.headers) > len(BASE_COLUMNS) + 1

    def to_frame(self, formatted: bool = False) -> pd.DataFrame:
        records = [[cell.formatted() if formatted else cell.raw() for cell in row] for row in self.rows]
        return pd.DataFrame(records, columns=list(self.headers))


def build_export_table(
    stats: pd.DataFrame,
    title: str,
    entity_label: str,
    include_changes: bool = False,
) -> ExportTable:
    """Turn ranked (optionally compared) stats into an export table."""
    columns = list(BASE_COLUMNS)
    if include_changes:
        columns += CHANGE_EXPORT_COLUMNS

    rows: list[tuple[ExportCell, ...]] = []
    for name, record in stats.iterrows():
        cells = [ExportCell(str(name), "text")]
        for source, _, kind in columns:
            if source == "City" and "City" not in stats.columns:
                value = str(name) if stats.index.name == "City" else ""
            else:
                value = record.get(source)
            cells.append(ExportCell(value, kind))
        rows.append(tuple(cells))

    headers = (entity_label,) + tuple(header for _, header, _ in columns)
    return ExportTable(title=title, headers=headers, rows=tuple(rows))


def export_csv(table: ExportTable) -> bytes:
    """Semicolon CSV with decimal commas, readable by German spreadsheet tools."""
    frame = table.to_frame(formatted=False)
    return frame.to_csv(index=False, sep=";", decimal=",").encode("utf-8-sig")


def export_bookings_csv(bookings: pd.DataFrame) -> bytes:
    return bookings.to_csv(index=False, sep=";", decimal=",", date_format="%Y-%m-%d").encode("utf-8-sig")


def pdf_sanitize(text: object) -> str:
    """Core PDF fonts only cover latin-1."""
    return str(text).replace("€", "EUR").encode("latin-1", "replace").decode("latin-1")


class BookingReportPDF(FPDF):
    def header(self):
        self.set_font("Helvetica", "B", 12)
        self.set_text_color(30, 55, 153)
        self.cell(0, 8, pdf_sanitize(f"{APP_TITLE} booking report"), align="C")
        self.ln(10)

    def footer(self):
        self.set_y(-14)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(120)
        self.cell(0, 10, f"Page {self.page_no()}", align="C")


def _column_widths(table: ExportTable, usable_width: float) -> list[float]:
    first = 55.0 if table.has_changes else 60.0
    rest = (usable_width - first) / max(len(table.headers) - 1, 1)
    return [first] + [rest] * (len(table.headers) - 1)


def export_pdf(table: ExportTable, subtitle: str = "", generated_on: Optional[datetime.date] = None) -> bytes:
    """Render the formatted table into a PDF document."""
    generated_on = generated_on or datetime.date.today()
    orientation = "L" if table.has_changes else "P"
    pdf = BookingReportPDF(orientation=orientation, unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=16)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 16)
    pdf.set_text_color(0)
    pdf.cell(0, 10, pdf_sanitize(table.title))
    pdf.ln(10)
    pdf.set_font("Helvetica", "I", 9)
    pdf.set_text_color(90)
    caption = f"Created on {generated_on.strftime('%d.%m.%Y')}"
    if subtitle:
        caption = f"{caption} | {subtitle}"
    pdf.cell(0, 6, pdf_sanitize(caption))
    pdf.ln(9)

    widths = _column_widths(table, pdf.w - pdf.l_margin - pdf.r_margin)
    font_size = 7 if table.has_changes else 8

    pdf.set_font("Helvetica", "B", font_size)
    pdf.set_text_color(255)
    pdf.set_fill_color(44, 62, 80)
    for width, header in zip(widths, table.headers):
        pdf.cell(width, 7, pdf_sanitize(header), border=1, align="C", fill=True)
    pdf.ln(7)

    pdf.set_font("Helvetica", "", font_size)
    pdf.set_text_color(0)
    if not table.rows:
        pdf.cell(sum(widths), 7, "No bookings in the selected period.", border=1)
        pdf.ln(7)
    alt = False
    for row in table.rows:
        pdf.set_fill_color(240, 240, 240) if alt else pdf.set_fill_color(255, 255, 255)
        for idx, (width, cell) in enumerate(zip(widths, row)):
            text = pdf_sanitize(cell.formatted())
            limit = 34 if idx == 0 else 18
            align = "L" if cell.kind == "text" else "R"
            pdf.cell(width, 6, text[:limit], border=1, align=align, fill=alt)
        pdf.ln(6)
        alt = not alt

    return bytes(pdf.output())


def export_filename(entity_label: str, extension: str) -> str:
    slug = "-".join(entity_label.lower().split())
    return f"top-{slug}.{extension}"
