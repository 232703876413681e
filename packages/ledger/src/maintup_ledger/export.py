"""Report export: draw a report into a bitmap and wrap it in a one-page PDF.

The PDF is a plain image container whose page size equals the bitmap size,
with no text layer and no pagination.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from maintup_ledger.models import AnnualReport, MonthlyReport

logger = structlog.get_logger(__name__)

DEFAULT_SCALE = 2
BASE_WIDTH = 820
LINE_HEIGHT = 22
PADDING = 24

TEXT_COLOR = (31, 41, 55)
MUTED_COLOR = (107, 114, 128)
HEADER_FILL = (243, 244, 246)
NEGATIVE_COLOR = (185, 28, 28)


def format_money(value: float) -> str:
    return f"{value:,.2f} EUR".replace(",", " ")


def format_percent(value: float) -> str:
    return f"{value:.1f} %"


@dataclass
class _Table:
    title: str
    header: tuple[str, ...]
    rows: list[tuple[str, ...]] = field(default_factory=list)


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _render(
    title: str,
    summary: list[tuple[str, str]],
    tables: list[_Table],
    scale: int,
) -> Image.Image:
    width = BASE_WIDTH * scale
    line = LINE_HEIGHT * scale
    pad = PADDING * scale

    line_count = 2 + len(summary) + sum(3 + max(len(t.rows), 1) for t in tables)
    height = 2 * pad + line_count * line
    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)
    title_font = _font(20 * scale)
    body_font = _font(12 * scale)

    def right(text: str, x: float, y: float, fill: tuple[int, int, int] = TEXT_COLOR) -> None:
        draw.text((x - draw.textlength(text, font=body_font), y), text, fill=fill, font=body_font)

    y = pad
    draw.text((pad, y), title, fill=TEXT_COLOR, font=title_font)
    y += 2 * line

    for label, value in summary:
        draw.text((pad, y), label, fill=MUTED_COLOR, font=body_font)
        right(value, width - pad, y, NEGATIVE_COLOR if value.startswith("-") else TEXT_COLOR)
        y += line

    for table in tables:
        y += line
        draw.text((pad, y), table.title, fill=TEXT_COLOR, font=body_font)
        y += line

        col_width = (width - 2 * pad) / len(table.header)
        draw.rectangle((pad, y, width - pad, y + line), fill=HEADER_FILL)
        for index, cell in enumerate(table.header):
            if index == 0:
                draw.text((pad + 4 * scale, y + 3 * scale), cell, fill=MUTED_COLOR, font=body_font)
            else:
                right(cell, pad + (index + 1) * col_width - 4 * scale, y + 3 * scale, MUTED_COLOR)
        y += line

        if not table.rows:
            draw.text((pad + 4 * scale, y), "No entries", fill=MUTED_COLOR, font=body_font)
            y += line
        for row in table.rows:
            for index, cell in enumerate(row):
                if index == 0:
                    draw.text((pad + 4 * scale, y), cell, fill=TEXT_COLOR, font=body_font)
                else:
                    fill = NEGATIVE_COLOR if cell.startswith("-") else TEXT_COLOR
                    right(cell, pad + (index + 1) * col_width - 4 * scale, y, fill)
            y += line

    return image


def render_annual_report(report: AnnualReport, scale: int = DEFAULT_SCALE) -> Image.Image:
    summary = [
        ("Revenue (excl. tax)", format_money(report.total_revenue)),
        ("Costs", format_money(report.total_costs)),
        ("Profit", format_money(report.total_profit)),
        ("Average margin", format_percent(report.average_margin)),
    ]
    clients = _Table(
        title="Clients",
        header=("Client", "Revenue", "Costs", "Profit", "Margin", "Share"),
        rows=[
            (
                row.client_name,
                format_money(row.revenue),
                format_money(row.costs),
                format_money(row.profit),
                format_percent(row.margin),
                format_percent(row.revenue_share),
            )
            for row in report.clients_data
        ],
    )
    months = _Table(
        title="Monthly breakdown",
        header=("Month", "Revenue", "Costs", "Profit", "Margin"),
        rows=[
            (
                entry.month,
                format_money(entry.revenue),
                format_money(entry.costs),
                format_money(entry.profit),
                format_percent(entry.margin),
            )
            for entry in report.monthly_breakdown
        ],
    )
    return _render(f"Annual report {report.year}", summary, [clients, months], scale)


def render_monthly_report(report: MonthlyReport, scale: int = DEFAULT_SCALE) -> Image.Image:
    summary = [
        ("Revenue (excl. tax)", format_money(report.revenue)),
        ("Costs", format_money(report.costs)),
        ("Profit", format_money(report.profit)),
        ("Margin", format_percent(report.margin)),
    ]
    invoices = _Table(
        title="Invoices",
        header=("Number", "Client", "Status", "Amount"),
        rows=[
            (inv.number, inv.client_name, inv.status.value, format_money(inv.amount_ht))
            for inv in report.invoices
        ],
    )
    costs = _Table(
        title="Costs",
        header=("Description", "Client", "Category", "Amount"),
        rows=[
            (cost.description, cost.client_name, cost.category.value, format_money(cost.amount))
            for cost in report.costs_list
        ],
    )
    return _render(f"Monthly report {report.month}", summary, [invoices, costs], scale)


def image_to_pdf(image: Image.Image) -> bytes:
    """Wrap a bitmap in a single-page PDF sized exactly to the bitmap."""
    width, height = image.size
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(width, height), invariant=1)
    pdf.drawImage(ImageReader(image.convert("RGB")), 0, 0, width=width, height=height)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def _write(pdf_bytes: bytes, path: str | Path | None, kind: str) -> bytes:
    if path is not None:
        Path(path).write_bytes(pdf_bytes)
        logger.info("report_exported", kind=kind, path=str(path), size=len(pdf_bytes))
    return pdf_bytes


def export_annual_pdf(
    report: AnnualReport, path: str | Path | None = None, scale: int = DEFAULT_SCALE
) -> bytes:
    """Render an annual report to PDF bytes, also written to ``path`` when given."""
    return _write(image_to_pdf(render_annual_report(report, scale)), path, "annual")


def export_monthly_pdf(
    report: MonthlyReport, path: str | Path | None = None, scale: int = DEFAULT_SCALE
) -> bytes:
    return _write(image_to_pdf(render_monthly_report(report, scale)), path, "monthly")
