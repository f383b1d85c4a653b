"""
reportsonic/reports/export.py

Renders an analysed report into downloadable documents:
- PDF via reportlab (platypus flowables)
- Word via python-docx
- PowerPoint via python-pptx

Charts embedded in the documents are derived from the first three columns
of the raw table and rendered to PNG with matplotlib.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from xml.sax.saxutils import escape

from docx import Document
from docx.shared import Inches as DocxInches
from pptx import Presentation
from pptx.util import Inches, Pt
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image as RLImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from reportsonic.charts.generator import (
    decode_image,
    detect_data_type,
    generate_chart_config,
    render_chart_image,
)
from reportsonic.charts.transforms import is_missing, to_number
from reportsonic.reports.schemas import ExportAnalysis, ExportReport, ExportStatistic

logger = logging.getLogger(__name__)

EXPORT_CHART_COLUMNS = 3
DEFAULT_COMPANY_NAME = "ReportSonic"

FORMAT_ALIASES = {
    "pdf": "pdf",
    "word": "docx",
    "docx": "docx",
    "powerpoint": "pptx",
    "ppt": "pptx",
    "pptx": "pptx",
}

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}


@dataclass
class ExportChart:
    title: str
    chart_type: str
    insights: str
    image: bytes | None = None


@dataclass
class ExportOptions:
    title: str
    company_name: str = DEFAULT_COMPANY_NAME
    client_name: str = "Client"
    summary: str = "No analysis summary available"
    insights: list[str] = field(default_factory=list)
    trends: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    statistics: list[ExportStatistic] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    quality_issues: list[str] = field(default_factory=list)
    charts: list[ExportChart] = field(default_factory=list)

    @classmethod
    def from_report(cls, report: ExportReport, charts: list[ExportChart]) -> "ExportOptions":
        analysis = report.analysis or ExportAnalysis()
        return cls(
            title=report.name or "Report Analysis",
            client_name=report.clientName or "Client",
            summary=analysis.summary or "No analysis summary available",
            insights=list(analysis.insights or []),
            trends=list(analysis.trends or []),
            recommendations=list(analysis.recommendations or []),
            statistics=list(analysis.statistics or []),
            patterns=list(analysis.patterns or []),
            quality_issues=list(analysis.qualityIssues or []),
            charts=charts,
        )

    def sections(self) -> list[tuple[str, list[str]]]:
        return [
            (heading, items)
            for heading, items in (
                ("Key Insights", self.insights),
                ("Trends", self.trends),
                ("Patterns", self.patterns),
                ("Data Quality", self.quality_issues),
                ("Recommendations", self.recommendations),
            )
            if items
        ]


# ---------------------------------------------------
# Format Helpers
# ---------------------------------------------------
def normalize_format(export_format: str | None) -> str:
    """Maps a requested format to a file extension; unknown formats fall back to PDF."""
    return FORMAT_ALIASES.get((export_format or "pdf").lower(), "pdf")


def export_filename(report_name: str, extension: str) -> str:
    stem = re.sub(r"\.[^/.]+$", "", report_name or "report") or "report"
    return f"{stem}_ai_report.{extension}"


# ---------------------------------------------------
# Chart Preparation
# ---------------------------------------------------
def _chart_insights(header: str, chart_type: str, values: list[Any]) -> str:
    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    text = f"This {chart_type} chart visualizes the {header} data distribution. "
    if numbers:
        average = sum(numbers) / len(numbers)
        low, high = min(numbers), max(numbers)
        text += (
            f"The data shows {len(numbers)} numeric values with an average of {average:.2f}, "
            f"ranging from {low:g} to {high:g}. "
        )
        if high - low > average:
            text += "High variability suggests diverse data patterns that warrant further investigation. "
        else:
            text += "Consistent data patterns indicate stable trends in this metric. "
    elif values:
        unique = len({str(v) for v in values})
        text += f"The data contains {len(values)} text entries with {unique} unique categories. "
        if unique <= 5:
            text += "Limited categories suggest clear segmentation opportunities. "
        else:
            text += "High diversity in categories indicates complex data relationships. "
    text += "This visualization helps identify key trends, outliers, and patterns."
    return text


def build_export_charts(raw_data: list[list[Any]] | None, render: bool = True) -> list[ExportChart]:
    """
    Charts for the first three columns of `raw_data` (header row first).
    Rendering failures drop the image but keep the chart description.
    """
    if not raw_data or len(raw_data) < 2:
        return []

    headers = [str(h) for h in raw_data[0]]
    rows = [list(row) for row in raw_data[1:]]
    charts: list[ExportChart] = []

    for index, header in enumerate(headers[:EXPORT_CHART_COLUMNS]):
        values = [row[index] for row in rows if index < len(row) and not is_missing(row[index])]
        data_type = detect_data_type(values)
        if data_type == "numeric":
            chart_type = "line" if len(values) > 5 else "bar"
        else:
            chart_type = "pie"

        image: bytes | None = None
        if render and values:
            try:
                config = generate_chart_config(rows, headers, index, chart_type)
                image = decode_image(render_chart_image(config, width=6, height=4))
            except (ValueError, TypeError) as e:
                logger.warning(f"[EXPORT] Chart rendering failed for '{header}': {e}")

        charts.append(
            ExportChart(
                title=f"{header} Distribution Analysis",
                chart_type=chart_type,
                insights=_chart_insights(header, chart_type, values),
                image=image,
            )
        )
    return charts


def _statistics_rows(statistics: list[ExportStatistic]) -> list[list[str]]:
    rows = [["Column", "Average", "Min", "Max", "Std Dev"]]
    for stat in statistics:
        rows.append(
            [
                stat.column,
                f"{stat.average:.2f}",
                f"{stat.min:.2f}",
                f"{stat.max:.2f}",
                f"{stat.stdDev:.2f}",
            ]
        )
    return rows


def _generated_on() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


# ---------------------------------------------------
# PDF
# ---------------------------------------------------
def export_to_pdf(options: ExportOptions) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=options.title,
        author=options.company_name,
        leftMargin=0.8 * inch,
        rightMargin=0.8 * inch,
        topMargin=0.8 * inch,
        bottomMargin=0.8 * inch,
    )
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="ReportTitle",
            parent=styles["Title"],
            fontSize=22,
            textColor=HexColor("#1E40AF"),
            alignment=TA_CENTER,
            spaceAfter=12,
        )
    )
    styles.add(
        ParagraphStyle(
            name="ReportSubtitle",
            parent=styles["Normal"],
            fontSize=11,
            textColor=HexColor("#4a4a4a"),
            alignment=TA_CENTER,
            spaceAfter=18,
        )
    )

    story: list[Any] = [
        Paragraph(escape(options.title), styles["ReportTitle"]),
        Paragraph(
            escape(f"Prepared by {options.company_name} for {options.client_name} - {_generated_on()}"),
            styles["ReportSubtitle"],
        ),
        Paragraph("Executive Summary", styles["Heading2"]),
        Paragraph(escape(options.summary), styles["BodyText"]),
        Spacer(1, 12),
    ]

    for heading, items in options.sections():
        story.append(Paragraph(heading, styles["Heading2"]))
        for item in items:
            story.append(Paragraph(f"&bull; {escape(item)}", styles["BodyText"]))
        story.append(Spacer(1, 8))

    if options.statistics:
        story.append(Paragraph("Statistics", styles["Heading2"]))
        table = Table(_statistics_rows(options.statistics), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HexColor("#3B82F6")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                ]
            )
        )
        story += [table, Spacer(1, 12)]

    for chart in options.charts:
        story.append(Paragraph(escape(chart.title), styles["Heading3"]))
        if chart.image:
            story.append(RLImage(io.BytesIO(chart.image), width=6 * inch, height=4 * inch))
        story.append(Paragraph(escape(chart.insights), styles["BodyText"]))
        story.append(Spacer(1, 10))

    doc.build(story)
    return buffer.getvalue()


# ---------------------------------------------------
# Word
# ---------------------------------------------------
def export_to_word(options: ExportOptions) -> bytes:
    document = Document()
    document.add_heading(options.title, level=0)
    document.add_paragraph(
        f"Prepared by {options.company_name} for {options.client_name} - {_generated_on()}"
    )

    document.add_heading("Executive Summary", level=1)
    document.add_paragraph(options.summary)

    for heading, items in options.sections():
        document.add_heading(heading, level=1)
        for item in items:
            document.add_paragraph(item, style="List Bullet")

    if options.statistics:
        document.add_heading("Statistics", level=1)
        rows = _statistics_rows(options.statistics)
        table = document.add_table(rows=len(rows), cols=len(rows[0]))
        table.style = "Light Grid Accent 1"
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value

    for chart in options.charts:
        document.add_heading(chart.title, level=2)
        if chart.image:
            document.add_picture(io.BytesIO(chart.image), width=DocxInches(6))
        document.add_paragraph(chart.insights)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# ---------------------------------------------------
# PowerPoint
# ---------------------------------------------------
def _bullet_slide(prs: Any, title: str, items: list[str]) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[1])  # Title and Content
    slide.shapes.title.text = title
    body = slide.placeholders[1].text_frame
    body.clear()
    for index, item in enumerate(items):
        paragraph = body.paragraphs[0] if index == 0 else body.add_paragraph()
        paragraph.text = item
        paragraph.font.size = Pt(16)


def export_to_powerpoint(options: ExportOptions) -> bytes:
    prs = Presentation()
    prs.slide_width = Inches(13.333)
    prs.slide_height = Inches(7.5)

    title_slide = prs.slides.add_slide(prs.slide_layouts[0])
    title_slide.shapes.title.text = options.title
    title_slide.placeholders[1].text = (
        f"Prepared by {options.company_name} for {options.client_name}\n{_generated_on()}"
    )

    _bullet_slide(prs, "Executive Summary", [options.summary])
    for heading, items in options.sections():
        _bullet_slide(prs, heading, items[:8])

    for chart in options.charts:
        slide = prs.slides.add_slide(prs.slide_layouts[5])  # Title Only
        slide.shapes.title.text = chart.title
        if chart.image:
            slide.shapes.add_picture(io.BytesIO(chart.image), Inches(0.5), Inches(1.5), height=Inches(5))
        box = slide.shapes.add_textbox(Inches(8), Inches(1.5), Inches(4.8), Inches(5))
        box.text_frame.word_wrap = True
        box.text_frame.text = chart.insights
        for paragraph in box.text_frame.paragraphs:
            paragraph.font.size = Pt(14)

    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()


EXPORTERS = {
    "pdf": export_to_pdf,
    "docx": export_to_word,
    "pptx": export_to_powerpoint,
}


def render_export(options: ExportOptions, extension: str) -> bytes:
    exporter = EXPORTERS[extension]
    content = exporter(options)
    logger.info(f"[EXPORT] Generated {extension.upper()} '{options.title}' ({len(content)} bytes)")
    return content
