"""
PDF EXPORT
==========
Turns the grids into a clean, printable PDF.
- Light theme only (white background, black text)
- One table per class or per teacher
- A4 landscape, so nine periods fit
"""

from io import BytesIO
from typing import Dict, List, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from models import Coordinate, GridConfig, WeeklyGrid
from views import grid_rows, teacher_rows


def _light_theme_table_style() -> TableStyle:
    """Light theme: white/gray grid, black text."""
    return TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")),
        ("TEXTCOLOR", (0, 0), (-1, -1), colors.black),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 8),
        ("FONTSIZE", (0, 1), (-1, -1), 7),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cccccc")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#fafafa")]),
    ])


def _header(config: GridConfig) -> List[str]:
    return ["Day"] + [f"{p.number}\n{p.start}-{p.end}" if p.start else str(p.number) for p in config.periods]


def _build_pdf(titled_rows: List[Tuple[str, List[List[str]]]], config: GridConfig) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=1.2*cm, rightMargin=1.2*cm)
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"].clone("cell", fontSize=7, leading=8)
    usable = landscape(A4)[0] - 2.4*cm - 2*cm
    col_width = usable / max(1, config.num_periods)
    story = []

    for title, rows in titled_rows:
        body = [[row[0]] + [Paragraph(escape(text), cell_style) for text in row[1:]] for row in rows]
        t = Table([_header(config)] + body, colWidths=[2*cm] + [col_width] * config.num_periods)
        t.setStyle(_light_theme_table_style())
        story.append(Paragraph(f"<b>{escape(title)}</b>", styles["Heading2"]))
        story.append(Spacer(1, 0.3*cm))
        story.append(t)
        story.append(Spacer(1, 0.8*cm))

    if not story:
        story.append(Paragraph("No timetable to print.", styles["BodyText"]))
    doc.build(story)
    return buffer.getvalue()


def export_class_timetables_pdf(grids: Dict[str, WeeklyGrid], config: GridConfig) -> bytes:
    """Creates a PDF with one table per class."""
    return _build_pdf(
        [(f"Class: {class_id}", grid_rows(grids[class_id], config)) for class_id in sorted(grids)],
        config,
    )


def export_teacher_timetables_pdf(
    teacher_timetables: Dict[str, Dict[Coordinate, Tuple[str, str]]],
    config: GridConfig,
) -> bytes:
    """
    Creates a PDF with one table per teacher.
    teacher_timetables: teacher_id -> (day_idx, period_idx) -> (class_id, subject)
    """
    return _build_pdf(
        [(f"Teacher: {t}", teacher_rows(teacher_timetables[t], config)) for t in sorted(teacher_timetables)],
        config,
    )
