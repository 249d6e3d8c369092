"""PDF report generator built on reportlab platypus."""

from __future__ import annotations

import io
from typing import Any

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from cuyfarm.reports.data import ReportData
from cuyfarm.reports.formats import ExportFormat
from cuyfarm.reports.generators.base import ReportGenerator, fmt_value, summary_label

_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), "#4472C4"),
    ("TEXTCOLOR", (0, 0), (-1, 0), "white"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("GRID", (0, 0), (-1, -1), 0.4, "#BBBBBB"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ("LEFTPADDING", (0, 0), (-1, -1), 4),
    ("RIGHTPADDING", (0, 0), (-1, -1), 4),
    ("TOPPADDING", (0, 0), (-1, -1), 2),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
]


def _section_title(text: str, styles) -> Paragraph:
    return Paragraph(f"<b>{text}</b>", styles["Heading3"])


def _table(rows: list[list[str]]) -> Table:
    table = Table(rows, repeatRows=1)
    style = list(_TABLE_STYLE)
    for i in range(1, len(rows)):
        if i % 2 == 0:
            style.append(("BACKGROUND", (0, i), (-1, i), "#F5F5F5"))
    table.setStyle(TableStyle(style))
    return table


class PdfGenerator(ReportGenerator):
    """Title, period, summary table, then one table per section.

    ``options["orientation"] == "landscape"`` switches the page size.
    """

    format = ExportFormat.PDF

    def generate(self, report: ReportData, options: dict[str, Any] | None = None) -> bytes:
        options = options or {}
        pagesize = landscape(A4) if options.get("orientation") == "landscape" else A4
        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=pagesize,
            leftMargin=1.5 * cm,
            rightMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            title=report.title,
        )
        styles = getSampleStyleSheet()

        story: list[Any] = [
            Paragraph(report.title, styles["Title"]),
            Paragraph(f"Periodo: {report.desde} a {report.hasta}", styles["Normal"]),
            Paragraph(f"Generado: {report.generated_at[:19].replace('T', ' ')}", styles["Normal"]),
            Spacer(1, 0.5 * cm),
        ]

        if report.summary:
            story.append(_section_title("Resumen", styles))
            rows = [["Indicador", "Valor"]]
            rows += [[summary_label(k), fmt_value(v)] for k, v in report.summary.items()]
            story.append(_table(rows))
            story.append(Spacer(1, 0.5 * cm))

        for section in report.sections:
            story.append(_section_title(section.title, styles))
            if section.rows:
                rows = [list(section.columns)] + [[fmt_value(v) for v in row] for row in section.rows]
                story.append(_table(rows))
            else:
                story.append(Paragraph("Sin registros en el periodo.", styles["Italic"]))
            story.append(Spacer(1, 0.4 * cm))

        doc.build(story)
        return buf.getvalue()


__all__ = ["PdfGenerator"]
