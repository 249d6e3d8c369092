"""Excel (.xlsx) report generator built on openpyxl.

One ``Resumen`` sheet followed by one sheet per section, each with a
styled header row and column widths fitted to the content.
"""

from __future__ import annotations

import io
import re
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from cuyfarm.reports.data import ReportData
from cuyfarm.reports.formats import ExportFormat
from cuyfarm.reports.generators.base import ReportGenerator, summary_label

_INVALID_SHEET_CHARS = re.compile(r"[\\/*?:\[\]]")


def _style_header(ws, row: int = 1) -> None:
    header_fill = PatternFill(fill_type="solid", fgColor="4472C4")
    header_font = Font(bold=True, color="FFFFFF")
    header_alignment = Alignment(horizontal="center", vertical="center")
    for cell in ws[row]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment


def _fit_columns(ws, max_width: int = 50) -> None:
    for idx, column in enumerate(ws.iter_cols(min_row=1, max_row=ws.max_row), start=1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=8)
        ws.column_dimensions[get_column_letter(idx)].width = min(max(longest + 2, 10), max_width)


def _sheet_title(title: str, used: set[str]) -> str:
    # Excel: max 31 chars, no []:*?/\ and unique per workbook
    base = _INVALID_SHEET_CHARS.sub("", title)[:31] or "Hoja"
    name, n = base, 2
    while name in used:
        suffix = f" ({n})"
        name = base[: 31 - len(suffix)] + suffix
        n += 1
    used.add(name)
    return name


class ExcelGenerator(ReportGenerator):
    format = ExportFormat.EXCEL

    def generate(self, report: ReportData, options: dict[str, Any] | None = None) -> bytes:
        wb = Workbook()
        used: set[str] = set()

        ws = wb.active
        ws.title = _sheet_title("Resumen", used)
        ws.append(["Indicador", "Valor"])
        _style_header(ws)
        ws.append(["Reporte", report.title])
        ws.append(["Desde", report.desde])
        ws.append(["Hasta", report.hasta])
        ws.append(["Generado", report.generated_at])
        for key, value in report.summary.items():
            ws.append([summary_label(key), value])
        for cell in ws["A"][1:]:
            cell.font = Font(bold=True)
        _fit_columns(ws)

        for section in report.sections:
            sheet = wb.create_sheet(_sheet_title(section.title, used))
            sheet.append(section.columns)
            _style_header(sheet)
            for row in section.rows:
                sheet.append(list(row))
            sheet.freeze_panes = "A2"
            _fit_columns(sheet)

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
