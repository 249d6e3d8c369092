"""CSV report generator.

Layout: a title block, the summary as ``key,value`` rows, then one block
per section (title row, header row, data rows) separated by blank lines.
"""

from __future__ import annotations

import csv
import io
from typing import Any

from cuyfarm.reports.data import ReportData
from cuyfarm.reports.formats import ExportFormat
from cuyfarm.reports.generators.base import ReportGenerator, fmt_value, summary_label


class CsvGenerator(ReportGenerator):
    format = ExportFormat.CSV

    def generate(self, report: ReportData, options: dict[str, Any] | None = None) -> bytes:
        options = options or {}
        buf = io.StringIO()
        writer = csv.writer(buf, delimiter=options.get("delimiter", ","), lineterminator="\n")

        writer.writerow([report.title])
        writer.writerow(["Periodo", report.desde, report.hasta])
        writer.writerow(["Generado", report.generated_at])
        writer.writerow([])

        if report.summary:
            writer.writerow(["Resumen"])
            for key, value in report.summary.items():
                writer.writerow([summary_label(key), fmt_value(value)])
            writer.writerow([])

        for section in report.sections:
            writer.writerow([section.title])
            writer.writerow(section.columns)
            for row in section.rows:
                writer.writerow([fmt_value(v) for v in row])
            writer.writerow([])

        # BOM so spreadsheet apps detect UTF-8
        return buf.getvalue().encode("utf-8-sig")
