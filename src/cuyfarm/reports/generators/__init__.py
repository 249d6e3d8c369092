"""Report generators keyed by export format."""

from cuyfarm.core.errors import ValidationError
from cuyfarm.reports.formats import ExportFormat
from cuyfarm.reports.generators.base import ReportGenerator
from cuyfarm.reports.generators.csv_generator import CsvGenerator
from cuyfarm.reports.generators.excel_generator import ExcelGenerator
from cuyfarm.reports.generators.pdf_generator import PdfGenerator

GENERATORS: dict[ExportFormat, ReportGenerator] = {
    ExportFormat.CSV: CsvGenerator(),
    ExportFormat.EXCEL: ExcelGenerator(),
    ExportFormat.PDF: PdfGenerator(),
}


def get_generator(fmt: str | ExportFormat) -> ReportGenerator:
    try:
        return GENERATORS[ExportFormat(fmt)]
    except ValueError as e:
        raise ValidationError(f"Unsupported export format: {fmt}", details={"field": "format"}) from e


__all__ = [
    "CsvGenerator",
    "ExcelGenerator",
    "GENERATORS",
    "PdfGenerator",
    "ReportGenerator",
    "get_generator",
]
