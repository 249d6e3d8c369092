"""Export formats, job states and report template ids."""

from __future__ import annotations

from enum import Enum


class ExportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_MIME_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.CSV: "text/csv",
}

_EXTENSIONS = {
    ExportFormat.PDF: ".pdf",
    ExportFormat.EXCEL: ".xlsx",
    ExportFormat.CSV: ".csv",
}


class ExportStatus(str, Enum):
    """Export job lifecycle.

    ``PENDING → PROCESSING → COMPLETED | FAILED``; a job stuck in
    ``PENDING``/``PROCESSING`` past the timeout becomes ``TIMEOUT``.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"


class ReportTemplate(str, Enum):
    FINANCIAL = "financial"
    INVENTORY = "inventory"
    REPRODUCTIVE = "reproductive"
    HEALTH = "health"


# Formats that browsers can display inline
PREVIEWABLE_MIME_TYPES = frozenset({"application/pdf", "text/csv", "text/plain"})
