"""
Report exports.

Data builders (``data``) turn database rows into template-independent
report content, generators render it as CSV, Excel or PDF, ``storage``
keeps the files on disk and ``downloads`` serves them back with range
support and signed URLs.
"""

from cuyfarm.reports.data import BUILDERS, ReportData, Section, build_report_data
from cuyfarm.reports.formats import ExportFormat, ExportStatus, ReportTemplate
from cuyfarm.reports.storage import FileStorage, StoredFile

__all__ = [
    "BUILDERS",
    "ExportFormat",
    "ExportStatus",
    "FileStorage",
    "ReportData",
    "ReportTemplate",
    "Section",
    "StoredFile",
    "build_report_data",
]
