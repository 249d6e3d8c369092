"""Generator interface shared by the CSV, Excel and PDF renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from cuyfarm.reports.data import ReportData
from cuyfarm.reports.formats import ExportFormat


def fmt_value(value: Any) -> str:
    """Render a cell value as text; ``None`` becomes blank."""
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def summary_label(key: str) -> str:
    return key.replace("_", " ").capitalize()


class ReportGenerator(ABC):
    """Turns :class:`ReportData` into file bytes for one format."""

    format: ExportFormat

    @abstractmethod
    def generate(self, report: ReportData, options: dict[str, Any] | None = None) -> bytes:
        ...

    def file_name(self, report: ReportData) -> str:
        return f"{report.template_id}_{report.desde}_{report.hasta}{self.format.extension}"
