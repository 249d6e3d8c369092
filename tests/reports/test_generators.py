"""Tests for report data builders and the CSV/Excel/PDF generators."""

from __future__ import annotations

import csv
import io
from datetime import date

import pytest
from openpyxl import load_workbook

from cuyfarm.core.errors import ValidationError
from cuyfarm.ops import gastos as gasto_ops
from cuyfarm.ops import ventas as venta_ops
from cuyfarm.reports.data import ReportData, Section, build_report_data, resolve_period
from cuyfarm.reports.formats import ExportFormat, ReportTemplate
from cuyfarm.reports.generators import CsvGenerator, ExcelGenerator, PdfGenerator, get_generator

MAYO = {"date_range": {"from": "2025-05-01", "to": "2025-05-31"}}


@pytest.fixture()
def report() -> ReportData:
    return ReportData(
        template_id="financial",
        title="Reporte financiero",
        desde="2025-05-01",
        hasta="2025-05-31",
        summary={"total_ingresos": 80.0, "ventas": 1},
        sections=[
            Section("Ventas", ["ID", "Cliente", "Total"], [[1, "Año Nuevo", 80.0]]),
            Section("Gastos: mayo/junio", ["ID", "Monto"], []),
        ],
    )


class TestResolvePeriod:
    def test_default_is_last_30_days(self):
        assert resolve_period({}, hoy=date(2025, 5, 31)) == (date(2025, 5, 1), date(2025, 5, 31))

    def test_explicit_range(self):
        assert resolve_period(MAYO) == (date(2025, 5, 1), date(2025, 5, 31))

    @pytest.mark.parametrize(
        "rango",
        [{"from": "2025-13-01"}, {"from": "2025-06-01", "to": "2025-05-01"}],
    )
    def test_invalid(self, rango):
        with pytest.raises(ValidationError) as info:
            resolve_period({"date_range": rango})
        assert info.value.details["field"] == "date_range"


class TestBuildReportData:
    def test_unknown_template(self, conn):
        with pytest.raises(ValidationError) as info:
            build_report_data(conn, "weather")
        assert info.value.details["field"] == "template_id"

    @pytest.mark.parametrize("template", list(ReportTemplate))
    def test_every_template_builds_on_empty_farm(self, conn, template):
        data = build_report_data(conn, template.value, MAYO)
        assert data.template_id == template.value
        assert data.sections
        payload = data.to_dict()
        assert payload["period"] == {"from": "2025-05-01", "to": "2025-05-31"}

    def test_financial_summary(self, ctx, conn):
        cliente = venta_ops.create_cliente(ctx, {"nombre": "Mercado"}).data
        venta_ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "total": 80})
        venta_ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-07-10", "total": 999})
        gasto_ops.create_gasto(ctx, {"descripcion": "Alfalfa", "monto": 30, "fecha": "2025-05-03",
                                     "categoria": "Alimento"})

        data = build_report_data(conn, "financial", MAYO)
        assert data.summary["total_ingresos"] == 80.0
        assert data.summary["total_gastos"] == 30.0
        assert data.summary["ganancia_neta"] == 50.0
        assert data.summary["margen"] == 62.5
        ventas, _gastos, por_categoria, mensual = data.sections
        assert ventas.rows[0][2] == "Mercado"
        assert por_categoria.rows == [["Alimento", 1, 30.0]]
        assert mensual.rows == [["2025-05", 80.0, 30.0, 50.0]]


class TestCsv:
    def test_layout(self, report):
        content = CsvGenerator().generate(report)
        assert content.startswith(b"\xef\xbb\xbf")
        rows = list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))
        assert rows[0] == ["Reporte financiero"]
        assert rows[1] == ["Periodo", "2025-05-01", "2025-05-31"]
        assert rows[4] == ["Resumen"]
        assert rows[5] == ["Total ingresos", "80.00"]
        assert rows[6] == ["Ventas", "1"]
        assert ["1", "Año Nuevo", "80.00"] in rows

    def test_delimiter_option(self, report):
        text = CsvGenerator().generate(report, {"delimiter": ";"}).decode("utf-8-sig")
        assert "Periodo;2025-05-01;2025-05-31" in text

    def test_file_name(self, report):
        assert CsvGenerator().file_name(report) == "financial_2025-05-01_2025-05-31.csv"


@pytest.mark.slow
class TestBinaryFormats:
    def test_excel_sheets(self, report):
        content = ExcelGenerator().generate(report)
        assert content[:2] == b"PK"
        wb = load_workbook(io.BytesIO(content))
        assert wb.sheetnames == ["Resumen", "Ventas", "Gastos mayojunio"]
        resumen = wb["Resumen"]
        assert resumen["A1"].value == "Indicador"
        assert resumen["B2"].value == "Reporte financiero"
        assert wb["Ventas"]["B2"].value == "Año Nuevo"

    def test_pdf_magic(self, report):
        content = PdfGenerator().generate(report)
        assert content.startswith(b"%PDF")
        assert PdfGenerator().file_name(report).endswith(".pdf")


class TestRegistry:
    def test_lookup(self):
        assert isinstance(get_generator("excel"), ExcelGenerator)
        assert get_generator(ExportFormat.PDF).format is ExportFormat.PDF

    def test_unsupported(self):
        with pytest.raises(ValidationError) as info:
            get_generator("docx")
        assert info.value.details["field"] == "format"
