"""Tests for ``cuyfarm.ops.dashboard``."""

from __future__ import annotations

from datetime import date

from cuyfarm.core.domain import today
from cuyfarm.ops import dashboard, gastos, ventas
from cuyfarm.ops.dashboard import _mes


class TestMonthWindows:
    def test_current_month(self):
        assert _mes(date(2025, 2, 14), 0) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_crosses_year(self):
        assert _mes(date(2025, 1, 20), 2) == (date(2024, 11, 1), date(2024, 11, 30))


class TestMetrics:
    def test_empty_farm(self, ctx):
        data = dashboard.metrics(ctx).data
        assert data == {
            "total_cuyes": 0,
            "total_ventas": 0,
            "total_gastos": 0,
            "inventario_valor": 0,
            "rentabilidad": 0,
        }

    def test_profitability(self, ctx, make_cuy):
        hoy = today().isoformat()
        make_cuy(peso=1.0)
        make_cuy(peso=2.0)
        cliente = ventas.create_cliente(ctx, {"nombre": "C"}).data
        ventas.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": hoy, "total": 150})
        gastos.create_gasto(ctx, {"descripcion": "g", "monto": 100, "fecha": hoy, "categoria": "Otros"})

        data = dashboard.metrics(ctx, precio_kg=10).data
        assert data["total_cuyes"] == 2
        assert data["inventario_valor"] == 30.0
        assert data["rentabilidad"] == 50.0


class TestSeries:
    def test_ventas_stats_oldest_first(self, ctx, make_cuy):
        hoy = today().isoformat()
        cliente = ventas.create_cliente(ctx, {"nombre": "C"}).data
        cuy = make_cuy()
        ventas.create_venta(ctx, {
            "cliente_id": cliente["id"], "fecha": hoy,
            "detalles": [{"cuy_id": cuy["id"], "peso": 1.0, "precio_unitario": 30}],
        })
        series = dashboard.ventas_stats(ctx, months=3).data
        assert len(series) == 3
        assert series[-1] == {"mes": today().strftime("%Y-%m"), "monto": 30.0, "unidades": 1}
        assert series[0]["monto"] == 0

    def test_population_growth(self, ctx, make_cuy):
        make_cuy(fecha_nacimiento=today().isoformat())
        series = dashboard.population_growth(ctx, months=2).data
        assert series[-1]["nacimientos"] == 1
        assert series[-1]["total"] == 1

    def test_gastos_stats(self, ctx):
        gastos.create_gasto(ctx, {"descripcion": "g", "monto": 12.5, "fecha": today().isoformat(),
                                  "categoria": "Alimento"})
        assert dashboard.gastos_stats(ctx).data == [{"name": "Alimento", "valor": 12.5}]

    def test_productividad_lists_every_shed(self, ctx, make_cuy):
        make_cuy(galpon="A", fecha_nacimiento=today().isoformat())
        make_cuy(galpon="B")
        rows = {r["galpon"]: r for r in dashboard.productividad(ctx).data}
        assert rows["A"]["nacimientos"] == 1
        assert rows["B"] == {"galpon": "B", "nacimientos": 0, "camadas": 0}
