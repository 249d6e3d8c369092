"""Tests for the plain record operations: gastos and historial de salud."""

from __future__ import annotations

from cuyfarm.core.domain import today
from cuyfarm.ops import cuyes as cuy_ops
from cuyfarm.ops import gastos, salud
from cuyfarm.ops.requests import ListGastosRequest, ListSaludRequest


class TestGastos:
    def test_crud(self, ctx):
        gasto = gastos.create_gasto(ctx, {
            "descripcion": "Vacunas", "monto": 120.5, "fecha": "2025-05-03", "categoria": "Sanidad",
        }).data
        assert gasto["monto"] == 120.5

        updated = gastos.update_gasto(ctx, gasto["id"], {"monto": 100, "ignorado": "x"}).data
        assert updated["monto"] == 100

        assert gastos.delete_gasto(ctx, gasto["id"]).success
        assert gastos.get_gasto(ctx, gasto["id"]).error.code == "NOT_FOUND"

    def test_missing_amount(self, ctx):
        result = gastos.create_gasto(ctx, {"descripcion": "x", "fecha": "2025-05-03", "categoria": "Otros"})
        assert result.error.code == "VALIDATION_FAILED"

    def test_por_categoria_defaults_to_current_month(self, ctx):
        hoy = today().isoformat()
        for categoria, monto in (("Alimento", 50), ("Alimento", 30), ("Sanidad", 20)):
            gastos.create_gasto(ctx, {"descripcion": "d", "monto": monto, "fecha": hoy, "categoria": categoria})
        gastos.create_gasto(ctx, {"descripcion": "viejo", "monto": 999, "fecha": "2001-01-01", "categoria": "Otros"})

        result = gastos.gastos_por_categoria(ctx).data
        assert result["total"] == 100
        assert result["categorias"][0] == {"categoria": "Alimento", "total": 80.0, "cantidad": 2}

    def test_list_filters(self, ctx):
        gastos.create_gasto(ctx, {"descripcion": "a", "monto": 1, "fecha": "2025-01-10", "categoria": "Otros"})
        gastos.create_gasto(ctx, {"descripcion": "b", "monto": 1, "fecha": "2025-03-10", "categoria": "Otros"})
        page = gastos.list_gastos(ctx, ListGastosRequest(fecha_desde="2025-02-01", fecha_hasta="2025-04-01"))
        assert [g["descripcion"] for g in page.data] == ["b"]


class TestSalud:
    def test_record_for_animal(self, ctx, make_cuy):
        cuy = make_cuy()
        registro = salud.create_salud(ctx, {
            "cuy_id": cuy["id"], "fecha": "2025-05-01", "tipo": "Vacunación",
            "descripcion": "Triple", "veterinario": "Dra. Quispe",
        }).data
        assert registro["costo"] == 0
        page = salud.list_salud(ctx, ListSaludRequest(cuy_id=cuy["id"]))
        assert page.total == 1

    def test_unknown_animal_is_fk_error(self, ctx):
        result = salud.create_salud(ctx, {"cuy_id": 42, "fecha": "2025-05-01", "tipo": "Control", "descripcion": "x"})
        assert result.error.code == "FOREIGN_KEY"

    def test_records_go_with_the_animal(self, ctx, make_cuy):
        cuy = make_cuy()
        registro = salud.create_salud(ctx, {
            "cuy_id": cuy["id"], "fecha": "2025-05-01", "tipo": "Control", "descripcion": "x",
        }).data
        assert cuy_ops.delete_cuy(ctx, cuy["id"]).success
        assert salud.get_salud(ctx, registro["id"]).error.code == "NOT_FOUND"
