"""Tests for ``cuyfarm.ops.ventas``."""

from __future__ import annotations

import pytest

from cuyfarm.ops import cuyes as cuy_ops
from cuyfarm.ops import ventas as ops
from cuyfarm.ops.requests import ListVentasRequest


@pytest.fixture()
def cliente(ctx):
    return ops.create_cliente(ctx, {"nombre": "Restaurante El Cuy", "telefono": "999"}).data


class TestVentas:
    def test_lines_mark_animals_sold(self, ctx, cliente, make_cuy):
        a, b = make_cuy(sexo="M"), make_cuy(sexo="M")
        result = ops.create_venta(ctx, {
            "cliente_id": cliente["id"],
            "fecha": "2025-05-10",
            "detalles": [
                {"cuy_id": a["id"], "peso": 1.2, "precio_unitario": 20},
                {"cuy_id": b["id"], "peso": 1.0, "precio_unitario": 25},
            ],
        })
        assert result.success, result.error
        assert result.data["total"] == 49.0
        assert result.data["estado_pago"] == "Pendiente"
        assert len(result.data["detalles"]) == 2
        for cuy in (a, b):
            vendido = cuy_ops.get_cuy(ctx, cuy["id"]).data
            assert vendido["estado"] == "Vendido"
            assert vendido["fecha_venta"] == "2025-05-10"

    def test_explicit_total_is_kept(self, ctx, cliente):
        result = ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "total": 80})
        assert result.data["total"] == 80

    def test_unknown_client_is_fk_error(self, ctx):
        result = ops.create_venta(ctx, {"cliente_id": 404, "fecha": "2025-05-10", "total": 10})
        assert result.error.code == "FOREIGN_KEY"

    def test_selling_twice_rolls_back(self, ctx, cliente, make_cuy):
        cuy = make_cuy()
        line = [{"cuy_id": cuy["id"], "peso": 1.0, "precio_unitario": 20}]
        assert ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "detalles": line}).success

        again = ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-11", "detalles": line})
        assert again.error.code == "VALIDATION_FAILED"
        assert ops.list_ventas(ctx, ListVentasRequest()).total == 1

    def test_unknown_animal(self, ctx, cliente):
        line = [{"cuy_id": 123, "peso": 1.0, "precio_unitario": 20}]
        result = ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "detalles": line})
        assert result.error.code == "NOT_FOUND"

    def test_replacing_lines_releases_animals(self, ctx, cliente, make_cuy):
        a, b = make_cuy(), make_cuy()
        venta = ops.create_venta(ctx, {
            "cliente_id": cliente["id"], "fecha": "2025-05-10",
            "detalles": [{"cuy_id": a["id"], "peso": 1.0, "precio_unitario": 20}],
        }).data
        updated = ops.update_venta(ctx, venta["id"], {
            "detalles": [{"cuy_id": b["id"], "peso": 2.0, "precio_unitario": 15}],
        }).data
        assert updated["total"] == 30.0
        assert cuy_ops.get_cuy(ctx, a["id"]).data["estado"] == "Activo"
        assert cuy_ops.get_cuy(ctx, b["id"]).data["estado"] == "Vendido"

    def test_delete_releases_animals(self, ctx, cliente, make_cuy):
        a = make_cuy()
        venta = ops.create_venta(ctx, {
            "cliente_id": cliente["id"], "fecha": "2025-05-10",
            "detalles": [{"cuy_id": a["id"], "peso": 1.0, "precio_unitario": 20}],
        }).data
        result = ops.delete_venta(ctx, venta["id"])
        assert result.data == {"id": venta["id"], "deleted": True, "cuyes_liberados": 1}

        cuy = cuy_ops.get_cuy(ctx, a["id"]).data
        assert cuy["estado"] == "Activo"
        assert cuy["fecha_venta"] is None
        assert ops.get_venta(ctx, venta["id"]).error.code == "NOT_FOUND"
        assert ops.delete_venta(ctx, venta["id"]).error.code == "NOT_FOUND"

    def test_filters(self, ctx, cliente):
        ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-04-01", "total": 10})
        ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-01", "total": 10, "estado_pago": "Pagado"})
        assert ops.list_ventas(ctx, ListVentasRequest(estado_pago="Pagado")).total == 1
        assert ops.list_ventas(ctx, ListVentasRequest(fecha_desde="2025-04-15")).total == 1


class TestClientes:
    def test_delete_with_sales_is_fk_error(self, ctx, cliente):
        ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "total": 5})
        assert ops.delete_cliente(ctx, cliente["id"]).error.code == "FOREIGN_KEY"

    def test_delete_sale_then_client(self, ctx, cliente):
        venta = ops.create_venta(ctx, {"cliente_id": cliente["id"], "fecha": "2025-05-10", "total": 5}).data
        assert ops.delete_venta(ctx, venta["id"]).success
        assert ops.delete_cliente(ctx, cliente["id"]).data == {"id": cliente["id"], "deleted": True}

    def test_search(self, ctx, cliente):
        ops.create_cliente(ctx, {"nombre": "Mercado Central"})
        page = ops.list_clientes(ctx, search="mercado")
        assert [c["nombre"] for c in page.data] == ["Mercado Central"]
