"""Health, feed, sales and expense repositories.

Tags:
    cuyfarm, repository, salud, alimentos, ventas, gastos
"""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where


def _date_range(column: str, desde: str | None, hasta: str | None) -> tuple[list[str], tuple]:
    clauses: list[str] = []
    params: list[Any] = []
    if desde:
        clauses.append(f"{column} >= ?")
        params.append(desde)
    if hasta:
        clauses.append(f"{column} <= ?")
        params.append(hasta)
    return clauses, tuple(params)


# ── Salud ────────────────────────────────────────────────────────────────


class SaludRepository(BaseRepository):
    """CRUD for ``historial_salud``."""

    TABLE = "historial_salud"

    def list_registros(
        self,
        *,
        cuy_id: int | None = None,
        tipo: str | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses, extra = _date_range("fecha", fecha_desde, fecha_hasta)
        where, params = _build_where(
            {"cuy_id": cuy_id, "tipo": tipo}, extra_clauses=clauses, extra_params=extra,
        )
        return self.paginate(where, params, order_by="fecha DESC, id DESC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def between(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM historial_salud WHERE fecha >= ? AND fecha <= ? ORDER BY fecha",
            (desde, hasta),
        )


# ── Proveedores / Alimentos / Consumo ────────────────────────────────────


class ProveedorRepository(BaseRepository):
    TABLE = "proveedores"

    def list_proveedores(self, *, limit: int = 50, offset: int = 0) -> tuple[list[dict[str, Any]], int]:
        return self.paginate("1=1", (), order_by="nombre ASC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)


class AlimentoRepository(BaseRepository):
    TABLE = "alimentos"

    def list_alimentos(
        self,
        *,
        proveedor_id: int | None = None,
        stock_max: float | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses, extra = (["stock <= ?"], (stock_max,)) if stock_max is not None else ([], ())
        where, params = _build_where(
            {"proveedor_id": proveedor_id}, extra_clauses=clauses, extra_params=extra,
        )
        return self.paginate(where, params, order_by="nombre ASC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def adjust_stock(self, alimento_id: int, delta: float, updated_at: str) -> None:
        """Add *delta* (negative to consume) to the stock of a feed."""
        self.execute(
            "UPDATE alimentos SET stock = stock + ?, updated_at = ? WHERE id = ?",
            (delta, updated_at, alimento_id),
        )


class ConsumoRepository(BaseRepository):
    TABLE = "consumo_alimentos"

    def list_consumos(
        self,
        *,
        galpon: str | None = None,
        alimento_id: int | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses, extra = _date_range("fecha", fecha_desde, fecha_hasta)
        where, params = _build_where(
            {"galpon": galpon, "alimento_id": alimento_id},
            extra_clauses=clauses,
            extra_params=extra,
        )
        return self.paginate(where, params, order_by="fecha DESC, id DESC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def with_costs(
        self,
        *,
        galpon: str | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
    ) -> list[dict[str, Any]]:
        """Consumption rows joined with feed name, unit and unit cost."""
        clauses, extra = _date_range("c.fecha", fecha_desde, fecha_hasta)
        where, params = _build_where({"c.galpon": galpon}, extra_clauses=clauses, extra_params=extra)
        return self.query(
            "SELECT c.*, a.nombre AS alimento, a.unidad, a.costo_unitario, "
            "c.cantidad * a.costo_unitario AS costo "
            "FROM consumo_alimentos c JOIN alimentos a ON a.id = c.alimento_id "
            f"WHERE {where} ORDER BY c.fecha DESC, c.id DESC",
            params,
        )


# ── Clientes / Ventas ────────────────────────────────────────────────────


class ClienteRepository(BaseRepository):
    TABLE = "clientes"

    def list_clientes(
        self, *, search: str | None = None, limit: int = 50, offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        if search:
            return self.paginate(
                "nombre LIKE ?", (f"%{search}%",), order_by="nombre ASC", limit=limit, offset=offset,
            )
        return self.paginate("1=1", (), order_by="nombre ASC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)


class VentaRepository(BaseRepository):
    TABLE = "ventas"

    def list_ventas(
        self,
        *,
        cliente_id: int | None = None,
        estado_pago: str | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses, extra = _date_range("fecha", fecha_desde, fecha_hasta)
        where, params = _build_where(
            {"cliente_id": cliente_id, "estado_pago": estado_pago},
            extra_clauses=clauses,
            extra_params=extra,
        )
        return self.paginate(where, params, order_by="fecha DESC, id DESC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def add_detalle(self, data: dict[str, Any]) -> int:
        return self.insert("venta_detalles", data)

    def detalles(self, venta_id: int) -> list[dict[str, Any]]:
        return self.query("SELECT * FROM venta_detalles WHERE venta_id = ? ORDER BY id", (venta_id,))

    def delete_detalles(self, venta_id: int) -> None:
        self.execute("DELETE FROM venta_detalles WHERE venta_id = ?", (venta_id,))

    def between(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        """Sales in a date range with client name and line count."""
        return self.query(
            "SELECT v.*, c.nombre AS cliente, c.telefono AS cliente_telefono, "
            "(SELECT COUNT(*) FROM venta_detalles d WHERE d.venta_id = v.id) AS unidades "
            "FROM ventas v LEFT JOIN clientes c ON c.id = v.cliente_id "
            "WHERE v.fecha >= ? AND v.fecha <= ? ORDER BY v.fecha",
            (desde, hasta),
        )


# ── Gastos ───────────────────────────────────────────────────────────────


class GastoRepository(BaseRepository):
    TABLE = "gastos"

    def list_gastos(
        self,
        *,
        categoria: str | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses, extra = _date_range("fecha", fecha_desde, fecha_hasta)
        where, params = _build_where(
            {"categoria": categoria}, extra_clauses=clauses, extra_params=extra,
        )
        return self.paginate(where, params, order_by="fecha DESC, id DESC", limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def between(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM gastos WHERE fecha >= ? AND fecha <= ? ORDER BY fecha", (desde, hasta),
        )

    def por_categoria(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT categoria, SUM(monto) AS total, COUNT(*) AS cantidad FROM gastos "
            "WHERE fecha >= ? AND fecha <= ? GROUP BY categoria ORDER BY total DESC",
            (desde, hasta),
        )
