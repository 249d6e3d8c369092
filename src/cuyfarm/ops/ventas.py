"""
Sales operations: customers (clientes) and sales (ventas) with lines.

A sale and its lines are written together.  Every animal on a line is
marked ``Vendido`` with the sale date.
"""

from __future__ import annotations

from typing import Any

from cuyfarm.core.domain import EstadoCuy, utcnow_iso
from cuyfarm.core.errors import NotFoundError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import ClienteRepository, CuyRepository, VentaRepository
from cuyfarm.ops._helpers import (
    clean,
    create_row,
    delete_by_id,
    fail_from_exception,
    get_by_id,
    not_found,
    paged,
    update_by_id,
)
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import ListVentasRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_CLIENTE_FIELDS = frozenset({"nombre", "contacto", "telefono", "direccion"})
_VENTA_FIELDS = frozenset({"cliente_id", "fecha", "total", "estado_pago"})


# ------------------------------------------------------------------ #
# Clientes
# ------------------------------------------------------------------ #


def list_clientes(
    ctx: OperationContext, search: str | None = None, limit: int = 50, offset: int = 0,
) -> PagedResult[dict]:
    repo = ClienteRepository(ctx.conn)
    return paged(
        ctx, "list clientes", lambda: repo.list_clientes(search=search, limit=limit, offset=offset),
        limit, offset,
    )


def get_cliente(ctx: OperationContext, cliente_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, ClienteRepository(ctx.conn), "Cliente", cliente_id)


def create_cliente(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    row = clean(data, _CLIENTE_FIELDS)
    row["created_at"] = utcnow_iso()
    return create_row(ctx, ClienteRepository(ctx.conn), "Cliente", row)


def update_cliente(ctx: OperationContext, cliente_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    return update_by_id(ctx, ClienteRepository(ctx.conn), "Cliente", cliente_id, clean(data, _CLIENTE_FIELDS))


def delete_cliente(ctx: OperationContext, cliente_id: int) -> OperationResult[dict]:
    return delete_by_id(ctx, ClienteRepository(ctx.conn), "Cliente", cliente_id)


# ------------------------------------------------------------------ #
# Ventas
# ------------------------------------------------------------------ #


def list_ventas(ctx: OperationContext, request: ListVentasRequest) -> PagedResult[dict]:
    repo = VentaRepository(ctx.conn)
    return paged(
        ctx,
        "list ventas",
        lambda: repo.list_ventas(
            cliente_id=request.cliente_id,
            estado_pago=request.estado_pago,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def get_venta(ctx: OperationContext, venta_id: int) -> OperationResult[dict]:
    """A sale with its lines."""
    timer = start_timer()
    try:
        repo = VentaRepository(ctx.conn)
        venta = repo.get(venta_id)
        if not venta:
            return not_found("Venta", venta_id, timer.elapsed_ms)
        venta["detalles"] = repo.detalles(venta_id)
        return OperationResult.ok(venta, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get venta", elapsed_ms=timer.elapsed_ms)


def _guardar_detalles(
    ctx: OperationContext, venta_id: int, fecha: str, detalles: list[dict[str, Any]],
) -> None:
    repo = VentaRepository(ctx.conn)
    cuyes = CuyRepository(ctx.conn)
    now = utcnow_iso()
    for detalle in detalles:
        cuy = cuyes.get(detalle["cuy_id"])
        if not cuy:
            raise NotFoundError(f"Cuy {detalle['cuy_id']} not found", details={"field": "detalles"})
        if cuy["estado"] == EstadoCuy.VENDIDO.value:
            raise ValidationError(f"Cuy {cuy['id']} is already sold", details={"cuy_id": cuy["id"]})
        repo.add_detalle({
            "venta_id": venta_id,
            "cuy_id": detalle["cuy_id"],
            "peso": detalle["peso"],
            "precio_unitario": detalle["precio_unitario"],
        })
        cuyes.update_cuy(cuy["id"], {
            "estado": EstadoCuy.VENDIDO.value,
            "fecha_venta": fecha,
            "updated_at": now,
        })


def _total_lineas(detalles: list[dict[str, Any]]) -> float:
    return round(sum(float(d["peso"]) * float(d["precio_unitario"]) for d in detalles), 2)


def create_venta(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Store a sale and its lines in one transaction.

    When lines are present and ``total`` is omitted, the total is the sum
    of ``peso * precio_unitario``.
    """
    timer = start_timer()
    try:
        detalles = list(data.get("detalles") or [])
        row = clean(data, _VENTA_FIELDS)
        if row.get("total") is None:
            row["total"] = _total_lineas(detalles)
        row.setdefault("estado_pago", "Pendiente")
        row["created_at"] = utcnow_iso()

        repo = VentaRepository(ctx.conn)
        venta_id = repo.create(row)
        _guardar_detalles(ctx, venta_id, row["fecha"], detalles)
        ctx.conn.commit()
        logger.info("venta_created", venta_id=venta_id, total=row["total"], lineas=len(detalles))
        return get_venta(ctx, venta_id)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create venta", elapsed_ms=timer.elapsed_ms)


def update_venta(ctx: OperationContext, venta_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    """Update header fields; a ``detalles`` list replaces the existing lines."""
    timer = start_timer()
    try:
        repo = VentaRepository(ctx.conn)
        current = repo.get(venta_id)
        if not current:
            return not_found("Venta", venta_id, timer.elapsed_ms)
        updates = clean(data, _VENTA_FIELDS)
        if data.get("detalles") is not None:
            detalles = list(data["detalles"])
            _liberar_cuyes(ctx, venta_id)
            repo.delete_detalles(venta_id)
            _guardar_detalles(ctx, venta_id, updates.get("fecha", current["fecha"]), detalles)
            if updates.get("total") is None:
                updates["total"] = _total_lineas(detalles)
        if updates:
            repo.update(repo.TABLE, venta_id, updates)
        ctx.conn.commit()
        return get_venta(ctx, venta_id)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update venta", elapsed_ms=timer.elapsed_ms)


def _liberar_cuyes(ctx: OperationContext, venta_id: int) -> int:
    """Return the animals sold by *venta_id* to Activo.  No commit."""
    cuyes = CuyRepository(ctx.conn)
    lineas = VentaRepository(ctx.conn).detalles(venta_id)
    now = utcnow_iso()
    for linea in lineas:
        cuyes.update_cuy(linea["cuy_id"], {
            "estado": EstadoCuy.ACTIVO.value, "fecha_venta": None, "updated_at": now,
        })
    return len(lineas)


def delete_venta(ctx: OperationContext, venta_id: int) -> OperationResult[dict]:
    """Delete a sale; the animals it sold go back to Activo."""
    timer = start_timer()
    try:
        repo = VentaRepository(ctx.conn)
        if not repo.get(venta_id):
            return not_found("Venta", venta_id, timer.elapsed_ms)
        liberados = _liberar_cuyes(ctx, venta_id)
        repo.delete(venta_id)
        ctx.conn.commit()
        logger.info("venta_deleted", venta_id=venta_id, cuyes_liberados=liberados)
        return OperationResult.ok(
            {"id": venta_id, "deleted": True, "cuyes_liberados": liberados}, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete venta", elapsed_ms=timer.elapsed_ms)
