"""
Feed inventory operations: suppliers, feeds and consumption.

Consumption moves stock.  Creating a consumption record takes the amount
out of the feed's stock, updating it puts the old amount back before
taking the new one, and deleting it restores the stock.  Each of these
happens in the same transaction as the consumption row.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.errors import NotFoundError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import AlimentoRepository, ConsumoRepository, ProveedorRepository
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
from cuyfarm.ops.requests import ListAlimentosRequest, ListConsumosRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_PROVEEDOR_FIELDS = frozenset({"nombre", "contacto", "telefono", "direccion"})
_ALIMENTO_FIELDS = frozenset({"nombre", "descripcion", "unidad", "stock", "costo_unitario", "proveedor_id"})
_CONSUMO_FIELDS = frozenset({"galpon", "fecha", "alimento_id", "cantidad"})


# ------------------------------------------------------------------ #
# Proveedores
# ------------------------------------------------------------------ #


def list_proveedores(ctx: OperationContext, limit: int = 50, offset: int = 0) -> PagedResult[dict]:
    repo = ProveedorRepository(ctx.conn)
    return paged(ctx, "list proveedores", lambda: repo.list_proveedores(limit=limit, offset=offset), limit, offset)


def get_proveedor(ctx: OperationContext, proveedor_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, ProveedorRepository(ctx.conn), "Proveedor", proveedor_id)


def create_proveedor(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    row = clean(data, _PROVEEDOR_FIELDS)
    row["created_at"] = utcnow_iso()
    return create_row(ctx, ProveedorRepository(ctx.conn), "Proveedor", row)


def update_proveedor(ctx: OperationContext, proveedor_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    return update_by_id(
        ctx, ProveedorRepository(ctx.conn), "Proveedor", proveedor_id, clean(data, _PROVEEDOR_FIELDS),
    )


def delete_proveedor(ctx: OperationContext, proveedor_id: int) -> OperationResult[dict]:
    return delete_by_id(ctx, ProveedorRepository(ctx.conn), "Proveedor", proveedor_id)


# ------------------------------------------------------------------ #
# Alimentos
# ------------------------------------------------------------------ #


def list_alimentos(ctx: OperationContext, request: ListAlimentosRequest) -> PagedResult[dict]:
    repo = AlimentoRepository(ctx.conn)
    return paged(
        ctx,
        "list alimentos",
        lambda: repo.list_alimentos(
            proveedor_id=request.proveedor_id,
            stock_max=request.stock_max,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def alimentos_stock_bajo(ctx: OperationContext, umbral: float = 10.0) -> OperationResult[list[dict]]:
    """Feeds whose stock is at or below *umbral*, lowest first."""
    timer = start_timer()
    try:
        rows, _ = AlimentoRepository(ctx.conn).list_alimentos(stock_max=umbral, limit=1000)
        rows.sort(key=lambda r: r["stock"])
        return OperationResult.ok(rows, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list low-stock alimentos", elapsed_ms=timer.elapsed_ms)


def get_alimento(ctx: OperationContext, alimento_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, AlimentoRepository(ctx.conn), "Alimento", alimento_id)


def create_alimento(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    row = clean(data, _ALIMENTO_FIELDS)
    now = utcnow_iso()
    row.update({"created_at": now, "updated_at": now})
    return create_row(ctx, AlimentoRepository(ctx.conn), "Alimento", row)


def update_alimento(ctx: OperationContext, alimento_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    updates = clean(data, _ALIMENTO_FIELDS)
    if updates:
        updates["updated_at"] = utcnow_iso()
    return update_by_id(ctx, AlimentoRepository(ctx.conn), "Alimento", alimento_id, updates)


def delete_alimento(ctx: OperationContext, alimento_id: int) -> OperationResult[dict]:
    return delete_by_id(ctx, AlimentoRepository(ctx.conn), "Alimento", alimento_id)


# ------------------------------------------------------------------ #
# Consumo
# ------------------------------------------------------------------ #


def _consumir(alimentos: AlimentoRepository, alimento_id: int, cantidad: float, now: str) -> None:
    """Take *cantidad* out of a feed's stock or refuse."""
    if cantidad <= 0:
        raise ValidationError("cantidad must be greater than 0", details={"field": "cantidad"})
    alimento = alimentos.get(alimento_id)
    if not alimento:
        raise NotFoundError(f"Alimento {alimento_id} not found", details={"field": "alimento_id"})
    if float(alimento["stock"]) < cantidad:
        raise ValidationError(
            f"Insufficient stock for {alimento['nombre']}: {alimento['stock']} available, {cantidad} requested",
            details={"stock": alimento["stock"], "cantidad": cantidad},
        )
    alimentos.adjust_stock(alimento_id, -cantidad, now)


def list_consumos(ctx: OperationContext, request: ListConsumosRequest) -> PagedResult[dict]:
    repo = ConsumoRepository(ctx.conn)
    return paged(
        ctx,
        "list consumos",
        lambda: repo.list_consumos(
            galpon=request.galpon,
            alimento_id=request.alimento_id,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def get_consumo(ctx: OperationContext, consumo_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, ConsumoRepository(ctx.conn), "Consumo", consumo_id)


def create_consumo(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = clean(data, _CONSUMO_FIELDS)
        now = utcnow_iso()
        _consumir(AlimentoRepository(ctx.conn), row["alimento_id"], float(row["cantidad"]), now)
        row["created_at"] = now
        repo = ConsumoRepository(ctx.conn)
        consumo_id = repo.create(row)
        ctx.conn.commit()
        logger.info("consumo_created", consumo_id=consumo_id, alimento_id=row["alimento_id"])
        return OperationResult.ok(repo.get(consumo_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create consumo", elapsed_ms=timer.elapsed_ms)


def update_consumo(ctx: OperationContext, consumo_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    """Revert the old amount, then apply the new one (possibly to another feed)."""
    timer = start_timer()
    try:
        repo = ConsumoRepository(ctx.conn)
        alimentos = AlimentoRepository(ctx.conn)
        current = repo.get(consumo_id)
        if not current:
            return not_found("Consumo", consumo_id, timer.elapsed_ms)
        updates = clean(data, _CONSUMO_FIELDS)
        if "cantidad" in updates or "alimento_id" in updates:
            now = utcnow_iso()
            alimentos.adjust_stock(current["alimento_id"], float(current["cantidad"]), now)
            _consumir(
                alimentos,
                updates.get("alimento_id", current["alimento_id"]),
                float(updates.get("cantidad", current["cantidad"])),
                now,
            )
        if updates:
            repo.update(repo.TABLE, consumo_id, updates)
        ctx.conn.commit()
        return OperationResult.ok(repo.get(consumo_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update consumo", elapsed_ms=timer.elapsed_ms)


def delete_consumo(ctx: OperationContext, consumo_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = ConsumoRepository(ctx.conn)
        current = repo.get(consumo_id)
        if not current:
            return not_found("Consumo", consumo_id, timer.elapsed_ms)
        AlimentoRepository(ctx.conn).adjust_stock(
            current["alimento_id"], float(current["cantidad"]), utcnow_iso(),
        )
        repo.delete(consumo_id)
        ctx.conn.commit()
        return OperationResult.ok(
            {"id": consumo_id, "deleted": True, "stock_restaurado": current["cantidad"]},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete consumo", elapsed_ms=timer.elapsed_ms)


def consumo_por_galpon(
    ctx: OperationContext,
    galpon: str,
    desde: str | None = None,
    hasta: str | None = None,
) -> OperationResult[dict]:
    timer = start_timer()
    try:
        rows = ConsumoRepository(ctx.conn).with_costs(galpon=galpon, fecha_desde=desde, fecha_hasta=hasta)
        return OperationResult.ok(
            {
                "galpon": galpon,
                "registros": rows,
                "total_cantidad": round(sum(float(r["cantidad"]) for r in rows), 3),
                "total_costo": round(sum(float(r["costo"] or 0) for r in rows), 2),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "summarise consumo by galpón", elapsed_ms=timer.elapsed_ms)


def estadisticas_consumo(
    ctx: OperationContext,
    desde: str | None = None,
    hasta: str | None = None,
) -> OperationResult[dict]:
    """Quantity and cost totals, broken down per shed and per feed."""
    timer = start_timer()
    try:
        rows = ConsumoRepository(ctx.conn).with_costs(fecha_desde=desde, fecha_hasta=hasta)
        por_galpon: dict[str, dict[str, float]] = defaultdict(lambda: {"cantidad": 0.0, "costo": 0.0})
        por_alimento: dict[str, dict[str, float]] = defaultdict(lambda: {"cantidad": 0.0, "costo": 0.0})
        for r in rows:
            cantidad, costo = float(r["cantidad"]), float(r["costo"] or 0)
            for bucket in (por_galpon[r["galpon"]], por_alimento[r["alimento"]]):
                bucket["cantidad"] += cantidad
                bucket["costo"] += costo
        return OperationResult.ok(
            {
                "total_registros": len(rows),
                "total_cantidad": round(sum(float(r["cantidad"]) for r in rows), 3),
                "total_costo": round(sum(float(r["costo"] or 0) for r in rows), 2),
                "por_galpon": [{"galpon": k, **v} for k, v in sorted(por_galpon.items())],
                "por_alimento": [{"alimento": k, **v} for k, v in sorted(por_alimento.items())],
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute consumo stats", elapsed_ms=timer.elapsed_ms)
