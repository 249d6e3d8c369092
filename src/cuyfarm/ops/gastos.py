"""Expense (gasto) operations."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.domain import today, utcnow_iso
from cuyfarm.core.repositories import GastoRepository
from cuyfarm.ops._helpers import (
    clean,
    create_row,
    delete_by_id,
    fail_from_exception,
    get_by_id,
    paged,
    update_by_id,
)
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import ListGastosRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

_FIELDS = frozenset({"descripcion", "monto", "fecha", "categoria"})


def list_gastos(ctx: OperationContext, request: ListGastosRequest) -> PagedResult[dict]:
    repo = GastoRepository(ctx.conn)
    return paged(
        ctx,
        "list gastos",
        lambda: repo.list_gastos(
            categoria=request.categoria,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def get_gasto(ctx: OperationContext, gasto_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, GastoRepository(ctx.conn), "Gasto", gasto_id)


def create_gasto(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    row = clean(data, _FIELDS)
    row["created_at"] = utcnow_iso()
    return create_row(ctx, GastoRepository(ctx.conn), "Gasto", row)


def update_gasto(ctx: OperationContext, gasto_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    return update_by_id(ctx, GastoRepository(ctx.conn), "Gasto", gasto_id, clean(data, _FIELDS))


def delete_gasto(ctx: OperationContext, gasto_id: int) -> OperationResult[dict]:
    return delete_by_id(ctx, GastoRepository(ctx.conn), "Gasto", gasto_id)


def gastos_por_categoria(
    ctx: OperationContext, desde: str | None = None, hasta: str | None = None,
) -> OperationResult[dict]:
    """Expense totals per category; defaults to the current month."""
    timer = start_timer()
    try:
        hoy = today()
        desde = desde or hoy.replace(day=1).isoformat()
        hasta = hasta or hoy.isoformat()
        rows = GastoRepository(ctx.conn).por_categoria(desde, hasta)
        categorias = [
            {"categoria": r["categoria"], "total": round(float(r["total"]), 2), "cantidad": int(r["cantidad"])}
            for r in rows
        ]
        return OperationResult.ok(
            {
                "desde": desde,
                "hasta": hasta,
                "total": round(sum(c["total"] for c in categorias), 2),
                "categorias": categorias,
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "group gastos", elapsed_ms=timer.elapsed_ms)
