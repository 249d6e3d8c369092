"""Health record operations (``historial_salud``)."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.repositories import SaludRepository
from cuyfarm.ops._helpers import clean, create_row, delete_by_id, get_by_id, paged, update_by_id
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import ListSaludRequest
from cuyfarm.ops.result import OperationResult, PagedResult

_FIELDS = frozenset({"cuy_id", "fecha", "tipo", "veterinario", "descripcion", "tratamiento", "costo"})


def list_salud(ctx: OperationContext, request: ListSaludRequest) -> PagedResult[dict]:
    repo = SaludRepository(ctx.conn)
    return paged(
        ctx,
        "list salud",
        lambda: repo.list_registros(
            cuy_id=request.cuy_id,
            tipo=request.tipo,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def get_salud(ctx: OperationContext, registro_id: int) -> OperationResult[dict]:
    return get_by_id(ctx, SaludRepository(ctx.conn), "Registro de salud", registro_id)


def create_salud(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Record a health event.  An unknown ``cuy_id`` fails the FK check."""
    row = clean(data, _FIELDS)
    row.setdefault("costo", 0)
    row["created_at"] = utcnow_iso()
    return create_row(ctx, SaludRepository(ctx.conn), "Registro de salud", row)


def update_salud(ctx: OperationContext, registro_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    return update_by_id(ctx, SaludRepository(ctx.conn), "Registro de salud", registro_id, clean(data, _FIELDS))


def delete_salud(ctx: OperationContext, registro_id: int) -> OperationResult[dict]:
    return delete_by_id(ctx, SaludRepository(ctx.conn), "Registro de salud", registro_id)
