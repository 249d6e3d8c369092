"""Gastos router: farm expenses and their breakdown by category."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import gastos as ops
from cuyfarm.ops.requests import ListGastosRequest

router = APIRouter(prefix="/gastos")


class GastoCreate(BaseModel):
    descripcion: str = Field(..., min_length=1, max_length=200)
    monto: float = Field(..., gt=0)
    fecha: date
    categoria: str = Field(..., min_length=1, max_length=50)


class GastoUpdate(BaseModel):
    descripcion: str | None = Field(default=None, min_length=1, max_length=200)
    monto: float | None = Field(default=None, gt=0)
    fecha: date | None = None
    categoria: str | None = Field(default=None, min_length=1, max_length=50)


@router.get("")
def list_gastos(
    ctx: OpContext,
    pagination: Pagination,
    categoria: str | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
):
    request = ListGastosRequest(
        categoria=categoria,
        fecha_desde=fecha_desde.isoformat() if fecha_desde else None,
        fecha_hasta=fecha_hasta.isoformat() if fecha_hasta else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_gastos(ctx, request))


@router.post("", status_code=201)
def create_gasto(ctx: OpContext, body: GastoCreate):
    return _single(ops.create_gasto(ctx, _body(body)), status_code=201)


@router.get("/por-categoria")
def gastos_por_categoria(ctx: OpContext, desde: date | None = Query(None), hasta: date | None = Query(None)):
    return _single(ops.gastos_por_categoria(
        ctx, desde.isoformat() if desde else None, hasta.isoformat() if hasta else None,
    ))


@router.get("/{gasto_id}")
def get_gasto(ctx: OpContext, gasto_id: int):
    return _single(ops.get_gasto(ctx, gasto_id))


@router.put("/{gasto_id}")
def update_gasto(ctx: OpContext, gasto_id: int, body: GastoUpdate):
    return _single(ops.update_gasto(ctx, gasto_id, _body(body)))


@router.delete("/{gasto_id}")
def delete_gasto(ctx: OpContext, gasto_id: int):
    return _single(ops.delete_gasto(ctx, gasto_id))
