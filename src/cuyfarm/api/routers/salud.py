"""
Salud router: health records of individual animals.

Endpoints:
    GET    /salud          List records (cuy_id, tipo, date range)
    POST   /salud          Create a record
    GET    /salud/{id}     Get a record
    PUT    /salud/{id}     Update a record
    DELETE /salud/{id}     Delete a record
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import salud as ops
from cuyfarm.ops.requests import ListSaludRequest

router = APIRouter(prefix="/salud")


class SaludCreate(BaseModel):
    cuy_id: int
    fecha: date
    tipo: str = Field(..., min_length=1, max_length=50)
    veterinario: str | None = None
    descripcion: str | None = None
    tratamiento: str | None = None
    costo: float = Field(default=0.0, ge=0)


class SaludUpdate(BaseModel):
    cuy_id: int | None = None
    fecha: date | None = None
    tipo: str | None = Field(default=None, min_length=1, max_length=50)
    veterinario: str | None = None
    descripcion: str | None = None
    tratamiento: str | None = None
    costo: float | None = Field(default=None, ge=0)


@router.get("")
def list_salud(
    ctx: OpContext,
    pagination: Pagination,
    cuy_id: int | None = Query(None),
    tipo: str | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
):
    request = ListSaludRequest(
        cuy_id=cuy_id,
        tipo=tipo,
        fecha_desde=fecha_desde.isoformat() if fecha_desde else None,
        fecha_hasta=fecha_hasta.isoformat() if fecha_hasta else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_salud(ctx, request))


@router.post("", status_code=201)
def create_salud(ctx: OpContext, body: SaludCreate):
    return _single(ops.create_salud(ctx, _body(body)), status_code=201)


@router.get("/{registro_id}")
def get_salud(ctx: OpContext, registro_id: int):
    return _single(ops.get_salud(ctx, registro_id))


@router.put("/{registro_id}")
def update_salud(ctx: OpContext, registro_id: int, body: SaludUpdate):
    return _single(ops.update_salud(ctx, registro_id, _body(body)))


@router.delete("/{registro_id}")
def delete_salud(ctx: OpContext, registro_id: int):
    return _single(ops.delete_salud(ctx, registro_id))
