"""
Ventas router: customers and sales.

Endpoints:
    GET|POST  /clientes,  GET|PUT|DELETE /clientes/{id}
    GET|POST  /ventas,    GET|PUT|DELETE /ventas/{id}

A sale carries its lines (``detalles``); every animal sold becomes
Vendido with the sale date as fecha_venta.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import ventas as ops
from cuyfarm.ops.requests import ListVentasRequest

router = APIRouter()


class ClienteCreate(BaseModel):
    nombre: str = Field(..., min_length=3, max_length=100)
    contacto: str | None = None
    telefono: str | None = None
    direccion: str | None = None


class ClienteUpdate(BaseModel):
    nombre: str | None = Field(default=None, min_length=3, max_length=100)
    contacto: str | None = None
    telefono: str | None = None
    direccion: str | None = None


class DetalleVenta(BaseModel):
    cuy_id: int
    peso: float = Field(..., gt=0)
    precio_unitario: float = Field(..., ge=0)


class VentaCreate(BaseModel):
    cliente_id: int
    fecha: date
    total: float | None = Field(default=None, ge=0)
    estado_pago: str = Field(default="Pendiente", max_length=20)
    detalles: list[DetalleVenta] = Field(default_factory=list)


class VentaUpdate(BaseModel):
    cliente_id: int | None = None
    fecha: date | None = None
    total: float | None = Field(default=None, ge=0)
    estado_pago: str | None = Field(default=None, max_length=20)
    detalles: list[DetalleVenta] | None = None


@router.get("/clientes")
def list_clientes(ctx: OpContext, pagination: Pagination, search: str | None = Query(None)):
    return _paged(ops.list_clientes(ctx, search=search, limit=pagination.limit, offset=pagination.offset))


@router.post("/clientes", status_code=201)
def create_cliente(ctx: OpContext, body: ClienteCreate):
    return _single(ops.create_cliente(ctx, _body(body)), status_code=201)


@router.get("/clientes/{cliente_id}")
def get_cliente(ctx: OpContext, cliente_id: int):
    return _single(ops.get_cliente(ctx, cliente_id))


@router.put("/clientes/{cliente_id}")
def update_cliente(ctx: OpContext, cliente_id: int, body: ClienteUpdate):
    return _single(ops.update_cliente(ctx, cliente_id, _body(body)))


@router.delete("/clientes/{cliente_id}")
def delete_cliente(ctx: OpContext, cliente_id: int):
    return _single(ops.delete_cliente(ctx, cliente_id))


@router.get("/ventas")
def list_ventas(
    ctx: OpContext,
    pagination: Pagination,
    cliente_id: int | None = Query(None),
    estado_pago: str | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
):
    request = ListVentasRequest(
        cliente_id=cliente_id,
        estado_pago=estado_pago,
        fecha_desde=fecha_desde.isoformat() if fecha_desde else None,
        fecha_hasta=fecha_hasta.isoformat() if fecha_hasta else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_ventas(ctx, request))


@router.post("/ventas", status_code=201)
def create_venta(ctx: OpContext, body: VentaCreate):
    """Store a sale with its lines; total defaults to the sum of the lines."""
    return _single(ops.create_venta(ctx, _body(body)), status_code=201)


@router.get("/ventas/{venta_id}")
def get_venta(ctx: OpContext, venta_id: int):
    return _single(ops.get_venta(ctx, venta_id))


@router.put("/ventas/{venta_id}")
def update_venta(ctx: OpContext, venta_id: int, body: VentaUpdate):
    return _single(ops.update_venta(ctx, venta_id, _body(body)))


@router.delete("/ventas/{venta_id}")
def delete_venta(ctx: OpContext, venta_id: int):
    return _single(ops.delete_venta(ctx, venta_id))
