"""
Inventario router: suppliers, feeds and feed consumption.

Endpoints:
    GET|POST          /proveedores, GET|PUT|DELETE /proveedores/{id}
    GET|POST          /alimentos,   GET|PUT|DELETE /alimentos/{id}
    GET               /alimentos/stock-bajo         Feeds at or below a threshold
    GET|POST          /consumo,     GET|PUT|DELETE /consumo/{id}
    GET               /consumo/galpon/{galpon}      Consumption of one shed
    GET               /consumo/estadisticas         Totals per shed and per feed

Consumption moves feed stock: creating one decrements it (400 when the
stock is insufficient), deleting one restores it.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import inventario as ops
from cuyfarm.ops.requests import ListAlimentosRequest, ListConsumosRequest

router = APIRouter()


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


class ProveedorCreate(BaseModel):
    nombre: str = Field(..., min_length=3, max_length=100)
    contacto: str | None = None
    telefono: str | None = None
    direccion: str | None = None


class ProveedorUpdate(BaseModel):
    nombre: str | None = Field(default=None, min_length=3, max_length=100)
    contacto: str | None = None
    telefono: str | None = None
    direccion: str | None = None


class AlimentoCreate(BaseModel):
    nombre: str = Field(..., min_length=3, max_length=100)
    descripcion: str | None = None
    unidad: str = Field(default="kg", min_length=1, max_length=20)
    stock: float = Field(default=0.0, ge=0)
    costo_unitario: float = Field(default=0.0, ge=0)
    proveedor_id: int | None = None


class AlimentoUpdate(BaseModel):
    nombre: str | None = Field(default=None, min_length=3, max_length=100)
    descripcion: str | None = None
    unidad: str | None = Field(default=None, min_length=1, max_length=20)
    stock: float | None = Field(default=None, ge=0)
    costo_unitario: float | None = Field(default=None, ge=0)
    proveedor_id: int | None = None


class ConsumoCreate(BaseModel):
    galpon: str = Field(..., min_length=1, max_length=10)
    fecha: date
    alimento_id: int
    cantidad: float = Field(..., gt=0)


class ConsumoUpdate(BaseModel):
    galpon: str | None = Field(default=None, min_length=1, max_length=10)
    fecha: date | None = None
    alimento_id: int | None = None
    cantidad: float | None = Field(default=None, gt=0)


# ------------------------------------------------------------------ #
# Proveedores
# ------------------------------------------------------------------ #


@router.get("/proveedores")
def list_proveedores(ctx: OpContext, pagination: Pagination):
    return _paged(ops.list_proveedores(ctx, limit=pagination.limit, offset=pagination.offset))


@router.post("/proveedores", status_code=201)
def create_proveedor(ctx: OpContext, body: ProveedorCreate):
    return _single(ops.create_proveedor(ctx, _body(body)), status_code=201)


@router.get("/proveedores/{proveedor_id}")
def get_proveedor(ctx: OpContext, proveedor_id: int):
    return _single(ops.get_proveedor(ctx, proveedor_id))


@router.put("/proveedores/{proveedor_id}")
def update_proveedor(ctx: OpContext, proveedor_id: int, body: ProveedorUpdate):
    return _single(ops.update_proveedor(ctx, proveedor_id, _body(body)))


@router.delete("/proveedores/{proveedor_id}")
def delete_proveedor(ctx: OpContext, proveedor_id: int):
    return _single(ops.delete_proveedor(ctx, proveedor_id))


# ------------------------------------------------------------------ #
# Alimentos
# ------------------------------------------------------------------ #


@router.get("/alimentos")
def list_alimentos(
    ctx: OpContext,
    pagination: Pagination,
    proveedor_id: int | None = Query(None),
    stock_max: float | None = Query(None, ge=0),
):
    request = ListAlimentosRequest(
        proveedor_id=proveedor_id, stock_max=stock_max, limit=pagination.limit, offset=pagination.offset,
    )
    return _paged(ops.list_alimentos(ctx, request))


@router.post("/alimentos", status_code=201)
def create_alimento(ctx: OpContext, body: AlimentoCreate):
    return _single(ops.create_alimento(ctx, _body(body)), status_code=201)


@router.get("/alimentos/stock-bajo")
def alimentos_stock_bajo(ctx: OpContext, umbral: float = Query(10.0, ge=0)):
    return _single(ops.alimentos_stock_bajo(ctx, umbral))


@router.get("/alimentos/{alimento_id}")
def get_alimento(ctx: OpContext, alimento_id: int):
    return _single(ops.get_alimento(ctx, alimento_id))


@router.put("/alimentos/{alimento_id}")
def update_alimento(ctx: OpContext, alimento_id: int, body: AlimentoUpdate):
    return _single(ops.update_alimento(ctx, alimento_id, _body(body)))


@router.delete("/alimentos/{alimento_id}")
def delete_alimento(ctx: OpContext, alimento_id: int):
    return _single(ops.delete_alimento(ctx, alimento_id))


# ------------------------------------------------------------------ #
# Consumo
# ------------------------------------------------------------------ #


@router.get("/consumo")
def list_consumos(
    ctx: OpContext,
    pagination: Pagination,
    galpon: str | None = Query(None),
    alimento_id: int | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
):
    request = ListConsumosRequest(
        galpon=galpon,
        alimento_id=alimento_id,
        fecha_desde=_iso(fecha_desde),
        fecha_hasta=_iso(fecha_hasta),
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_consumos(ctx, request))


@router.post("/consumo", status_code=201)
def create_consumo(ctx: OpContext, body: ConsumoCreate):
    return _single(ops.create_consumo(ctx, _body(body)), status_code=201)


@router.get("/consumo/estadisticas")
def estadisticas_consumo(ctx: OpContext, desde: date | None = Query(None), hasta: date | None = Query(None)):
    return _single(ops.estadisticas_consumo(ctx, _iso(desde), _iso(hasta)))


@router.get("/consumo/galpon/{galpon}")
def consumo_por_galpon(
    ctx: OpContext, galpon: str, desde: date | None = Query(None), hasta: date | None = Query(None),
):
    return _single(ops.consumo_por_galpon(ctx, galpon, _iso(desde), _iso(hasta)))


@router.get("/consumo/{consumo_id}")
def get_consumo(ctx: OpContext, consumo_id: int):
    return _single(ops.get_consumo(ctx, consumo_id))


@router.put("/consumo/{consumo_id}")
def update_consumo(ctx: OpContext, consumo_id: int, body: ConsumoUpdate):
    return _single(ops.update_consumo(ctx, consumo_id, _body(body)))


@router.delete("/consumo/{consumo_id}")
def delete_consumo(ctx: OpContext, consumo_id: int):
    return _single(ops.delete_consumo(ctx, consumo_id))
