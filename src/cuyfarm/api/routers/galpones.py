"""
Galpones router: sheds, cages and cage space checks.

Endpoints:
    GET    /galpones                   List sheds
    POST   /galpones                   Create a shed
    GET    /galpones/{id}              Get a shed
    PUT    /galpones/{id}              Update a shed
    DELETE /galpones/{id}              Delete a shed
    GET    /galpones/{nombre}/resumen  Cages and occupancy of a shed
    GET    /jaulas                     List cages
    POST   /jaulas                     Create a cage
    GET    /jaulas/{id}                Get a cage
    PUT    /jaulas/{id}                Update a cage
    DELETE /jaulas/{id}                Delete a cage
    POST   /jaulas/verificar-espacio   Room check before registering animals
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.core.domain import EstadoGalpon, TipoJaula
from cuyfarm.ops import galpones as ops
from cuyfarm.ops.requests import ListGalponesRequest, ListJaulasRequest, VerificarEspacioRequest

router = APIRouter()


class GalponCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=10)
    descripcion: str | None = None
    ubicacion: str | None = None
    capacidad_maxima: int = Field(default=50, ge=1)
    estado: EstadoGalpon = EstadoGalpon.ACTIVO


class GalponUpdate(BaseModel):
    nombre: str | None = Field(default=None, min_length=1, max_length=10)
    descripcion: str | None = None
    ubicacion: str | None = None
    capacidad_maxima: int | None = Field(default=None, ge=1)
    estado: EstadoGalpon | None = None


class JaulaCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=10)
    galpon_id: int
    descripcion: str | None = None
    capacidad_maxima: int = Field(default=10, ge=1)
    tipo: TipoJaula = TipoJaula.ESTANDAR
    estado: EstadoGalpon = EstadoGalpon.ACTIVO


class JaulaUpdate(BaseModel):
    nombre: str | None = Field(default=None, min_length=1, max_length=10)
    galpon_id: int | None = None
    descripcion: str | None = None
    capacidad_maxima: int | None = Field(default=None, ge=1)
    tipo: TipoJaula | None = None
    estado: EstadoGalpon | None = None


class EspacioRequest(BaseModel):
    galpon: str
    jaula: str
    cantidad: int = Field(default=1, ge=1)
    capacidad: int | None = Field(default=None, ge=1)


# ------------------------------------------------------------------ #
# Galpones
# ------------------------------------------------------------------ #


@router.get("/galpones")
def list_galpones(
    ctx: OpContext,
    pagination: Pagination,
    estado: str | None = Query(None, description="Filter by estado"),
):
    request = ListGalponesRequest(estado=estado, limit=pagination.limit, offset=pagination.offset)
    return _paged(ops.list_galpones(ctx, request))


@router.post("/galpones", status_code=201)
def create_galpon(
    ctx: OpContext,
    body: GalponCreate,
    dry_run: bool = Query(False, description="Validate only; nothing is stored"),
):
    ctx.dry_run = dry_run
    return _single(ops.create_galpon(ctx, _body(body)), status_code=200 if dry_run else 201)


@router.get("/galpones/{galpon_id}")
def get_galpon(ctx: OpContext, galpon_id: int):
    return _single(ops.get_galpon(ctx, galpon_id))


@router.put("/galpones/{galpon_id}")
def update_galpon(ctx: OpContext, galpon_id: int, body: GalponUpdate):
    return _single(ops.update_galpon(ctx, galpon_id, _body(body)))


@router.delete("/galpones/{galpon_id}")
def delete_galpon(ctx: OpContext, galpon_id: int):
    return _single(ops.delete_galpon(ctx, galpon_id))


@router.get("/galpones/{nombre}/resumen")
def galpon_resumen(ctx: OpContext, nombre: str):
    """Cages of a shed with their animal counts and occupancy."""
    return _single(ops.galpon_resumen(ctx, nombre))


# ------------------------------------------------------------------ #
# Jaulas
# ------------------------------------------------------------------ #


@router.get("/jaulas")
def list_jaulas(
    ctx: OpContext,
    pagination: Pagination,
    galpon_id: int | None = Query(None),
    galpon: str | None = Query(None, description="Filter by shed name"),
    estado: str | None = Query(None),
    tipo: str | None = Query(None),
):
    request = ListJaulasRequest(
        galpon_id=galpon_id,
        galpon_nombre=galpon,
        estado=estado,
        tipo=tipo,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_jaulas(ctx, request))


@router.post("/jaulas", status_code=201)
def create_jaula(ctx: OpContext, body: JaulaCreate):
    return _single(ops.create_jaula(ctx, _body(body)), status_code=201)


@router.post("/jaulas/verificar-espacio")
def verificar_espacio(ctx: OpContext, body: EspacioRequest):
    """Whether *cantidad* more animals fit in a cage."""
    request = VerificarEspacioRequest(
        galpon=body.galpon, jaula=body.jaula, cantidad=body.cantidad, capacidad=body.capacidad,
    )
    return _single(ops.verificar_espacio(ctx, request))


@router.get("/jaulas/{jaula_id}")
def get_jaula(ctx: OpContext, jaula_id: int):
    return _single(ops.get_jaula(ctx, jaula_id))


@router.put("/jaulas/{jaula_id}")
def update_jaula(ctx: OpContext, jaula_id: int, body: JaulaUpdate):
    return _single(ops.update_jaula(ctx, jaula_id, _body(body)))


@router.delete("/jaulas/{jaula_id}")
def delete_jaula(ctx: OpContext, jaula_id: int):
    return _single(ops.delete_jaula(ctx, jaula_id))
