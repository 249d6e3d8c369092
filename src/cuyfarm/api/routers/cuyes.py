"""
Cuyes router: animals, herd statistics and bulk cage registration.

Endpoints:
    GET    /cuyes                      List animals (filters + search)
    POST   /cuyes                      Create an animal
    GET    /cuyes/stats                Herd statistics
    POST   /cuyes/registrar-jaula      Register a whole cage at once
    GET    /cuyes/{id}                 Get an animal
    PUT    /cuyes/{id}                 Update an animal
    DELETE /cuyes/{id}                 Delete an animal
    PUT    /cuyes/{id}/proposito       Change purpose / life stage
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.core.domain import EstadoCuy, EtapaVida, Proposito, Raza, Sexo
from cuyfarm.ops import cuyes as ops
from cuyfarm.ops.requests import (
    CambiarPropositoRequest,
    GrupoJaula,
    ListCuyesRequest,
    RegistrarJaulaRequest,
)

router = APIRouter(prefix="/cuyes")


class CuyCreate(BaseModel):
    raza: Raza
    fecha_nacimiento: date
    sexo: Sexo
    peso: float = Field(..., description="Weight in kg")
    galpon: str = Field(..., min_length=1, max_length=10)
    jaula: str = Field(..., min_length=1, max_length=10)
    estado: EstadoCuy = EstadoCuy.ACTIVO
    etapa_vida: EtapaVida | None = None
    proposito: Proposito | None = None
    fecha_venta: date | None = None
    fecha_fallecimiento: date | None = None
    camada_id: int | None = None
    notas: str | None = Field(default=None, max_length=500)


class CuyUpdate(BaseModel):
    raza: Raza | None = None
    fecha_nacimiento: date | None = None
    sexo: Sexo | None = None
    peso: float | None = None
    galpon: str | None = Field(default=None, min_length=1, max_length=10)
    jaula: str | None = Field(default=None, min_length=1, max_length=10)
    estado: EstadoCuy | None = None
    etapa_vida: EtapaVida | None = None
    proposito: Proposito | None = None
    fecha_venta: date | None = None
    fecha_fallecimiento: date | None = None
    camada_id: int | None = None
    notas: str | None = Field(default=None, max_length=500)


class PropositoUpdate(BaseModel):
    proposito: Proposito
    etapa_vida: EtapaVida | None = None


class GrupoSchema(BaseModel):
    sexo: Sexo
    cantidad: int = Field(..., ge=1, le=50)
    edad_dias: int = Field(..., ge=0, le=365)
    peso_promedio: float = Field(..., gt=0, le=5000, description="Grams")
    variacion_edad: int = Field(default=3, ge=0)
    variacion_peso: float = Field(default=50.0, ge=0, description="Grams")


class RegistrarJaulaBody(BaseModel):
    galpon: str = Field(..., min_length=1, max_length=10)
    jaula: str = Field(..., min_length=1, max_length=10)
    raza: Raza
    grupos: list[GrupoSchema] = Field(..., min_length=1)


@router.get("")
def list_cuyes(
    ctx: OpContext,
    pagination: Pagination,
    galpon: str | None = Query(None),
    jaula: str | None = Query(None),
    raza: str | None = Query(None),
    sexo: str | None = Query(None),
    estado: str | None = Query(None),
    etapa_vida: str | None = Query(None),
    proposito: str | None = Query(None),
    search: str | None = Query(None, description="Matches raza, galpon, jaula or id"),
):
    request = ListCuyesRequest(
        galpon=galpon,
        jaula=jaula,
        raza=raza,
        sexo=sexo,
        estado=estado,
        etapa_vida=etapa_vida,
        proposito=proposito,
        search=search,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_cuyes(ctx, request))


@router.post("", status_code=201)
def create_cuy(ctx: OpContext, body: CuyCreate):
    """Create an animal; etapa_vida and proposito are derived when omitted."""
    return _single(ops.create_cuy(ctx, _body(body)), status_code=201)


@router.get("/stats")
def cuyes_stats(ctx: OpContext):
    return _single(ops.cuyes_stats(ctx))


@router.post("/registrar-jaula", status_code=201)
def registrar_jaula(ctx: OpContext, body: RegistrarJaulaBody):
    """Create one animal per unit of every group, with jittered age and weight."""
    request = RegistrarJaulaRequest(
        galpon=body.galpon,
        jaula=body.jaula,
        raza=body.raza.value,
        grupos=[GrupoJaula(**g.model_dump(mode="json")) for g in body.grupos],
    )
    return _single(ops.registrar_jaula(ctx, request), status_code=201)


@router.get("/{cuy_id}")
def get_cuy(ctx: OpContext, cuy_id: int):
    return _single(ops.get_cuy(ctx, cuy_id))


@router.put("/{cuy_id}")
def update_cuy(ctx: OpContext, cuy_id: int, body: CuyUpdate):
    return _single(ops.update_cuy(ctx, cuy_id, _body(body)))


@router.delete("/{cuy_id}")
def delete_cuy(ctx: OpContext, cuy_id: int):
    return _single(ops.delete_cuy(ctx, cuy_id))


@router.put("/{cuy_id}/proposito")
def cambiar_proposito(ctx: OpContext, cuy_id: int, body: PropositoUpdate):
    request = CambiarPropositoRequest(
        cuy_id=cuy_id,
        proposito=body.proposito.value,
        etapa_vida=body.etapa_vida.value if body.etapa_vida else None,
    )
    return _single(ops.cambiar_proposito(ctx, request))
