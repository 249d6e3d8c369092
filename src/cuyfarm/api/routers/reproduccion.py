"""
Reproducción router: pregnancies, litters and breeding helpers.

Endpoints:
    GET    /reproduccion/prenez                  List pregnancies
    POST   /reproduccion/prenez                  Register a pregnancy
    GET    /reproduccion/prenez/activas          Active pregnancies
    GET    /reproduccion/prenez/proximos-partos  Births due in the next N days
    GET    /reproduccion/prenez/{id}             Get a pregnancy
    PUT    /reproduccion/prenez/{id}             Update a pregnancy
    DELETE /reproduccion/prenez/{id}             Delete a pregnancy
    POST   /reproduccion/prenez/{id}/completar   Register its litter
    POST   /reproduccion/prenez/{id}/fallida     Mark as failed
    GET    /reproduccion/camadas                 List litters
    POST   /reproduccion/camadas                 Register a litter
    POST   /reproduccion/camadas/bulk-delete     Delete up to 50 litters
    GET    /reproduccion/camadas/estadisticas    Litter totals over N days
    GET    /reproduccion/camadas/{id}            Get a litter with its crías
    PUT    /reproduccion/camadas/{id}            Update a litter
    DELETE /reproduccion/camadas/{id}            Delete a litter
    GET    /reproduccion/estadisticas            Reproduction statistics
    GET    /reproduccion/validar-gestacion       Classify a gestation length
    GET    /reproduccion/madres-elegibles        Mothers ready to give birth
    GET    /reproduccion/compatibilidad          Score a breeding pair
    GET    /reproduccion/madres/{id}/estadisticas
    GET    /reproduccion/padres/{id}/estadisticas
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field, model_validator

from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import reproduccion as ops
from cuyfarm.ops.requests import ListCamadasRequest, ListPrenecesRequest

router = APIRouter(prefix="/reproduccion")


class PrenezCreate(BaseModel):
    madre_id: int
    padre_id: int | None = None
    fecha_prenez: date
    fecha_probable_parto: date | None = None
    notas: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _padre_distinto(self) -> PrenezCreate:
        if self.padre_id is not None and self.padre_id == self.madre_id:
            raise ValueError("padre_id must differ from madre_id")
        return self


class PrenezUpdate(BaseModel):
    padre_id: int | None = None
    fecha_prenez: date | None = None
    fecha_probable_parto: date | None = None
    notas: str | None = Field(default=None, max_length=500)


class CamadaBase(BaseModel):
    fecha_nacimiento: date
    num_vivos: int = Field(..., ge=0, le=20)
    num_muertos: int = Field(default=0, ge=0, le=20)
    num_machos: int | None = Field(default=None, ge=0, le=20)
    num_hembras: int | None = Field(default=None, ge=0, le=20)
    padre_id: int | None = None
    crear_cuyes: bool = False


class CamadaCreate(CamadaBase):
    madre_id: int | None = None
    prenez_id: int | None = None


class CamadaUpdate(BaseModel):
    fecha_nacimiento: date | None = None
    num_vivos: int | None = Field(default=None, ge=0, le=20)
    num_muertos: int | None = Field(default=None, ge=0, le=20)
    num_machos: int | None = Field(default=None, ge=0, le=20)
    num_hembras: int | None = Field(default=None, ge=0, le=20)
    madre_id: int | None = None
    padre_id: int | None = None


class BulkDeleteBody(BaseModel):
    ids: list[int] = Field(..., min_length=1, max_length=50)


# ------------------------------------------------------------------ #
# Preñez
# ------------------------------------------------------------------ #


@router.get("/prenez")
def list_preneces(
    ctx: OpContext,
    pagination: Pagination,
    estado: str | None = Query(None),
    madre_id: int | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
    search: str | None = Query(None),
):
    request = ListPrenecesRequest(
        estado=estado,
        madre_id=madre_id,
        fecha_desde=fecha_desde.isoformat() if fecha_desde else None,
        fecha_hasta=fecha_hasta.isoformat() if fecha_hasta else None,
        search=search,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_preneces(ctx, request))


@router.post("/prenez", status_code=201)
def create_prenez(ctx: OpContext, body: PrenezCreate):
    """Register a pregnancy; fecha_probable_parto defaults to +70 days."""
    return _single(ops.create_prenez(ctx, _body(body)), status_code=201)


@router.get("/prenez/activas")
def list_preneces_activas(ctx: OpContext):
    return _single(ops.list_preneces_activas(ctx))


@router.get("/prenez/proximos-partos")
def proximos_partos(ctx: OpContext, dias: int = Query(7, ge=1, le=90)):
    return _single(ops.proximos_partos(ctx, dias))


@router.get("/prenez/{prenez_id}")
def get_prenez(ctx: OpContext, prenez_id: int):
    return _single(ops.get_prenez(ctx, prenez_id))


@router.put("/prenez/{prenez_id}")
def update_prenez(ctx: OpContext, prenez_id: int, body: PrenezUpdate):
    return _single(ops.update_prenez(ctx, prenez_id, _body(body)))


@router.delete("/prenez/{prenez_id}")
def delete_prenez(ctx: OpContext, prenez_id: int):
    return _single(ops.delete_prenez(ctx, prenez_id))


@router.post("/prenez/{prenez_id}/completar", status_code=201)
def completar_prenez(ctx: OpContext, prenez_id: int, body: CamadaBase):
    """Register the litter of an active pregnancy (409 when not activa)."""
    return _single(ops.completar_prenez(ctx, prenez_id, _body(body)), status_code=201)


@router.post("/prenez/{prenez_id}/fallida")
def marcar_fallida(ctx: OpContext, prenez_id: int):
    return _single(ops.marcar_fallida(ctx, prenez_id))


# ------------------------------------------------------------------ #
# Camadas
# ------------------------------------------------------------------ #


@router.get("/camadas")
def list_camadas(
    ctx: OpContext,
    pagination: Pagination,
    madre_id: int | None = Query(None),
    padre_id: int | None = Query(None),
    fecha_desde: date | None = Query(None),
    fecha_hasta: date | None = Query(None),
):
    request = ListCamadasRequest(
        madre_id=madre_id,
        padre_id=padre_id,
        fecha_desde=fecha_desde.isoformat() if fecha_desde else None,
        fecha_hasta=fecha_hasta.isoformat() if fecha_hasta else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_camadas(ctx, request))


@router.post("/camadas", status_code=201)
def create_camada(ctx: OpContext, body: CamadaCreate):
    """Register a litter; ``crear_cuyes`` also creates one animal per live cría."""
    return _single(ops.create_camada(ctx, _body(body)), status_code=201)


@router.post("/camadas/bulk-delete")
def bulk_delete_camadas(ctx: OpContext, body: BulkDeleteBody):
    return _single(ops.bulk_delete_camadas(ctx, body.ids))


@router.get("/camadas/estadisticas")
def estadisticas_camadas(ctx: OpContext, dias: int = Query(30, ge=1, le=365)):
    return _single(ops.estadisticas_camadas(ctx, dias))


@router.get("/camadas/{camada_id}")
def get_camada(ctx: OpContext, camada_id: int):
    return _single(ops.get_camada(ctx, camada_id))


@router.put("/camadas/{camada_id}")
def update_camada(ctx: OpContext, camada_id: int, body: CamadaUpdate):
    return _single(ops.update_camada(ctx, camada_id, _body(body)))


@router.delete("/camadas/{camada_id}")
def delete_camada(ctx: OpContext, camada_id: int):
    return _single(ops.delete_camada(ctx, camada_id))


# ------------------------------------------------------------------ #
# Statistics and breeding helpers
# ------------------------------------------------------------------ #


@router.get("/estadisticas")
def estadisticas_reproduccion(ctx: OpContext):
    return _single(ops.estadisticas_reproduccion(ctx))


@router.get("/validar-gestacion")
def validar_gestacion(ctx: OpContext, fecha_prenez: date = Query(...), fecha_parto: date = Query(...)):
    """Classify the gestation length between two dates."""
    return _single(ops.validar_gestacion(ctx, fecha_prenez.isoformat(), fecha_parto.isoformat()))


@router.get("/madres-elegibles")
def madres_elegibles(ctx: OpContext):
    return _single(ops.madres_elegibles(ctx))


@router.get("/compatibilidad")
def verificar_compatibilidad(ctx: OpContext, madre_id: int = Query(...), padre_id: int = Query(...)):
    return _single(ops.verificar_compatibilidad(ctx, madre_id, padre_id))


@router.get("/madres/{madre_id}/estadisticas")
def estadisticas_madre(ctx: OpContext, madre_id: int):
    return _single(ops.estadisticas_madre(ctx, madre_id))


@router.get("/padres/{padre_id}/estadisticas")
def estadisticas_padre(ctx: OpContext, padre_id: int):
    return _single(ops.estadisticas_padre(ctx, padre_id))
