"""
Request dataclasses for list and action operations.

Each dataclass is the *input* contract of one operation function.  They
are frozen: routers and CLI commands build them from query parameters
and pass them through untouched.  Create/update payloads are plain dicts
produced by the API's pydantic bodies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ListCuyesRequest:
    galpon: str | None = None
    jaula: str | None = None
    raza: str | None = None
    sexo: str | None = None
    estado: str | None = None
    etapa_vida: str | None = None
    proposito: str | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CambiarPropositoRequest:
    cuy_id: int = 0
    proposito: str = ""
    etapa_vida: str | None = None


@dataclass(frozen=True, slots=True)
class GrupoJaula:
    """One group of identical animals in a bulk cage registration.

    ``peso_promedio`` and ``variacion_peso`` are grams.
    """

    sexo: str = "H"
    cantidad: int = 1
    edad_dias: int = 0
    peso_promedio: float = 0.0
    variacion_edad: int = 3
    variacion_peso: float = 50.0


@dataclass(frozen=True, slots=True)
class RegistrarJaulaRequest:
    galpon: str = ""
    jaula: str = ""
    raza: str = ""
    grupos: list[GrupoJaula] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ListGalponesRequest:
    estado: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListJaulasRequest:
    galpon_id: int | None = None
    galpon_nombre: str | None = None
    estado: str | None = None
    tipo: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class VerificarEspacioRequest:
    galpon: str = ""
    jaula: str = ""
    cantidad: int = 1
    capacidad: int | None = None


@dataclass(frozen=True, slots=True)
class ListPrenecesRequest:
    estado: str | None = None
    madre_id: int | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListCamadasRequest:
    madre_id: int | None = None
    padre_id: int | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListSaludRequest:
    cuy_id: int | None = None
    tipo: str | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListAlimentosRequest:
    proveedor_id: int | None = None
    stock_max: float | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListConsumosRequest:
    galpon: str | None = None
    alimento_id: int | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListVentasRequest:
    cliente_id: int | None = None
    estado_pago: str | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListGastosRequest:
    categoria: str | None = None
    fecha_desde: str | None = None
    fecha_hasta: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListAlertsRequest:
    alert_type: str | None = None
    severity: str | None = None
    read: bool | None = None
    user_id: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CreateAlertRequest:
    alert_type: str = ""
    severity: str = "medium"
    title: str = ""
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    related_entity_id: str | None = None
    related_entity_type: str | None = None


@dataclass(frozen=True, slots=True)
class ListChannelsRequest:
    enabled: bool | None = None
    channel_type: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CreateChannelRequest:
    name: str = ""
    channel_type: str = "in_app"
    config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    channel_id: str | None = None


@dataclass(frozen=True, slots=True)
class ListDeliveriesRequest:
    alert_id: str | None = None
    channel_id: str | None = None
    status: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CreateExportRequest:
    template_id: str = ""
    format: str = "pdf"
    parameters: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ListExportsRequest:
    status: str | None = None
    template_id: str | None = None
    limit: int = 50
    offset: int = 0
