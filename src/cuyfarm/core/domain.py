"""
Farm vocabulary and pure domain rules.

Enumerations for the values stored in the database, plus the small age
and gestation rules shared by the ops layer, the alert rules and the
report builders.  Nothing here touches the database.

Examples:
    >>> from datetime import date
    >>> edad_en_meses(date(2026, 1, 15), hoy=date(2026, 4, 14))
    2
    >>> etapa_automatica(date(2025, 1, 1), "H", hoy=date(2026, 1, 1))
    'Reproductora'
    >>> clasificar_gestacion(70).estado
    'Normal'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum


class Raza(str, Enum):
    PERUANO = "Peruano"
    ANDINO = "Andino"
    INTI = "Inti"
    CRIOLLO = "Criollo"
    MEJORADO = "Mejorado"
    OTROS = "Otros"


class Sexo(str, Enum):
    MACHO = "M"
    HEMBRA = "H"


class EstadoCuy(str, Enum):
    ACTIVO = "Activo"
    ENFERMO = "Enfermo"
    VENDIDO = "Vendido"
    FALLECIDO = "Fallecido"


class EtapaVida(str, Enum):
    CRIA = "Cría"
    JUVENIL = "Juvenil"
    ENGORDE = "Engorde"
    REPRODUCTOR = "Reproductor"
    REPRODUCTORA = "Reproductora"
    RETIRADO = "Retirado"


class Proposito(str, Enum):
    CRIA = "Cría"
    JUVENIL = "Juvenil"
    ENGORDE = "Engorde"
    REPRODUCCION = "Reproducción"
    VENTA = "Venta"
    INDEFINIDO = "Indefinido"


class EstadoGalpon(str, Enum):
    ACTIVO = "Activo"
    INACTIVO = "Inactivo"
    MANTENIMIENTO = "Mantenimiento"


class TipoJaula(str, Enum):
    ESTANDAR = "Estándar"
    CRIA = "Cría"
    ENGORDE = "Engorde"
    REPRODUCCION = "Reproducción"
    CUARENTENA = "Cuarentena"


class EstadoPrenez(str, Enum):
    ACTIVA = "activa"
    COMPLETADA = "completada"
    FALLIDA = "fallida"


# ── Constants ────────────────────────────────────────────────────────────

PESO_MIN_KG = 0.05
PESO_MAX_KG = 5.0
PESO_CRIA_KG = 0.08
GALPON_CAPACIDAD_DEFAULT = 50
JAULA_CAPACIDAD_DEFAULT = 10
MAX_CRIAS_POR_CAMADA = 20

GESTACION_MIN = 59
GESTACION_OPTIMA = 68
GESTACION_MAX = 75
GESTACION_CRITICA = 80
GESTACION_DEFAULT = 70


def today() -> date:
    return datetime.now(UTC).date()


def utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


def parse_date(value: str | date | datetime | None) -> date | None:
    """Coerce an ISO string / datetime to a ``date`` (``None`` passes through)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# ── Age rules ────────────────────────────────────────────────────────────


def edad_en_meses(fecha_nacimiento: date, hoy: date | None = None) -> int:
    """Completed months between birth and *hoy*, never negative."""
    hoy = hoy or today()
    meses = (hoy.year - fecha_nacimiento.year) * 12 + (hoy.month - fecha_nacimiento.month)
    if hoy.day < fecha_nacimiento.day:
        meses -= 1
    return max(0, meses)


def etapa_automatica(fecha_nacimiento: date, sexo: str, hoy: date | None = None) -> str:
    """Life stage from age and sex: Cría <3 months, Juvenil <6, then by sex."""
    meses = edad_en_meses(fecha_nacimiento, hoy)
    if meses < 3:
        return EtapaVida.CRIA.value
    if meses < 6:
        return EtapaVida.JUVENIL.value
    if sexo == Sexo.MACHO.value:
        return EtapaVida.ENGORDE.value
    if sexo == Sexo.HEMBRA.value:
        return EtapaVida.REPRODUCTORA.value
    return EtapaVida.JUVENIL.value


def proposito_automatico(etapa: str) -> str:
    if etapa == EtapaVida.ENGORDE.value:
        return Proposito.ENGORDE.value
    if etapa in (EtapaVida.REPRODUCTORA.value, EtapaVida.REPRODUCTOR.value):
        return Proposito.REPRODUCCION.value
    return Proposito.INDEFINIDO.value


def etapa_por_edad_dias(edad_dias: float, sexo: str) -> tuple[str, str]:
    """Stage and purpose used when registering a whole cage at once.

    Months are counted as 30-day blocks: <1 Cría, <2 Juvenil, males go to
    Engorde, females of 3+ months to Reproductora.
    """
    meses = int(edad_dias // 30)
    if meses < 1:
        return EtapaVida.CRIA.value, Proposito.CRIA.value
    if meses < 2:
        return EtapaVida.JUVENIL.value, Proposito.JUVENIL.value
    if sexo == Sexo.HEMBRA.value and meses >= 3:
        return EtapaVida.REPRODUCTORA.value, Proposito.REPRODUCCION.value
    return EtapaVida.ENGORDE.value, Proposito.ENGORDE.value


# ── Gestation rules ──────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class GestacionEvaluacion:
    """Classification of a gestation length."""

    dias: int
    estado: str
    valida: bool
    mensaje: str
    recomendaciones: list[str] = field(default_factory=list)


def clasificar_gestacion(dias: int) -> GestacionEvaluacion:
    """Classify a gestation length in days.

    ``<59`` Prematuro (invalid), ``59-75`` Normal, ``76-80`` Tardío,
    ``>80`` Crítico (invalid).
    """
    if dias < GESTACION_MIN:
        return GestacionEvaluacion(
            dias=dias,
            estado="Prematuro",
            valida=False,
            mensaje=f"Gestación de {dias} días es menor al mínimo de {GESTACION_MIN} días",
            recomendaciones=[
                "Verificar la fecha de preñez registrada",
                "Vigilar a la madre y a las crías por bajo peso",
            ],
        )
    if dias <= GESTACION_MAX:
        recomendaciones = ["Gestación dentro del rango normal"]
        if dias != GESTACION_OPTIMA:
            recomendaciones.append(f"El período óptimo es de {GESTACION_OPTIMA} días")
        return GestacionEvaluacion(
            dias=dias,
            estado="Normal",
            valida=True,
            mensaje=f"Gestación de {dias} días dentro del rango normal",
            recomendaciones=recomendaciones,
        )
    if dias <= GESTACION_CRITICA:
        return GestacionEvaluacion(
            dias=dias,
            estado="Tardio",
            valida=True,
            mensaje=f"Gestación de {dias} días supera el máximo habitual de {GESTACION_MAX} días",
            recomendaciones=[
                "Monitorear a la madre diariamente",
                "Consultar al veterinario si no hay signos de parto",
            ],
        )
    return GestacionEvaluacion(
        dias=dias,
        estado="Critico",
        valida=False,
        mensaje=f"Gestación de {dias} días excede el límite crítico de {GESTACION_CRITICA} días",
        recomendaciones=[
            "Evaluación veterinaria inmediata",
            "Revisar si la preñez debe marcarse como fallida",
        ],
    )


def fecha_parto_probable(fecha_prenez: date, dias: int = GESTACION_DEFAULT) -> date:
    return fecha_prenez + timedelta(days=dias)
