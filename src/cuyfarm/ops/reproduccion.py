"""
Reproduction operations: pregnancies (preñez) and litters (camadas).

A pregnancy is ``activa`` until it is completed (a litter is registered
against it) or marked ``fallida``.  Registering a litter may create one
animal per live offspring; the litter, its animals and the pregnancy
state change are written in a single transaction.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, timedelta
from typing import Any

from cuyfarm.core.domain import (
    GESTACION_CRITICA,
    GESTACION_MIN,
    GESTACION_OPTIMA,
    MAX_CRIAS_POR_CAMADA,
    PESO_CRIA_KG,
    EstadoCuy,
    EstadoPrenez,
    EtapaVida,
    Proposito,
    Sexo,
    clasificar_gestacion,
    edad_en_meses,
    fecha_parto_probable,
    parse_date,
    today,
    utcnow_iso,
)
from cuyfarm.core.errors import ConflictError, NotFoundError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import CamadaRepository, CuyRepository, PrenezRepository
from cuyfarm.ops._helpers import clean, fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import ListCamadasRequest, ListPrenecesRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_PRENEZ_FIELDS = frozenset({"madre_id", "padre_id", "fecha_prenez", "fecha_probable_parto", "notas"})
_CAMADA_FIELDS = frozenset({
    "fecha_nacimiento", "num_vivos", "num_muertos", "num_machos", "num_hembras",
    "madre_id", "padre_id", "prenez_id",
})
MAX_BULK_DELETE = 50


def _dias_entre(desde: str | date, hasta: str | date) -> int:
    return (parse_date(hasta) - parse_date(desde)).days


def _tasa(parte: int, total: int) -> float:
    return round(parte * 100 / total, 1) if total else 0.0


# ------------------------------------------------------------------ #
# Preñez validation
# ------------------------------------------------------------------ #


def _validar_madre(cuyes: CuyRepository, madre_id: int) -> dict[str, Any]:
    madre = cuyes.get(madre_id)
    if not madre:
        raise NotFoundError(f"Madre {madre_id} not found", details={"field": "madre_id"})
    if madre["sexo"] != Sexo.HEMBRA.value:
        raise ValidationError(f"Cuy {madre_id} is not female", details={"field": "madre_id"})
    if madre["estado"] != EstadoCuy.ACTIVO.value:
        raise ValidationError(f"Madre {madre_id} is not active", details={"field": "madre_id"})
    return madre


def _validar_padre(cuyes: CuyRepository, padre_id: int, madre_id: int) -> dict[str, Any]:
    if padre_id == madre_id:
        raise ValidationError("padre_id must differ from madre_id", details={"field": "padre_id"})
    padre = cuyes.get(padre_id)
    if not padre:
        raise NotFoundError(f"Padre {padre_id} not found", details={"field": "padre_id"})
    if padre["sexo"] != Sexo.MACHO.value:
        raise ValidationError(f"Cuy {padre_id} is not male", details={"field": "padre_id"})
    return padre


def _resolver_fechas(fecha_prenez: str, fecha_probable_parto: str | None) -> str:
    """Validate dates and return the probable birth date as ISO text."""
    inicio = parse_date(fecha_prenez)
    if inicio > today():
        raise ValidationError("fecha_prenez cannot be in the future", details={"field": "fecha_prenez"})
    if not fecha_probable_parto:
        return fecha_parto_probable(inicio).isoformat()
    dias = _dias_entre(inicio, fecha_probable_parto)
    if not GESTACION_MIN <= dias <= GESTACION_CRITICA:
        raise ValidationError(
            f"fecha_probable_parto must be {GESTACION_MIN}-{GESTACION_CRITICA} days after fecha_prenez",
            details={"field": "fecha_probable_parto", "dias": dias},
        )
    return parse_date(fecha_probable_parto).isoformat()


# ------------------------------------------------------------------ #
# Preñez CRUD
# ------------------------------------------------------------------ #


def list_preneces(ctx: OperationContext, request: ListPrenecesRequest) -> PagedResult[dict]:
    timer = start_timer()
    try:
        if request.fecha_desde and request.fecha_hasta and request.fecha_desde > request.fecha_hasta:
            raise ValidationError("fecha_desde must not be after fecha_hasta")
        rows, total = PrenezRepository(ctx.conn).list_preneces(
            estado=request.estado,
            madre_id=request.madre_id,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            search=request.search,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            rows, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list preñeces", elapsed_ms=timer.elapsed_ms, paged=True)


def list_preneces_activas(ctx: OperationContext) -> OperationResult[list[dict]]:
    timer = start_timer()
    try:
        return OperationResult.ok(PrenezRepository(ctx.conn).activas(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list active preñeces", elapsed_ms=timer.elapsed_ms)


def proximos_partos(ctx: OperationContext, dias: int = 7) -> OperationResult[list[dict]]:
    """Active pregnancies due between today and today + *dias*."""
    timer = start_timer()
    try:
        hoy = today()
        rows = PrenezRepository(ctx.conn).partos_entre(
            hoy.isoformat(), (hoy + timedelta(days=dias)).isoformat(),
        )
        for row in rows:
            row["dias_restantes"] = _dias_entre(hoy, row["fecha_probable_parto"])
        return OperationResult.ok(rows, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list upcoming births", elapsed_ms=timer.elapsed_ms)


def get_prenez(ctx: OperationContext, prenez_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = PrenezRepository(ctx.conn).get(prenez_id)
        if not row:
            return not_found("Preñez", prenez_id, timer.elapsed_ms)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get preñez", elapsed_ms=timer.elapsed_ms)


def create_prenez(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Register a pregnancy.

    The mother must be an active female without another active
    pregnancy; the father, when given, must be a different male.
    """
    timer = start_timer()
    try:
        row = clean(data, _PRENEZ_FIELDS)
        cuyes = CuyRepository(ctx.conn)
        repo = PrenezRepository(ctx.conn)

        madre_id = row["madre_id"]
        _validar_madre(cuyes, madre_id)
        if row.get("padre_id") is not None:
            _validar_padre(cuyes, row["padre_id"], madre_id)
        row["fecha_probable_parto"] = _resolver_fechas(
            row["fecha_prenez"], row.get("fecha_probable_parto"),
        )
        existente = repo.activa_de_madre(madre_id)
        if existente:
            raise ConflictError(
                f"Madre {madre_id} already has an active preñez",
                details={"prenez_id": existente["id"]},
            )

        now = utcnow_iso()
        row.update({"estado": EstadoPrenez.ACTIVA.value, "created_at": now, "updated_at": now})
        prenez_id = repo.create(row)
        ctx.conn.commit()
        logger.info("prenez_created", prenez_id=prenez_id, madre_id=madre_id)
        return OperationResult.ok(repo.get(prenez_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create preñez", elapsed_ms=timer.elapsed_ms)


def update_prenez(ctx: OperationContext, prenez_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = PrenezRepository(ctx.conn)
        current = repo.get(prenez_id)
        if not current:
            return not_found("Preñez", prenez_id, timer.elapsed_ms)
        updates = clean(data, _PRENEZ_FIELDS - {"madre_id"})
        if updates.get("padre_id") is not None:
            _validar_padre(CuyRepository(ctx.conn), updates["padre_id"], current["madre_id"])
        if "fecha_prenez" in updates or "fecha_probable_parto" in updates:
            fecha_prenez = updates.get("fecha_prenez", current["fecha_prenez"])
            parto = updates.get("fecha_probable_parto")
            if parto is None and "fecha_prenez" not in updates:
                parto = current["fecha_probable_parto"]
            updates["fecha_probable_parto"] = _resolver_fechas(fecha_prenez, parto)
        if updates:
            updates["updated_at"] = utcnow_iso()
            repo.update(repo.TABLE, prenez_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(repo.get(prenez_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update preñez", elapsed_ms=timer.elapsed_ms)


def delete_prenez(ctx: OperationContext, prenez_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = PrenezRepository(ctx.conn)
        if not repo.get(prenez_id):
            return not_found("Preñez", prenez_id, timer.elapsed_ms)
        repo.delete(prenez_id)
        ctx.conn.commit()
        return OperationResult.ok({"id": prenez_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete preñez", elapsed_ms=timer.elapsed_ms)


def _prenez_activa(repo: PrenezRepository, prenez_id: int) -> dict[str, Any]:
    prenez = repo.get(prenez_id)
    if not prenez:
        raise NotFoundError(f"Preñez {prenez_id} not found")
    if prenez["estado"] != EstadoPrenez.ACTIVA.value:
        raise ConflictError(
            f"Preñez {prenez_id} is {prenez['estado']}, expected activa",
            details={"estado": prenez["estado"]},
        )
    return prenez


def completar_prenez(
    ctx: OperationContext, prenez_id: int, camada: dict[str, Any],
) -> OperationResult[dict]:
    """Register the litter of an active pregnancy and close it."""
    timer = start_timer()
    try:
        repo = PrenezRepository(ctx.conn)
        prenez = _prenez_activa(repo, prenez_id)
        payload = {**camada, "prenez_id": prenez_id}
        payload.setdefault("madre_id", prenez["madre_id"])
        if payload.get("padre_id") is None:
            payload["padre_id"] = prenez["padre_id"]
        camada_id, crias = _registrar_camada(ctx, payload)
        ctx.conn.commit()
        logger.info("prenez_completed", prenez_id=prenez_id, camada_id=camada_id, crias=len(crias))
        return OperationResult.ok(
            {"prenez": repo.get(prenez_id), "camada_id": camada_id, "crias": crias},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "complete preñez", elapsed_ms=timer.elapsed_ms)


def marcar_fallida(ctx: OperationContext, prenez_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = PrenezRepository(ctx.conn)
        _prenez_activa(repo, prenez_id)
        now = utcnow_iso()
        repo.update(repo.TABLE, prenez_id, {
            "estado": EstadoPrenez.FALLIDA.value,
            "fecha_completada": now,
            "updated_at": now,
        })
        ctx.conn.commit()
        logger.info("prenez_failed", prenez_id=prenez_id)
        return OperationResult.ok(repo.get(prenez_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "mark preñez as failed", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Gestation, statistics and breeding helpers
# ------------------------------------------------------------------ #


def validar_gestacion(
    ctx: OperationContext, fecha_prenez: str, fecha_parto: str,
) -> OperationResult[dict]:
    timer = start_timer()
    try:
        dias = _dias_entre(fecha_prenez, fecha_parto)
        if dias < 0:
            raise ValidationError("fecha_parto must not be before fecha_prenez")
        evaluacion = asdict(clasificar_gestacion(dias))
        evaluacion["dias_optimos"] = GESTACION_OPTIMA
        return OperationResult.ok(evaluacion, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "validate gestation", elapsed_ms=timer.elapsed_ms)


def estadisticas_reproduccion(ctx: OperationContext) -> OperationResult[dict]:
    timer = start_timer()
    try:
        preneces = PrenezRepository(ctx.conn)
        camadas = CamadaRepository(ctx.conn)
        hoy = today()
        por_estado = preneces.counts_by_estado()
        completadas = por_estado.get(EstadoPrenez.COMPLETADA.value, 0)
        fallidas = por_estado.get(EstadoPrenez.FALLIDA.value, 0)

        todas = camadas.all()
        n = len(todas)
        recientes = [c for c in todas if c["fecha_nacimiento"] >= (hoy - timedelta(days=30)).isoformat()]
        crias = sum(c["num_vivos"] + c["num_muertos"] for c in todas)
        vivos = sum(c["num_vivos"] for c in todas)

        return OperationResult.ok(
            {
                "resumen": {
                    "total_preneces": sum(por_estado.values()),
                    "preneces_activas": por_estado.get(EstadoPrenez.ACTIVA.value, 0),
                    "preneces_completadas": completadas,
                    "preneces_fallidas": fallidas,
                    "total_camadas": n,
                    "camadas_recientes": len(recientes),
                    "proximos_partos": len(preneces.partos_entre(
                        hoy.isoformat(), (hoy + timedelta(days=7)).isoformat(),
                    )),
                    "preneces_vencidas": preneces.vencidas(hoy.isoformat()),
                },
                "promedios": {
                    "crias_por_camada": round(crias / n, 1) if n else 0.0,
                    "vivos_por_camada": round(vivos / n, 1) if n else 0.0,
                    "tasa_exito": _tasa(completadas, completadas + fallidas),
                },
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute reproduction stats", elapsed_ms=timer.elapsed_ms)


def _estadisticas_progenitor(ctx: OperationContext, cuy_id: int, column: str) -> dict[str, Any]:
    if not CuyRepository(ctx.conn).get(cuy_id):
        raise NotFoundError(f"Cuy {cuy_id} not found")
    camadas = CamadaRepository(ctx.conn).by_parent(column, cuy_id)
    n = len(camadas)
    vivos = sum(c["num_vivos"] for c in camadas)
    stats = {
        "cuy_id": cuy_id,
        "total_camadas": n,
        "total_crias": sum(c["num_vivos"] + c["num_muertos"] for c in camadas),
        "promedio_vivos": round(vivos / n, 1) if n else 0.0,
        "ultima_camada": camadas[0]["fecha_nacimiento"] if camadas else None,
        "camadas": camadas,
    }
    if column == "madre_id":
        por_estado = PrenezRepository(ctx.conn).counts_by_estado(madre_id=cuy_id)
        total = sum(por_estado.values())
        stats["total_preneces"] = total
        stats["tasa_exito"] = _tasa(por_estado.get(EstadoPrenez.COMPLETADA.value, 0), total)
    return stats


def estadisticas_madre(ctx: OperationContext, madre_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        return OperationResult.ok(
            _estadisticas_progenitor(ctx, madre_id, "madre_id"), elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute mother stats", elapsed_ms=timer.elapsed_ms)


def estadisticas_padre(ctx: OperationContext, padre_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        return OperationResult.ok(
            _estadisticas_progenitor(ctx, padre_id, "padre_id"), elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute father stats", elapsed_ms=timer.elapsed_ms)


def madres_elegibles(ctx: OperationContext) -> OperationResult[list[dict]]:
    """Mothers whose active pregnancy has reached the minimum gestation."""
    timer = start_timer()
    try:
        cuyes = CuyRepository(ctx.conn)
        hoy = today()
        elegibles = []
        for prenez in PrenezRepository(ctx.conn).activas():
            dias = _dias_entre(prenez["fecha_prenez"], hoy)
            if dias < GESTACION_MIN:
                continue
            elegibles.append({
                "prenez_id": prenez["id"],
                "madre": cuyes.get(prenez["madre_id"]),
                "fecha_prenez": prenez["fecha_prenez"],
                "fecha_probable_parto": prenez["fecha_probable_parto"],
                "dias_gestacion": dias,
                "estado_gestacion": clasificar_gestacion(dias).estado,
            })
        return OperationResult.ok(elegibles, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list eligible mothers", elapsed_ms=timer.elapsed_ms)


def verificar_compatibilidad(
    ctx: OperationContext, madre_id: int, padre_id: int,
) -> OperationResult[dict]:
    """Check a breeding pair and score it.

    ``compatible`` is false when any hard rule fails (same animal, wrong
    sexes, inactive).  The score starts at 100 and is adjusted by breed,
    age gap, weight and shared shed, clamped to 0-100.
    """
    timer = start_timer()
    try:
        cuyes = CuyRepository(ctx.conn)
        madre = cuyes.get(madre_id)
        padre = cuyes.get(padre_id)
        if not madre or not padre:
            raise NotFoundError("Madre or padre not found")

        motivos: list[str] = []
        if madre_id == padre_id:
            motivos.append("madre and padre are the same animal")
        if madre["sexo"] != Sexo.HEMBRA.value:
            motivos.append("madre is not female")
        if padre["sexo"] != Sexo.MACHO.value:
            motivos.append("padre is not male")
        for rol, cuy in (("madre", madre), ("padre", padre)):
            if cuy["estado"] != EstadoCuy.ACTIVO.value:
                motivos.append(f"{rol} is not active")

        score = 100
        recomendaciones: list[str] = []
        advertencias: list[str] = []
        if madre["raza"] == padre["raza"]:
            score += 10
            recomendaciones.append("Same breed")
        else:
            score -= 5
            advertencias.append("Cross-breed pairing")

        diferencia = abs(
            edad_en_meses(parse_date(madre["fecha_nacimiento"]))
            - edad_en_meses(parse_date(padre["fecha_nacimiento"]))
        )
        if diferencia <= 6:
            score += 5
        elif diferencia <= 12:
            score -= 2
            advertencias.append("Moderate age gap")
        else:
            score -= 10
            advertencias.append("Large age gap")

        if 0.8 <= float(madre["peso"]) <= 1.5:
            score += 5
        else:
            score -= 5
            advertencias.append("Madre weight outside 0.8-1.5 kg")
        if 1.0 <= float(padre["peso"]) <= 2.0:
            score += 5
        else:
            score -= 5
            advertencias.append("Padre weight outside 1.0-2.0 kg")
        if madre["galpon"] == padre["galpon"]:
            score += 3
            recomendaciones.append("Both in the same galpón")

        score = max(0, min(100, score))
        nivel = (
            "Excelente" if score >= 85 else
            "Buena" if score >= 70 else
            "Regular" if score >= 55 else
            "Baja"
        )
        return OperationResult.ok(
            {
                "compatible": not motivos,
                "motivos": motivos,
                "score": score,
                "nivel": nivel,
                "recomendaciones": recomendaciones,
                "advertencias": advertencias,
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "check compatibility", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Camadas
# ------------------------------------------------------------------ #


def _validar_fecha_camada(nacimiento: date | None) -> None:
    hoy = today()
    if nacimiento is None:
        raise ValidationError("fecha_nacimiento is required", details={"field": "fecha_nacimiento"})
    if nacimiento > hoy:
        raise ValidationError("fecha_nacimiento cannot be in the future", details={"field": "fecha_nacimiento"})
    if nacimiento < hoy - timedelta(days=365):
        raise ValidationError(
            "fecha_nacimiento cannot be more than one year ago", details={"field": "fecha_nacimiento"},
        )


def validar_camada(
    camada: dict[str, Any], *, crear_cuyes: bool = False, check_fecha: bool = True,
) -> None:
    """Validate a litter row.

    ``check_fecha=False`` skips the birth-date window, so edits that leave
    the date alone still work once the litter is over a year old.
    """
    if check_fecha:
        _validar_fecha_camada(parse_date(camada.get("fecha_nacimiento")))
    vivos = int(camada.get("num_vivos") or 0)
    muertos = int(camada.get("num_muertos") or 0)
    if not 0 <= vivos <= MAX_CRIAS_POR_CAMADA or not 0 <= muertos <= MAX_CRIAS_POR_CAMADA:
        raise ValidationError(f"num_vivos and num_muertos must be 0-{MAX_CRIAS_POR_CAMADA}")
    if not 0 < vivos + muertos <= MAX_CRIAS_POR_CAMADA:
        raise ValidationError(
            f"A camada must have between 1 and {MAX_CRIAS_POR_CAMADA} crías in total",
        )
    madre_id, padre_id = camada.get("madre_id"), camada.get("padre_id")
    if madre_id is not None and madre_id == padre_id:
        raise ValidationError("madre_id and padre_id must differ", details={"field": "padre_id"})
    if crear_cuyes:
        machos = int(camada.get("num_machos") or 0)
        hembras = int(camada.get("num_hembras") or 0)
        if machos + hembras != vivos:
            raise ValidationError(
                "num_machos + num_hembras must equal num_vivos",
                details={"num_machos": machos, "num_hembras": hembras, "num_vivos": vivos},
            )


def _registrar_camada(ctx: OperationContext, data: dict[str, Any]) -> tuple[int, list[int]]:
    """Insert a litter, its offspring and close its pregnancy.  No commit."""
    crear_cuyes = bool(data.get("crear_cuyes"))
    row = clean(data, _CAMADA_FIELDS)
    validar_camada(row, crear_cuyes=crear_cuyes)
    row["fecha_nacimiento"] = parse_date(row["fecha_nacimiento"]).isoformat()
    row.setdefault("num_muertos", 0)

    cuyes = CuyRepository(ctx.conn)
    preneces = PrenezRepository(ctx.conn)
    prenez_id = row.get("prenez_id")
    if prenez_id is not None:
        prenez = _prenez_activa(preneces, prenez_id)
        if row.get("madre_id") is None:
            row["madre_id"] = prenez["madre_id"]

    now = utcnow_iso()
    row["created_at"] = now
    camada_id = CamadaRepository(ctx.conn).create(row)

    crias: list[int] = []
    if crear_cuyes:
        madre = cuyes.get(row["madre_id"]) if row.get("madre_id") else None
        sexos = [Sexo.MACHO.value] * int(row.get("num_machos") or 0) \
            + [Sexo.HEMBRA.value] * int(row.get("num_hembras") or 0)
        for sexo in sexos:
            crias.append(cuyes.create({
                "raza": madre["raza"] if madre else "Otros",
                "fecha_nacimiento": row["fecha_nacimiento"],
                "sexo": sexo,
                "peso": PESO_CRIA_KG,
                "galpon": madre["galpon"] if madre else "General",
                "jaula": madre["jaula"] if madre else "General",
                "estado": EstadoCuy.ACTIVO.value,
                "etapa_vida": EtapaVida.CRIA.value,
                "proposito": Proposito.INDEFINIDO.value,
                "camada_id": camada_id,
                "ultima_evaluacion": now,
                "created_at": now,
                "updated_at": now,
            }))

    if prenez_id is not None:
        preneces.update(preneces.TABLE, prenez_id, {
            "estado": EstadoPrenez.COMPLETADA.value,
            "fecha_completada": now,
            "camada_id": camada_id,
            "updated_at": now,
        })
    return camada_id, crias


def list_camadas(ctx: OperationContext, request: ListCamadasRequest) -> PagedResult[dict]:
    timer = start_timer()
    try:
        rows, total = CamadaRepository(ctx.conn).list_camadas(
            madre_id=request.madre_id,
            padre_id=request.padre_id,
            fecha_desde=request.fecha_desde,
            fecha_hasta=request.fecha_hasta,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            rows, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list camadas", elapsed_ms=timer.elapsed_ms, paged=True)


def get_camada(ctx: OperationContext, camada_id: int) -> OperationResult[dict]:
    """A litter together with the animals born in it."""
    timer = start_timer()
    try:
        row = CamadaRepository(ctx.conn).get(camada_id)
        if not row:
            return not_found("Camada", camada_id, timer.elapsed_ms)
        row["crias"] = CuyRepository(ctx.conn).list_by_camada(camada_id)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get camada", elapsed_ms=timer.elapsed_ms)


def create_camada(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        camada_id, crias = _registrar_camada(ctx, data)
        ctx.conn.commit()
        logger.info("camada_created", camada_id=camada_id, crias=len(crias))
        camada = CamadaRepository(ctx.conn).get(camada_id)
        camada["crias_creadas"] = crias
        return OperationResult.ok(camada, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create camada", elapsed_ms=timer.elapsed_ms)


def update_camada(ctx: OperationContext, camada_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = CamadaRepository(ctx.conn)
        current = repo.get(camada_id)
        if not current:
            return not_found("Camada", camada_id, timer.elapsed_ms)
        updates = clean(data, _CAMADA_FIELDS - {"prenez_id"})
        cambia_fecha = "fecha_nacimiento" in updates
        validar_camada({**current, **updates}, check_fecha=cambia_fecha)
        if cambia_fecha:
            updates["fecha_nacimiento"] = parse_date(updates["fecha_nacimiento"]).isoformat()
        if updates:
            repo.update(repo.TABLE, camada_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(repo.get(camada_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update camada", elapsed_ms=timer.elapsed_ms)


def _borrar_camada(ctx: OperationContext, camada_id: int) -> int:
    desvinculados = CuyRepository(ctx.conn).clear_camada(camada_id)
    repo = CamadaRepository(ctx.conn)
    repo.detach_prenez(camada_id)
    repo.delete(camada_id)
    return desvinculados


def delete_camada(ctx: OperationContext, camada_id: int) -> OperationResult[dict]:
    """Delete a litter; its animals stay but lose the litter link."""
    timer = start_timer()
    try:
        if not CamadaRepository(ctx.conn).get(camada_id):
            return not_found("Camada", camada_id, timer.elapsed_ms)
        desvinculados = _borrar_camada(ctx, camada_id)
        ctx.conn.commit()
        return OperationResult.ok(
            {"id": camada_id, "deleted": True, "cuyes_desvinculados": desvinculados},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete camada", elapsed_ms=timer.elapsed_ms)


def bulk_delete_camadas(ctx: OperationContext, ids: list[int]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if not 1 <= len(ids) <= MAX_BULK_DELETE:
            raise ValidationError(f"Between 1 and {MAX_BULK_DELETE} ids are required")
        repo = CamadaRepository(ctx.conn)
        eliminadas: list[int] = []
        faltantes: list[int] = []
        desvinculados = 0
        for camada_id in dict.fromkeys(ids):
            if not repo.get(camada_id):
                faltantes.append(camada_id)
                continue
            desvinculados += _borrar_camada(ctx, camada_id)
            eliminadas.append(camada_id)
        ctx.conn.commit()
        logger.info("camadas_bulk_deleted", deleted=len(eliminadas), missing=len(faltantes))
        return OperationResult.ok(
            {"deleted": eliminadas, "not_found": faltantes, "cuyes_desvinculados": desvinculados},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "bulk delete camadas", elapsed_ms=timer.elapsed_ms)


def estadisticas_camadas(ctx: OperationContext, dias: int = 30) -> OperationResult[dict]:
    """Litter totals over the last *dias* days (1-365)."""
    timer = start_timer()
    try:
        if not 1 <= dias <= 365:
            raise ValidationError("dias must be between 1 and 365", details={"field": "dias"})
        desde = (today() - timedelta(days=dias)).isoformat()
        camadas = CamadaRepository(ctx.conn).desde(desde)
        n = len(camadas)
        vivos = sum(c["num_vivos"] for c in camadas)
        muertos = sum(c["num_muertos"] for c in camadas)
        return OperationResult.ok(
            {
                "periodo_dias": dias,
                "total_camadas": n,
                "total_vivos": vivos,
                "total_muertos": muertos,
                "total_machos": sum(c["num_machos"] for c in camadas),
                "total_hembras": sum(c["num_hembras"] for c in camadas),
                "promedio_vivos": round(vivos / n, 1) if n else 0.0,
                "tasa_supervivencia": _tasa(vivos, vivos + muertos),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute litter stats", elapsed_ms=timer.elapsed_ms)
