"""
Animal (cuy) operations.

CRUD with automatic life stage / purpose, population statistics, the
purpose change rules and bulk registration of a whole cage.
"""

from __future__ import annotations

import random
from datetime import timedelta
from typing import Any

from cuyfarm.core.domain import (
    PESO_MAX_KG,
    PESO_MIN_KG,
    EstadoCuy,
    Proposito,
    Sexo,
    edad_en_meses,
    etapa_automatica,
    etapa_por_edad_dias,
    parse_date,
    proposito_automatico,
    today,
    utcnow_iso,
)
from cuyfarm.core.errors import ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import CuyRepository
from cuyfarm.ops._helpers import clean, fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.galpones import espacio_en_jaula
from cuyfarm.ops.requests import CambiarPropositoRequest, ListCuyesRequest, RegistrarJaulaRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_FIELDS = frozenset({
    "raza", "fecha_nacimiento", "sexo", "peso", "galpon", "jaula", "estado",
    "etapa_vida", "proposito", "fecha_venta", "fecha_fallecimiento", "camada_id",
    "notas", "ultima_evaluacion",
})


def _cuy_repo(ctx: OperationContext) -> CuyRepository:
    return CuyRepository(ctx.conn)


def validar_cuy(cuy: dict[str, Any]) -> None:
    """Record-level rules that must hold after every create or update."""
    nacimiento = parse_date(cuy.get("fecha_nacimiento"))
    if nacimiento and nacimiento > today():
        raise ValidationError(
            "fecha_nacimiento cannot be in the future", details={"field": "fecha_nacimiento"},
        )
    peso = cuy.get("peso")
    if peso is not None and not (PESO_MIN_KG <= float(peso) <= PESO_MAX_KG):
        raise ValidationError(
            f"peso must be between {PESO_MIN_KG} and {PESO_MAX_KG} kg", details={"field": "peso"},
        )
    estado = cuy.get("estado")
    if estado == EstadoCuy.VENDIDO.value and not cuy.get("fecha_venta"):
        raise ValidationError("Vendido requires fecha_venta", details={"field": "fecha_venta"})
    if estado == EstadoCuy.FALLECIDO.value and not cuy.get("fecha_fallecimiento"):
        raise ValidationError(
            "Fallecido requires fecha_fallecimiento", details={"field": "fecha_fallecimiento"},
        )


# ------------------------------------------------------------------ #
# CRUD
# ------------------------------------------------------------------ #


def list_cuyes(ctx: OperationContext, request: ListCuyesRequest) -> PagedResult[dict]:
    """List animals, newest first, with exact-match filters and free-text search."""
    timer = start_timer()
    try:
        rows, total = _cuy_repo(ctx).list_cuyes(
            galpon=request.galpon,
            jaula=request.jaula,
            raza=request.raza,
            sexo=request.sexo,
            estado=request.estado,
            etapa_vida=request.etapa_vida,
            proposito=request.proposito,
            search=request.search,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            rows, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list cuyes", elapsed_ms=timer.elapsed_ms, paged=True)


def get_cuy(ctx: OperationContext, cuy_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = _cuy_repo(ctx).get(cuy_id)
        if not row:
            return not_found("Cuy", cuy_id, timer.elapsed_ms)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get cuy", elapsed_ms=timer.elapsed_ms)


def create_cuy(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Create an animal, deriving etapa_vida / proposito when omitted."""
    timer = start_timer()
    try:
        row = clean(data, _FIELDS)
        row.setdefault("estado", EstadoCuy.ACTIVO.value)
        validar_cuy(row)
        if not row.get("etapa_vida"):
            row["etapa_vida"] = etapa_automatica(parse_date(row["fecha_nacimiento"]), row["sexo"])
        if not row.get("proposito"):
            row["proposito"] = proposito_automatico(row["etapa_vida"])
        now = utcnow_iso()
        row.update({"created_at": now, "updated_at": now})

        repo = _cuy_repo(ctx)
        cuy_id = repo.create(row)
        ctx.conn.commit()
        logger.info("cuy_created", cuy_id=cuy_id, etapa=row["etapa_vida"], galpon=row.get("galpon"))
        return OperationResult.ok(repo.get(cuy_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create cuy", elapsed_ms=timer.elapsed_ms)


def update_cuy(ctx: OperationContext, cuy_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    """Partial update.

    A change of birth date or sex re-derives the stage and purpose unless
    the payload sets them explicitly.
    """
    timer = start_timer()
    try:
        repo = _cuy_repo(ctx)
        current = repo.get(cuy_id)
        if not current:
            return not_found("Cuy", cuy_id, timer.elapsed_ms)

        updates = clean(data, _FIELDS)
        merged = {**current, **updates}
        validar_cuy(merged)

        changed = any(
            k in updates and updates[k] != current[k] for k in ("fecha_nacimiento", "sexo")
        )
        if changed and "etapa_vida" not in updates:
            updates["etapa_vida"] = etapa_automatica(
                parse_date(merged["fecha_nacimiento"]), merged["sexo"],
            )
            if "proposito" not in updates:
                updates["proposito"] = proposito_automatico(updates["etapa_vida"])

        if updates:
            updates["updated_at"] = utcnow_iso()
            repo.update_cuy(cuy_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(repo.get(cuy_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update cuy", elapsed_ms=timer.elapsed_ms)


def delete_cuy(ctx: OperationContext, cuy_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = _cuy_repo(ctx)
        if not repo.get(cuy_id):
            return not_found("Cuy", cuy_id, timer.elapsed_ms)
        repo.delete(cuy_id)
        ctx.conn.commit()
        logger.info("cuy_deleted", cuy_id=cuy_id)
        return OperationResult.ok({"id": cuy_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete cuy", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Statistics and purpose
# ------------------------------------------------------------------ #


def cuyes_stats(ctx: OperationContext) -> OperationResult[dict]:
    """Herd totals: sexes and young exclude sold animals."""
    timer = start_timer()
    try:
        repo = _cuy_repo(ctx)
        hace_dos_meses = (today() - timedelta(days=60)).isoformat()
        total = repo.count_where("1=1")
        crias = repo.count_where("fecha_nacimiento >= ? AND estado != 'Vendido'", (hace_dos_meses,))
        vigentes = repo.count_where("estado != 'Vendido'")
        return OperationResult.ok(
            {
                "total": total,
                "machos": repo.count_where("sexo = 'M' AND estado != 'Vendido'"),
                "hembras": repo.count_where("sexo = 'H' AND estado != 'Vendido'"),
                "crias": crias,
                "adultos": max(0, vigentes - crias),
                "razas": [
                    {"raza": r["raza"], "total": int(r["total"])} for r in repo.raza_counts()
                ],
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute cuy stats", elapsed_ms=timer.elapsed_ms)


def cambiar_proposito(ctx: OperationContext, request: CambiarPropositoRequest) -> OperationResult[dict]:
    """Change purpose (and optionally stage) subject to minimum ages.

    Nothing under 2 months may change; breeding needs 4 months for males
    and 3 months for females.
    """
    timer = start_timer()
    try:
        repo = _cuy_repo(ctx)
        cuy = repo.get(request.cuy_id)
        if not cuy:
            return not_found("Cuy", request.cuy_id, timer.elapsed_ms)

        meses = edad_en_meses(parse_date(cuy["fecha_nacimiento"]))
        if meses < 2:
            raise ValidationError("Cannot change the purpose of animals younger than 2 months")
        if request.proposito == Proposito.REPRODUCCION.value:
            minimo = 4 if cuy["sexo"] == Sexo.MACHO.value else 3
            if meses < minimo:
                raise ValidationError(
                    f"Breeding requires at least {minimo} months for sexo {cuy['sexo']}",
                    details={"edad_meses": meses},
                )

        updates: dict[str, Any] = {"proposito": request.proposito, "updated_at": utcnow_iso()}
        if request.etapa_vida:
            updates["etapa_vida"] = request.etapa_vida
        repo.update_cuy(request.cuy_id, updates)
        ctx.conn.commit()
        logger.info("cuy_proposito_changed", cuy_id=request.cuy_id, proposito=request.proposito)
        return OperationResult.ok(repo.get(request.cuy_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "change purpose", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Bulk registration
# ------------------------------------------------------------------ #


def registrar_jaula(
    ctx: OperationContext,
    request: RegistrarJaulaRequest,
    *,
    rng: random.Random | None = None,
) -> OperationResult[dict]:
    """Register every animal of a cage at once.

    Each unit gets a jittered age (±``variacion_edad`` days) and weight
    (±``variacion_peso`` grams, clamped to the valid weight range).  The whole batch is refused when the
    cage lacks room.
    """
    timer = start_timer()
    rng = rng or random.Random()
    try:
        cantidad = sum(g.cantidad for g in request.grupos)
        if cantidad < 1:
            raise ValidationError("At least one group with cantidad >= 1 is required")
        espacio = espacio_en_jaula(ctx, request.galpon, request.jaula, cantidad)
        if not espacio["ok"]:
            raise ValidationError(
                f"Jaula {request.galpon}/{request.jaula} lacks room for {cantidad} cuyes",
                details=espacio,
            )

        repo = _cuy_repo(ctx)
        hoy = today()
        now = utcnow_iso()
        ids: list[int] = []
        for grupo in request.grupos:
            var_edad = grupo.variacion_edad or 3
            var_peso = grupo.variacion_peso or 50
            for _ in range(grupo.cantidad):
                edad = max(0.0, grupo.edad_dias + rng.uniform(-var_edad, var_edad))
                gramos = grupo.peso_promedio + rng.uniform(-var_peso, var_peso)
                etapa, proposito = etapa_por_edad_dias(edad, grupo.sexo)
                ids.append(repo.create({
                    "raza": request.raza,
                    "fecha_nacimiento": (hoy - timedelta(days=round(edad))).isoformat(),
                    "sexo": grupo.sexo,
                    "peso": min(PESO_MAX_KG, max(PESO_MIN_KG, round(gramos) / 1000)),
                    "galpon": request.galpon,
                    "jaula": request.jaula,
                    "estado": EstadoCuy.ACTIVO.value,
                    "etapa_vida": etapa,
                    "proposito": proposito,
                    "created_at": now,
                    "updated_at": now,
                }))
        ctx.conn.commit()
        logger.info("jaula_registrada", galpon=request.galpon, jaula=request.jaula, total=len(ids))
        return OperationResult.ok(
            {"total": len(ids), "ids": ids, "galpon": request.galpon, "jaula": request.jaula},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "register cage", elapsed_ms=timer.elapsed_ms)
