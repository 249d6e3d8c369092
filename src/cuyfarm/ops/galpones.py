"""
Shed (galpón) and cage (jaula) operations.

CRUD for both tables, the per-shed occupancy summary and the cage space
check used before registering animals.  Unique names surface as
``CONFLICT``; a cage pointing at an unknown shed surfaces as
``FOREIGN_KEY``.
"""

from __future__ import annotations

from typing import Any

from cuyfarm.core.domain import JAULA_CAPACIDAD_DEFAULT, EstadoGalpon, utcnow_iso
from cuyfarm.core.errors import ConflictError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import CuyRepository, GalponRepository, JaulaRepository
from cuyfarm.ops._helpers import clean, fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import ListGalponesRequest, ListJaulasRequest, VerificarEspacioRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_GALPON_FIELDS = frozenset({"nombre", "descripcion", "ubicacion", "capacidad_maxima", "estado"})
_JAULA_FIELDS = frozenset({
    "nombre", "galpon_id", "descripcion", "capacidad_maxima", "tipo", "estado",
})


# ------------------------------------------------------------------ #
# Galpones
# ------------------------------------------------------------------ #


def list_galpones(ctx: OperationContext, request: ListGalponesRequest) -> PagedResult[dict]:
    timer = start_timer()
    try:
        rows, total = GalponRepository(ctx.conn).list_galpones(
            estado=request.estado, limit=request.limit, offset=request.offset,
        )
        return PagedResult.from_items(
            rows, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list galpones", elapsed_ms=timer.elapsed_ms, paged=True)


def get_galpon(ctx: OperationContext, galpon_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = GalponRepository(ctx.conn).get(galpon_id)
        if not row:
            return not_found("Galpón", galpon_id, timer.elapsed_ms)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get galpón", elapsed_ms=timer.elapsed_ms)


def validar_galpon(galpon: dict[str, Any], *, partial: bool = False) -> None:
    """Field rules shared by create and update; *partial* skips absent fields."""
    if not partial or "nombre" in galpon:
        nombre = str(galpon.get("nombre") or "").strip()
        if not 1 <= len(nombre) <= 10:
            raise ValidationError("nombre must be 1-10 characters", details={"field": "nombre"})
    capacidad = galpon.get("capacidad_maxima")
    if capacidad is not None and int(capacidad) < 1:
        raise ValidationError("capacidad_maxima must be at least 1", details={"field": "capacidad_maxima"})
    estado = galpon.get("estado")
    if estado is not None and estado not in {e.value for e in EstadoGalpon}:
        raise ValidationError(f"Unknown estado: {estado}", details={"field": "estado"})


def create_galpon(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Create a shed.  A dry run validates and checks the name is free."""
    timer = start_timer()
    try:
        repo = GalponRepository(ctx.conn)
        row = clean(data, _GALPON_FIELDS)
        validar_galpon(row)
        if ctx.dry_run:
            if repo.get_by_nombre(row["nombre"]):
                raise ConflictError(f"Galpón {row['nombre']} already exists", details={"field": "nombre"})
            return OperationResult.ok({"dry_run": True, "would_create": row}, elapsed_ms=timer.elapsed_ms)
        now = utcnow_iso()
        row.update({"created_at": now, "updated_at": now})
        galpon_id = repo.create(row)
        ctx.conn.commit()
        logger.info("galpon_created", galpon_id=galpon_id, nombre=row.get("nombre"))
        return OperationResult.ok(repo.get(galpon_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create galpón", elapsed_ms=timer.elapsed_ms)


def update_galpon(ctx: OperationContext, galpon_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    """Partial update.  Renaming a shed carries the new name onto its cages."""
    timer = start_timer()
    try:
        repo = GalponRepository(ctx.conn)
        current = repo.get(galpon_id)
        if not current:
            return not_found("Galpón", galpon_id, timer.elapsed_ms)
        updates = clean(data, _GALPON_FIELDS)
        if not updates:
            return OperationResult.ok(current, elapsed_ms=timer.elapsed_ms)
        validar_galpon(updates, partial=True)
        updates["updated_at"] = utcnow_iso()
        repo.update(repo.TABLE, galpon_id, updates)
        nuevo = updates.get("nombre")
        if nuevo and nuevo != current["nombre"]:
            JaulaRepository(ctx.conn).rename_galpon(current["nombre"], nuevo)
        ctx.conn.commit()
        return OperationResult.ok(repo.get(galpon_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update galpón", elapsed_ms=timer.elapsed_ms)


def delete_galpon(ctx: OperationContext, galpon_id: int) -> OperationResult[dict]:
    """Delete a shed.  Sheds that still own cages are refused by the FK."""
    timer = start_timer()
    try:
        repo = GalponRepository(ctx.conn)
        if not repo.get(galpon_id):
            return not_found("Galpón", galpon_id, timer.elapsed_ms)
        repo.delete(galpon_id)
        ctx.conn.commit()
        return OperationResult.ok({"id": galpon_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete galpón", elapsed_ms=timer.elapsed_ms)


def galpon_resumen(ctx: OperationContext, nombre: str) -> OperationResult[dict]:
    """Cages, present animals and occupancy of one shed."""
    timer = start_timer()
    try:
        galpon = GalponRepository(ctx.conn).get_by_nombre(nombre)
        if not galpon:
            return not_found("Galpón", nombre, timer.elapsed_ms)
        cuyes = CuyRepository(ctx.conn)
        jaulas = []
        for jaula in JaulaRepository(ctx.conn).by_galpon(nombre):
            ocupados = cuyes.count_in_jaula(nombre, jaula["nombre"])
            jaulas.append({
                **jaula,
                "total_cuyes": ocupados,
                "ocupacion": _porcentaje(ocupados, jaula["capacidad_maxima"]),
            })
        total = cuyes.count_in_galpon(nombre)
        capacidad = int(galpon["capacidad_maxima"])
        return OperationResult.ok(
            {
                "galpon": galpon,
                "jaulas": jaulas,
                "total_jaulas": len(jaulas),
                "total_cuyes": total,
                "capacidad_maxima": capacidad,
                "ocupacion": _porcentaje(total, capacidad),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "summarise galpón", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Jaulas
# ------------------------------------------------------------------ #


def list_jaulas(ctx: OperationContext, request: ListJaulasRequest) -> PagedResult[dict]:
    timer = start_timer()
    try:
        rows, total = JaulaRepository(ctx.conn).list_jaulas(
            galpon_id=request.galpon_id,
            galpon_nombre=request.galpon_nombre,
            estado=request.estado,
            tipo=request.tipo,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            rows, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list jaulas", elapsed_ms=timer.elapsed_ms, paged=True)


def get_jaula(ctx: OperationContext, jaula_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = JaulaRepository(ctx.conn).get(jaula_id)
        if not row:
            return not_found("Jaula", jaula_id, timer.elapsed_ms)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get jaula", elapsed_ms=timer.elapsed_ms)


def create_jaula(ctx: OperationContext, data: dict[str, Any]) -> OperationResult[dict]:
    """Create a cage.  ``galpon_nombre`` is copied from the parent shed."""
    timer = start_timer()
    try:
        repo = JaulaRepository(ctx.conn)
        row = clean(data, _JAULA_FIELDS)
        galpon = GalponRepository(ctx.conn).get(row.get("galpon_id"))
        # Unknown parents fall through to the FK constraint.
        row["galpon_nombre"] = galpon["nombre"] if galpon else data.get("galpon_nombre", "")
        now = utcnow_iso()
        row.update({"created_at": now, "updated_at": now})
        jaula_id = repo.create(row)
        ctx.conn.commit()
        logger.info("jaula_created", jaula_id=jaula_id, galpon=row["galpon_nombre"])
        return OperationResult.ok(repo.get(jaula_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create jaula", elapsed_ms=timer.elapsed_ms)


def update_jaula(ctx: OperationContext, jaula_id: int, data: dict[str, Any]) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = JaulaRepository(ctx.conn)
        if not repo.get(jaula_id):
            return not_found("Jaula", jaula_id, timer.elapsed_ms)
        updates = clean(data, _JAULA_FIELDS)
        if "galpon_id" in updates:
            galpon = GalponRepository(ctx.conn).get(updates["galpon_id"])
            if galpon:
                updates["galpon_nombre"] = galpon["nombre"]
        if updates:
            updates["updated_at"] = utcnow_iso()
            repo.update(repo.TABLE, jaula_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(repo.get(jaula_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update jaula", elapsed_ms=timer.elapsed_ms)


def delete_jaula(ctx: OperationContext, jaula_id: int) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = JaulaRepository(ctx.conn)
        if not repo.get(jaula_id):
            return not_found("Jaula", jaula_id, timer.elapsed_ms)
        repo.delete(jaula_id)
        ctx.conn.commit()
        return OperationResult.ok({"id": jaula_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete jaula", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Capacity
# ------------------------------------------------------------------ #


def espacio_en_jaula(
    ctx: OperationContext,
    galpon: str,
    jaula: str,
    cantidad: int,
    capacidad: int | None = None,
) -> dict[str, Any]:
    """Room check for *cantidad* new animals in a cage.

    The capacity comes from *capacidad*, else the cage row, else the
    default of 10.
    """
    if capacidad is None:
        row = JaulaRepository(ctx.conn).get_by_ubicacion(galpon, jaula)
        capacidad = int(row["capacidad_maxima"]) if row else JAULA_CAPACIDAD_DEFAULT
    total = CuyRepository(ctx.conn).count_in_jaula(galpon, jaula)
    faltantes = max(0, total + cantidad - capacidad)
    return {
        "ok": faltantes == 0,
        "total_cuyes": total,
        "capacidad": capacidad,
        "faltantes": faltantes,
    }


def verificar_espacio(ctx: OperationContext, request: VerificarEspacioRequest) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if request.cantidad < 1:
            raise ValidationError("cantidad must be at least 1", details={"field": "cantidad"})
        info = espacio_en_jaula(ctx, request.galpon, request.jaula, request.cantidad, request.capacidad)
        return OperationResult.ok(info, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "check cage space", elapsed_ms=timer.elapsed_ms)


def _porcentaje(parte: int, total: int) -> float:
    return round(parte * 100 / total, 1) if total else 0.0
