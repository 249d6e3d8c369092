"""
Dashboard operations.

Aggregates over animals, sales and expenses for the farm's landing
page.  Month windows are calendar months; series are returned oldest
month first.
"""

from __future__ import annotations

import calendar
from datetime import date

from cuyfarm.core.domain import today
from cuyfarm.core.repositories import CuyRepository, GastoRepository, VentaRepository
from cuyfarm.ops._helpers import fail_from_exception
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.result import OperationResult, start_timer

PRECIO_KG_DEFAULT = 25.0


def _mes(ref: date, atras: int) -> tuple[date, date]:
    """First and last day of the month *atras* months before *ref*."""
    total = ref.year * 12 + (ref.month - 1) - atras
    year, month = divmod(total, 12)
    month += 1
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _ventanas(meses: int) -> list[tuple[date, date]]:
    hoy = today()
    return [_mes(hoy, i) for i in range(meses - 1, -1, -1)]


def metrics(ctx: OperationContext, precio_kg: float = PRECIO_KG_DEFAULT) -> OperationResult[dict]:
    """Headline numbers for the current month.

    ``rentabilidad`` is ``(ventas - gastos) / gastos * 100`` and 0 when
    there are no expenses.
    """
    timer = start_timer()
    try:
        cuyes = CuyRepository(ctx.conn)
        inicio, fin = _mes(today(), 0)
        desde, hasta = inicio.isoformat(), fin.isoformat()
        total_ventas = sum(float(v["total"]) for v in VentaRepository(ctx.conn).between(desde, hasta))
        total_gastos = sum(float(g["monto"]) for g in GastoRepository(ctx.conn).between(desde, hasta))
        inventario = sum(peso * precio_kg for peso in cuyes.active_weights())
        rentabilidad = (total_ventas - total_gastos) / total_gastos * 100 if total_gastos > 0 else 0.0
        return OperationResult.ok(
            {
                "total_cuyes": cuyes.count_where("estado = 'Activo'"),
                "total_ventas": round(total_ventas, 2),
                "total_gastos": round(total_gastos, 2),
                "inventario_valor": round(inventario, 2),
                "rentabilidad": round(rentabilidad, 2),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute dashboard metrics", elapsed_ms=timer.elapsed_ms)


def population_growth(ctx: OperationContext, months: int = 6) -> OperationResult[list[dict]]:
    timer = start_timer()
    try:
        cuyes = CuyRepository(ctx.conn)
        data = []
        for inicio, fin in _ventanas(months):
            desde, hasta = inicio.isoformat(), fin.isoformat()
            data.append({
                "mes": inicio.strftime("%Y-%m"),
                "nacimientos": cuyes.nacidos_entre(desde, hasta),
                "fallecimientos": cuyes.fallecidos_entre(desde, hasta),
                "total": cuyes.poblacion_al(hasta),
            })
        return OperationResult.ok(data, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute population growth", elapsed_ms=timer.elapsed_ms)


def ventas_stats(ctx: OperationContext, months: int = 6) -> OperationResult[list[dict]]:
    timer = start_timer()
    try:
        repo = VentaRepository(ctx.conn)
        data = []
        for inicio, fin in _ventanas(months):
            ventas = repo.between(inicio.isoformat(), fin.isoformat())
            data.append({
                "mes": inicio.strftime("%Y-%m"),
                "monto": round(sum(float(v["total"]) for v in ventas), 2),
                "unidades": sum(int(v["unidades"]) for v in ventas),
            })
        return OperationResult.ok(data, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute sales stats", elapsed_ms=timer.elapsed_ms)


def gastos_stats(ctx: OperationContext) -> OperationResult[list[dict]]:
    """Current-month expenses grouped by category."""
    timer = start_timer()
    try:
        inicio, fin = _mes(today(), 0)
        rows = GastoRepository(ctx.conn).por_categoria(inicio.isoformat(), fin.isoformat())
        return OperationResult.ok(
            [{"name": r["categoria"], "valor": round(float(r["total"]), 2)} for r in rows],
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute expense stats", elapsed_ms=timer.elapsed_ms)


def productividad(ctx: OperationContext) -> OperationResult[list[dict]]:
    """Births and distinct litters per shed since the start of the month three months back."""
    timer = start_timer()
    try:
        cuyes = CuyRepository(ctx.conn)
        desde = _mes(today(), 3)[0].isoformat()
        por_galpon = {r["galpon"]: r for r in cuyes.productividad_por_galpon(desde)}
        data = []
        for galpon in cuyes.distinct_galpones():
            row = por_galpon.get(galpon, {})
            data.append({
                "galpon": galpon,
                "nacimientos": int(row.get("nacimientos") or 0),
                "camadas": int(row.get("camadas") or 0),
            })
        return OperationResult.ok(data, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute productivity", elapsed_ms=timer.elapsed_ms)


__all__ = [
    "gastos_stats",
    "metrics",
    "population_growth",
    "productividad",
    "ventas_stats",
]
