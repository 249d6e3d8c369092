"""
Dashboard router: farm-wide figures for the home screen.

Endpoints:
    GET /dashboard/metrics            Headline numbers for the current month
    GET /dashboard/population-growth  Births, deaths and population per month
    GET /dashboard/ventas-stats       Sales amount and units per month
    GET /dashboard/gastos-stats       Current-month expenses by category
    GET /dashboard/productividad      Births and litters per shed
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from cuyfarm.api.deps import OpContext, Settings
from cuyfarm.api.utils import _single
from cuyfarm.ops import dashboard as ops

router = APIRouter(prefix="/dashboard")


@router.get("/metrics")
def metrics(ctx: OpContext, settings: Settings):
    """Inventory value uses the configured price per kg (CUYFARM_PRECIO_KG)."""
    return _single(ops.metrics(ctx, settings.precio_kg))


@router.get("/population-growth")
def population_growth(ctx: OpContext, months: int = Query(6, ge=1, le=24)):
    return _single(ops.population_growth(ctx, months))


@router.get("/ventas-stats")
def ventas_stats(ctx: OpContext, months: int = Query(6, ge=1, le=24)):
    return _single(ops.ventas_stats(ctx, months))


@router.get("/gastos-stats")
def gastos_stats(ctx: OpContext):
    return _single(ops.gastos_stats(ctx))


@router.get("/productividad")
def productividad(ctx: OpContext):
    return _single(ops.productividad(ctx))
