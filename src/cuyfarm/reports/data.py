"""
Report data builders.

Each builder reads the database for a date range and returns a
:class:`ReportData`: a title, a flat ``summary`` mapping and a list of
tabular sections.  Generators render that structure without knowing
which template produced it.

Parameters accepted by every template::

    {"date_range": {"from": "2024-01-01", "to": "2024-01-31"}}

The range defaults to the last 30 days.  ``inventory`` also accepts
``galpon`` to restrict the animal listing to one shed.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from cuyfarm.core.domain import GALPON_CAPACIDAD_DEFAULT, parse_date, today
from cuyfarm.core.errors import ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import (
    CamadaRepository,
    CuyRepository,
    GalponRepository,
    GastoRepository,
    JaulaRepository,
    PrenezRepository,
    SaludRepository,
    VentaRepository,
)
from cuyfarm.reports.formats import ReportTemplate

logger = get_logger(__name__)

DEFAULT_PERIOD_DAYS = 30


@dataclass
class Section:
    title: str
    columns: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "columns": self.columns, "rows": self.rows}


@dataclass
class ReportData:
    """Template-independent report content."""

    template_id: str
    title: str
    desde: str
    hasta: str
    parameters: dict[str, Any] = field(default_factory=dict)
    summary: dict[str, Any] = field(default_factory=dict)
    sections: list[Section] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "generated_at": self.generated_at,
            "parameters": self.parameters,
            "title": self.title,
            "period": {"from": self.desde, "to": self.hasta},
            "summary": self.summary,
            "sections": [s.to_dict() for s in self.sections],
        }


def resolve_period(parameters: dict[str, Any], hoy: date | None = None) -> tuple[date, date]:
    """``(from, to)`` from ``parameters["date_range"]``, last 30 days by default."""
    hoy = hoy or today()
    rango = parameters.get("date_range") or {}
    try:
        desde = parse_date(rango.get("from")) or hoy - timedelta(days=DEFAULT_PERIOD_DAYS)
        hasta = parse_date(rango.get("to")) or hoy
    except ValueError as e:
        raise ValidationError(f"Invalid date in date_range: {e}", details={"field": "date_range"}) from e
    if desde > hasta:
        raise ValidationError("date_range.from must be before date_range.to", details={"field": "date_range"})
    return desde, hasta


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


# ── Builders ─────────────────────────────────────────────────────────────


def financial_data(conn: Any, parameters: dict[str, Any]) -> ReportData:
    desde, hasta = (d.isoformat() for d in resolve_period(parameters))
    ventas = VentaRepository(conn).between(desde, hasta)
    gastos_repo = GastoRepository(conn)
    gastos = gastos_repo.between(desde, hasta)

    ingresos = sum(float(v["total"]) for v in ventas)
    egresos = sum(float(g["monto"]) for g in gastos)
    ganancia = ingresos - egresos

    mensual: dict[str, dict[str, float]] = defaultdict(lambda: {"ingresos": 0.0, "gastos": 0.0})
    for v in ventas:
        mensual[v["fecha"][:7]]["ingresos"] += float(v["total"])
    for g in gastos:
        mensual[g["fecha"][:7]]["gastos"] += float(g["monto"])

    return ReportData(
        template_id=ReportTemplate.FINANCIAL.value,
        title="Reporte financiero",
        desde=desde,
        hasta=hasta,
        parameters=parameters,
        summary={
            "total_ingresos": round(ingresos, 2),
            "total_gastos": round(egresos, 2),
            "ganancia_neta": round(ganancia, 2),
            "margen": _pct(ganancia, ingresos),
            "ventas": len(ventas),
            "gastos": len(gastos),
        },
        sections=[
            Section(
                "Ventas",
                ["ID", "Fecha", "Cliente", "Unidades", "Total", "Estado de pago"],
                [[v["id"], v["fecha"], v.get("cliente") or "", int(v["unidades"]), round(float(v["total"]), 2),
                  v["estado_pago"]] for v in ventas],
            ),
            Section(
                "Gastos",
                ["ID", "Fecha", "Categoría", "Descripción", "Monto"],
                [[g["id"], g["fecha"], g["categoria"], g["descripcion"], round(float(g["monto"]), 2)]
                 for g in gastos],
            ),
            Section(
                "Gastos por categoría",
                ["Categoría", "Cantidad", "Total"],
                [[r["categoria"], int(r["cantidad"]), round(float(r["total"]), 2)]
                 for r in gastos_repo.por_categoria(desde, hasta)],
            ),
            Section(
                "Tendencia mensual",
                ["Mes", "Ingresos", "Gastos", "Ganancia"],
                [[mes, round(m["ingresos"], 2), round(m["gastos"], 2), round(m["ingresos"] - m["gastos"], 2)]
                 for mes, m in sorted(mensual.items())],
            ),
        ],
    )


def inventory_data(conn: Any, parameters: dict[str, Any]) -> ReportData:
    desde, hasta = (d.isoformat() for d in resolve_period(parameters))
    cuyes_repo = CuyRepository(conn)
    galpones = GalponRepository(conn)
    cuyes = cuyes_repo.list_present(parameters.get("galpon"))
    capacidades = galpones.capacities()
    ocupacion = {r["galpon"]: int(r["total"]) for r in cuyes_repo.active_counts_by_galpon()}

    nombres = sorted(set(capacidades) | set(ocupacion))
    capacidad_total = sum(capacidades.get(n) or GALPON_CAPACIDAD_DEFAULT for n in nombres)
    pesos = [float(c["peso"] or 0) for c in cuyes]

    return ReportData(
        template_id=ReportTemplate.INVENTORY.value,
        title="Reporte de inventario",
        desde=desde,
        hasta=hasta,
        parameters=parameters,
        summary={
            "total_cuyes": len(cuyes),
            "total_galpones": galpones.count(),
            "total_jaulas": JaulaRepository(conn).count(),
            "ocupacion": _pct(sum(ocupacion.values()), capacidad_total),
            "peso_promedio": round(sum(pesos) / len(pesos), 3) if pesos else 0.0,
        },
        sections=[
            Section(
                "Ocupación por galpón",
                ["Galpón", "Activos", "Capacidad", "Ocupación %"],
                [[n, ocupacion.get(n, 0), capacidades.get(n) or GALPON_CAPACIDAD_DEFAULT,
                  _pct(ocupacion.get(n, 0), capacidades.get(n) or GALPON_CAPACIDAD_DEFAULT)] for n in nombres],
            ),
            Section(
                "Distribución por etapa",
                ["Etapa", "Cantidad"],
                [[r["etapa_vida"], int(r["cantidad"])] for r in cuyes_repo.etapa_distribution()],
            ),
            Section(
                "Cuyes",
                ["ID", "Raza", "Sexo", "Etapa", "Peso (kg)", "Galpón", "Jaula", "Estado"],
                [[c["id"], c["raza"], c["sexo"], c["etapa_vida"], c["peso"], c["galpon"], c["jaula"], c["estado"]]
                 for c in cuyes],
            ),
        ],
    )


def reproductive_data(conn: Any, parameters: dict[str, Any]) -> ReportData:
    inicio, fin = resolve_period(parameters)
    desde, hasta = inicio.isoformat(), fin.isoformat()
    prenez_repo = PrenezRepository(conn)
    preneces, _ = prenez_repo.list_preneces(fecha_desde=desde, fecha_hasta=hasta, limit=10_000)
    camadas = CamadaRepository(conn).between(desde, hasta)

    completadas = sum(1 for p in preneces if p["estado"] == "completada")
    fallidas = sum(1 for p in preneces if p["estado"] == "fallida")
    crias = sum(int(c["num_vivos"]) for c in camadas)
    hoy = today()
    proximos = prenez_repo.partos_entre(hoy.isoformat(), (hoy + timedelta(days=30)).isoformat())

    return ReportData(
        template_id=ReportTemplate.REPRODUCTIVE.value,
        title="Reporte reproductivo",
        desde=desde,
        hasta=hasta,
        parameters=parameters,
        summary={
            "preneces_activas": prenez_repo.count("estado = 'activa'"),
            "partos_proximos_30_dias": len(proximos),
            "tasa_fertilidad": _pct(completadas, completadas + fallidas),
            "total_camadas": len(camadas),
            "total_crias": crias,
            "promedio_camada": round(crias / len(camadas), 2) if camadas else 0.0,
        },
        sections=[
            Section(
                "Preñeces",
                ["ID", "Madre", "Padre", "Fecha preñez", "Parto probable", "Estado"],
                [[p["id"], p["madre_id"], p["padre_id"] or "", p["fecha_prenez"], p["fecha_probable_parto"],
                  p["estado"]] for p in preneces],
            ),
            Section(
                "Camadas",
                ["ID", "Fecha nacimiento", "Madre", "Vivos", "Muertos", "Machos", "Hembras"],
                [[c["id"], c["fecha_nacimiento"], c["madre_id"] or "", c["num_vivos"], c["num_muertos"],
                  c["num_machos"], c["num_hembras"]] for c in camadas],
            ),
            Section(
                "Partos próximos",
                ["Preñez", "Madre", "Parto probable"],
                [[p["id"], p["madre_id"], p["fecha_probable_parto"]] for p in proximos],
            ),
        ],
    )


def health_data(conn: Any, parameters: dict[str, Any]) -> ReportData:
    desde, hasta = (d.isoformat() for d in resolve_period(parameters))
    registros = SaludRepository(conn).between(desde, hasta)
    cuyes = CuyRepository(conn)

    por_tipo: dict[str, dict[str, float]] = defaultdict(lambda: {"cantidad": 0, "costo": 0.0})
    for r in registros:
        por_tipo[r["tipo"]]["cantidad"] += 1
        por_tipo[r["tipo"]]["costo"] += float(r["costo"] or 0)
    fallecidos = cuyes.fallecidos_entre(desde, hasta)

    return ReportData(
        template_id=ReportTemplate.HEALTH.value,
        title="Reporte de salud",
        desde=desde,
        hasta=hasta,
        parameters=parameters,
        summary={
            "total_tratamientos": len(registros),
            "costo_total": round(sum(float(r["costo"] or 0) for r in registros), 2),
            "fallecidos": fallecidos,
            "tasa_mortalidad": _pct(fallecidos, cuyes.poblacion_al(desde)),
        },
        sections=[
            Section(
                "Registros de salud",
                ["ID", "Fecha", "Cuy", "Tipo", "Descripción", "Tratamiento", "Veterinario", "Costo"],
                [[r["id"], r["fecha"], r["cuy_id"], r["tipo"], r["descripcion"], r["tratamiento"] or "",
                  r["veterinario"] or "", round(float(r["costo"] or 0), 2)] for r in registros],
            ),
            Section(
                "Por tipo",
                ["Tipo", "Cantidad", "Costo"],
                [[tipo, int(v["cantidad"]), round(v["costo"], 2)]
                 for tipo, v in sorted(por_tipo.items(), key=lambda kv: -kv[1]["cantidad"])],
            ),
        ],
    )


BUILDERS: dict[str, Callable[[Any, dict[str, Any]], ReportData]] = {
    ReportTemplate.FINANCIAL.value: financial_data,
    ReportTemplate.INVENTORY.value: inventory_data,
    ReportTemplate.REPRODUCTIVE.value: reproductive_data,
    ReportTemplate.HEALTH.value: health_data,
}


def build_report_data(conn: Any, template_id: str, parameters: dict[str, Any] | None = None) -> ReportData:
    builder = BUILDERS.get(template_id)
    if builder is None:
        raise ValidationError(f"Unknown report template: {template_id}", details={"field": "template_id"})
    report = builder(conn, parameters or {})
    logger.info("report_data_built", template_id=template_id, sections=len(report.sections))
    return report
