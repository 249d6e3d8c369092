"""
Alert rules.

Each rule reads the farm's current state and returns the alerts it
would raise, unsaved.  The ops layer drops candidates that already have
an unread alert for the same record and persists the rest.

Rules:
    birth_reminder        active pregnancies due within 7 days
    overdue_pregnancy     active pregnancies started 75+ days ago
    inactive_reproducer   breeding females without a pregnancy in 90 days
    capacity_warning      sheds at 90% of capacity or more
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta
from typing import Any

from cuyfarm.alerts.protocol import Alert, AlertSeverity, AlertType
from cuyfarm.core.domain import GALPON_CAPACIDAD_DEFAULT, GESTACION_DEFAULT, parse_date, today
from cuyfarm.core.repositories import CuyRepository, GalponRepository, PrenezRepository

BIRTH_WINDOW_DAYS = 7
OVERDUE_AFTER_DAYS = 75
INACTIVE_DAYS = 90
CAPACITY_HIGH = 90.0
CAPACITY_CRITICAL = 95.0


def birth_severity(days_until_birth: int) -> AlertSeverity:
    if days_until_birth <= 1:
        return AlertSeverity.CRITICAL
    if days_until_birth <= 3:
        return AlertSeverity.HIGH
    return AlertSeverity.MEDIUM


def capacity_severity(percentage: float) -> AlertSeverity | None:
    if percentage >= CAPACITY_CRITICAL:
        return AlertSeverity.CRITICAL
    if percentage >= CAPACITY_HIGH:
        return AlertSeverity.HIGH
    return None


def birth_reminders(conn: Any, hoy: date | None = None) -> list[Alert]:
    hoy = hoy or today()
    hasta = hoy + timedelta(days=BIRTH_WINDOW_DAYS)
    alerts = []
    for prenez in PrenezRepository(conn).partos_entre(hoy.isoformat(), hasta.isoformat()):
        parto = parse_date(prenez["fecha_probable_parto"])
        dias = (parto - hoy).days
        alerts.append(Alert(
            type=AlertType.BIRTH_REMINDER,
            severity=birth_severity(dias),
            title=f"Parto próximo en {dias} día(s)",
            message=f"La hembra ID {prenez['madre_id']} tiene parto programado para {parto.isoformat()}",
            data={
                "prenez_id": prenez["id"],
                "madre_id": prenez["madre_id"],
                "fecha_probable_parto": parto.isoformat(),
                "days_until_birth": dias,
            },
            related_entity_id=str(prenez["id"]),
            related_entity_type="prenez",
        ))
    return alerts


def overdue_pregnancies(conn: Any, hoy: date | None = None) -> list[Alert]:
    hoy = hoy or today()
    limite = hoy - timedelta(days=OVERDUE_AFTER_DAYS)
    alerts = []
    for prenez in PrenezRepository(conn).activas_desde_antes_de(limite.isoformat()):
        fecha = parse_date(prenez["fecha_prenez"])
        retraso = (hoy - fecha).days - GESTACION_DEFAULT
        alerts.append(Alert(
            type=AlertType.OVERDUE_PREGNANCY,
            severity=AlertSeverity.HIGH,
            title=f"Preñez vencida: {retraso} días de retraso",
            message=(
                f"La hembra ID {prenez['madre_id']} tiene una preñez que excede "
                f"el período normal por {retraso} días"
            ),
            data={
                "prenez_id": prenez["id"],
                "madre_id": prenez["madre_id"],
                "fecha_prenez": fecha.isoformat(),
                "days_overdue": retraso,
            },
            related_entity_id=str(prenez["id"]),
            related_entity_type="prenez",
        ))
    return alerts


def inactive_reproducers(conn: Any, hoy: date | None = None) -> list[Alert]:
    hoy = hoy or today()
    desde = (hoy - timedelta(days=INACTIVE_DAYS)).isoformat()
    activas = PrenezRepository(conn).madres_con_prenez_desde(desde)
    alerts = []
    for cuy in CuyRepository(conn).reproductoras_activas():
        if cuy["id"] in activas:
            continue
        alerts.append(Alert(
            type=AlertType.INACTIVE_REPRODUCER,
            severity=AlertSeverity.MEDIUM,
            title=f"Reproductora inactiva: {cuy['raza']}",
            message=(
                f"La hembra ID {cuy['id']} ({cuy['galpon']}-{cuy['jaula']}) no ha tenido "
                f"actividad reproductiva en los últimos {INACTIVE_DAYS} días"
            ),
            data={
                "cuy_id": cuy["id"],
                "raza": cuy["raza"],
                "galpon": cuy["galpon"],
                "jaula": cuy["jaula"],
                "inactive_days": INACTIVE_DAYS,
            },
            related_entity_id=str(cuy["id"]),
            related_entity_type="cuy",
        ))
    return alerts


def capacity_warnings(conn: Any, hoy: date | None = None) -> list[Alert]:
    capacidades = GalponRepository(conn).capacities()
    alerts = []
    for row in CuyRepository(conn).active_counts_by_galpon():
        galpon, ocupacion = row["galpon"], int(row["total"])
        capacidad = capacidades.get(galpon) or GALPON_CAPACIDAD_DEFAULT
        porcentaje = ocupacion / capacidad * 100
        severity = capacity_severity(porcentaje)
        if severity is None:
            continue
        alerts.append(Alert(
            type=AlertType.CAPACITY_WARNING,
            severity=severity,
            title=f"Capacidad crítica en {galpon}",
            message=(
                f"El galpón {galpon} está al {porcentaje:.1f}% de su capacidad "
                f"({ocupacion}/{capacidad})"
            ),
            data={
                "galpon": galpon,
                "current_occupancy": ocupacion,
                "max_capacity": capacidad,
                "utilization_percentage": round(porcentaje, 1),
            },
            related_entity_id=galpon,
            related_entity_type="galpon",
        ))
    return alerts


RULES: dict[AlertType, Callable[[Any, date | None], list[Alert]]] = {
    AlertType.BIRTH_REMINDER: birth_reminders,
    AlertType.OVERDUE_PREGNANCY: overdue_pregnancies,
    AlertType.INACTIVE_REPRODUCER: inactive_reproducers,
    AlertType.CAPACITY_WARNING: capacity_warnings,
}
