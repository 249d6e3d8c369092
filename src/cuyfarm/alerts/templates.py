"""
Notification templates.

One template per alert type.  ``{{variable}}`` placeholders are filled
from the alert's ``data``; placeholders without a value are left as they
are so a missing field is visible in the delivered text.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

from cuyfarm.alerts.protocol import Alert

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class NotificationTemplate:
    id: str
    name: str
    alert_type: str
    subject: str
    body: str
    variables: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["variables"] = list(self.variables)
        return d


DEFAULT_TEMPLATES: dict[str, NotificationTemplate] = {
    t.alert_type: t
    for t in (
        NotificationTemplate(
            id="birth_reminder_template",
            name="Recordatorio de parto",
            alert_type="birth_reminder",
            subject="Recordatorio: parto próximo en {{days_until_birth}} día(s)",
            body=(
                "La hembra ID {{madre_id}} tiene un parto programado para {{fecha_probable_parto}}.\n"
                "Días restantes: {{days_until_birth}}\n\n"
                "Prepare las condiciones necesarias para el parto."
            ),
            variables=("madre_id", "fecha_probable_parto", "days_until_birth"),
        ),
        NotificationTemplate(
            id="overdue_pregnancy_template",
            name="Preñez vencida",
            alert_type="overdue_pregnancy",
            subject="Alerta: preñez vencida, {{days_overdue}} días de retraso",
            body=(
                "La hembra ID {{madre_id}} tiene una preñez que excede el período normal.\n"
                "Días de retraso: {{days_overdue}}\n"
                "Fecha de preñez: {{fecha_prenez}}\n\n"
                "Se recomienda una evaluación veterinaria inmediata."
            ),
            variables=("madre_id", "days_overdue", "fecha_prenez"),
        ),
        NotificationTemplate(
            id="inactive_reproducer_template",
            name="Reproductora inactiva",
            alert_type="inactive_reproducer",
            subject="Aviso: reproductora inactiva ({{raza}})",
            body=(
                "La hembra ID {{cuy_id}} ({{raza}}) ubicada en {{galpon}}-{{jaula}} no ha tenido "
                "actividad reproductiva en los últimos {{inactive_days}} días.\n\n"
                "Se recomienda evaluar su estado reproductivo."
            ),
            variables=("cuy_id", "raza", "galpon", "jaula", "inactive_days"),
        ),
        NotificationTemplate(
            id="capacity_warning_template",
            name="Advertencia de capacidad",
            alert_type="capacity_warning",
            subject="Alerta: capacidad crítica en {{galpon}}",
            body=(
                "El galpón {{galpon}} está alcanzando su capacidad máxima.\n"
                "Ocupación actual: {{current_occupancy}}/{{max_capacity}} "
                "({{utilization_percentage}}%)\n\n"
                "Considere redistribuir animales o ampliar la capacidad."
            ),
            variables=("galpon", "current_occupancy", "max_capacity", "utilization_percentage"),
        ),
    )
}


def render_template(text: str, variables: dict[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders with values from *variables*.

    >>> render_template("Hola {{nombre}} {{x}}", {"nombre": "Ana"})
    'Hola Ana {{x}}'
    """

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in variables or variables[key] is None:
            return match.group(0)
        return str(variables[key])

    return _PLACEHOLDER.sub(_sub, text)


def template_for(alert_type: str) -> NotificationTemplate | None:
    return DEFAULT_TEMPLATES.get(alert_type)


def render(template: NotificationTemplate, alert: Alert) -> tuple[str, str]:
    """Rendered ``(subject, body)`` for *alert*."""
    return render_template(template.subject, alert.data), render_template(template.body, alert.data)
