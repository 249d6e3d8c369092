"""Tests for the alert rules in ``cuyfarm.alerts.rules``."""

from __future__ import annotations

from datetime import timedelta

import pytest

from cuyfarm.alerts.protocol import AlertSeverity, AlertType
from cuyfarm.alerts.rules import (
    RULES,
    birth_reminders,
    birth_severity,
    capacity_severity,
    capacity_warnings,
    inactive_reproducers,
    overdue_pregnancies,
)
from cuyfarm.core.domain import today


def _ago(days: int) -> str:
    return (today() - timedelta(days=days)).isoformat()


class TestSeverities:
    @pytest.mark.parametrize(
        ("days", "expected"),
        [(0, AlertSeverity.CRITICAL), (1, AlertSeverity.CRITICAL), (2, AlertSeverity.HIGH),
         (3, AlertSeverity.HIGH), (4, AlertSeverity.MEDIUM), (7, AlertSeverity.MEDIUM)],
    )
    def test_birth(self, days, expected):
        assert birth_severity(days) == expected

    def test_capacity(self):
        assert capacity_severity(89.9) is None
        assert capacity_severity(90) == AlertSeverity.HIGH
        assert capacity_severity(95) == AlertSeverity.CRITICAL

    def test_severity_ordering(self):
        assert AlertSeverity.LOW < AlertSeverity.MEDIUM < AlertSeverity.HIGH < AlertSeverity.CRITICAL
        assert AlertSeverity.CRITICAL >= AlertSeverity.HIGH


class TestBirthReminders:
    def test_due_within_week(self, conn, make_cuy, make_prenez):
        prenez = make_prenez(make_cuy()["id"], dias=68)
        make_prenez(make_cuy()["id"], dias=30)

        alerts = birth_reminders(conn)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.BIRTH_REMINDER
        assert alert.severity == AlertSeverity.HIGH
        assert alert.related_entity_id == str(prenez["id"])
        assert alert.related_entity_type == "prenez"
        assert alert.data["days_until_birth"] == 2

    def test_due_tomorrow_is_critical(self, conn, make_cuy, make_prenez):
        make_prenez(make_cuy()["id"], dias=69)
        assert birth_reminders(conn)[0].severity == AlertSeverity.CRITICAL

    def test_explicit_reference_date(self, conn, make_cuy, make_prenez):
        make_prenez(make_cuy()["id"], dias=30)
        assert birth_reminders(conn, today() + timedelta(days=36)) != []
        assert birth_reminders(conn) == []


class TestOverdue:
    def test_started_75_days_ago(self, conn, make_cuy, make_prenez):
        vencida = make_prenez(make_cuy()["id"], dias=78, fecha_probable_parto=_ago(0))
        make_prenez(make_cuy()["id"], dias=60)

        alerts = overdue_pregnancies(conn)
        assert [a.related_entity_id for a in alerts] == [str(vencida["id"])]
        assert alerts[0].severity == AlertSeverity.HIGH
        assert alerts[0].data["days_overdue"] == 8


class TestInactiveReproducers:
    def test_female_without_recent_pregnancy(self, conn, make_cuy, make_prenez):
        ociosa = make_cuy(sexo="H")
        ocupada = make_cuy(sexo="H")
        make_prenez(ocupada["id"], dias=20)
        make_cuy(sexo="M")
        make_cuy(sexo="H", fecha_nacimiento=_ago(30))

        alerts = inactive_reproducers(conn)
        assert [a.data["cuy_id"] for a in alerts] == [ociosa["id"]]
        assert alerts[0].severity == AlertSeverity.MEDIUM
        assert alerts[0].related_entity_type == "cuy"


class TestCapacityWarnings:
    def test_default_capacity_is_fifty(self, conn, make_cuy):
        for _ in range(45):
            make_cuy(sexo="M", galpon="Grande")
        alerts = capacity_warnings(conn)
        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.HIGH
        assert alerts[0].data["utilization_percentage"] == 90.0

    def test_shed_capacity_row(self, conn, make_cuy, make_galpon):
        make_galpon("Chico", capacidad_maxima=4)
        for _ in range(4):
            make_cuy(sexo="M", galpon="Chico")
        make_cuy(sexo="M", galpon="Otro")

        alerts = capacity_warnings(conn)
        assert [a.related_entity_id for a in alerts] == ["Chico"]
        assert alerts[0].severity == AlertSeverity.CRITICAL


def test_every_rule_is_registered():
    assert set(RULES) == {
        AlertType.BIRTH_REMINDER,
        AlertType.OVERDUE_PREGNANCY,
        AlertType.INACTIVE_REPRODUCER,
        AlertType.CAPACITY_WARNING,
    }
