"""
Shared pytest fixtures for cuyfarm tests.

This module provides:
- An in-memory SQLite connection with the full schema
- Default and dry-run ``OperationContext`` objects
- Factories that seed animals, sheds and pregnancies through the ops layer

Usage:
    def test_something(ctx, make_cuy):
        cuy = make_cuy(sexo="M")
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from cuyfarm.core.connection import create_connection
from cuyfarm.core.domain import today
from cuyfarm.ops import cuyes as cuy_ops
from cuyfarm.ops import galpones as galpon_ops
from cuyfarm.ops import reproduccion as repro_ops
from cuyfarm.ops.context import OperationContext


def days_ago(n: int) -> str:
    """ISO date *n* days before today (UTC)."""
    return (today() - timedelta(days=n)).isoformat()


def days_ahead(n: int) -> str:
    return (today() + timedelta(days=n)).isoformat()


@pytest.fixture()
def conn():
    """In-memory SQLite connection with every table created."""
    connection, _info = create_connection(None, init_schema=True)
    yield connection
    connection.close()


@pytest.fixture()
def ctx(conn) -> OperationContext:
    return OperationContext(conn=conn, caller="test", user="tester")


@pytest.fixture()
def dry_ctx(conn) -> OperationContext:
    return OperationContext(conn=conn, caller="test", user="tester", dry_run=True)


@pytest.fixture()
def make_cuy(ctx):
    """Create an animal; defaults to a 200-day-old active female."""

    def _make(**overrides: Any) -> dict[str, Any]:
        data = {
            "raza": "Peruano",
            "fecha_nacimiento": days_ago(200),
            "sexo": "H",
            "peso": 1.2,
            "galpon": "G1",
            "jaula": "J1",
        }
        data.update(overrides)
        result = cuy_ops.create_cuy(ctx, data)
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture()
def make_galpon(ctx):
    def _make(nombre: str = "G1", **overrides: Any) -> dict[str, Any]:
        result = galpon_ops.create_galpon(ctx, {"nombre": nombre, **overrides})
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture()
def make_jaula(ctx):
    def _make(galpon_id: int, nombre: str = "J1", **overrides: Any) -> dict[str, Any]:
        result = galpon_ops.create_jaula(ctx, {"galpon_id": galpon_id, "nombre": nombre, **overrides})
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture()
def make_prenez(ctx):
    """Register a pregnancy started *dias* days ago (birth due at +70)."""

    def _make(madre_id: int, dias: int = 30, **overrides: Any) -> dict[str, Any]:
        data = {"madre_id": madre_id, "fecha_prenez": days_ago(dias)}
        data.update(overrides)
        result = repro_ops.create_prenez(ctx, data)
        assert result.success, result.error
        return result.data

    return _make
