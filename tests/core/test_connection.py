"""Tests for cuyfarm.core.connection and the SQLite adapter."""

from __future__ import annotations

import sqlite3

import pytest

from cuyfarm.core.connection import _parse_url, create_connection
from cuyfarm.core.schema import TABLES


class TestParseUrl:
    @pytest.mark.parametrize("url", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory(self, url):
        assert _parse_url(url) == ("memory", ":memory:")

    def test_sqlite_url(self):
        assert _parse_url("sqlite:////srv/farm.db") == ("sqlite", "/srv/farm.db")

    def test_postgres(self):
        assert _parse_url("postgres://u:p@h/db") == ("postgresql", "postgres://u:p@h/db")

    def test_async_driver_is_normalised(self):
        assert _parse_url("postgresql+asyncpg://u@h/db") == ("postgresql", "postgresql://u@h/db")

    def test_plain_path(self):
        assert _parse_url("./granja.db") == ("file", "./granja.db")


class TestCreateConnection:
    def test_memory_with_schema(self):
        conn, info = create_connection(init_schema=True)
        try:
            assert info.backend == "sqlite"
            assert info.persistent is False
            conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            names = {row[0] for row in conn.fetchall()}
            assert set(TABLES.values()) <= names
        finally:
            conn.close()

    def test_file_is_created_under_data_dir(self, tmp_path):
        conn, info = create_connection("nested/granja.db", data_dir=str(tmp_path), init_schema=True)
        try:
            assert info.persistent is True
            assert (tmp_path / "nested" / "granja.db").exists()
            assert info.resolved_path == str((tmp_path / "nested" / "granja.db").resolve())
        finally:
            conn.close()

    def test_schema_is_idempotent(self, tmp_path):
        path = str(tmp_path / "farm.db")
        for _ in range(2):
            conn, _info = create_connection(path, init_schema=True)
            conn.close()

    def test_foreign_keys_enforced(self):
        conn, _info = create_connection(init_schema=True)
        try:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO jaulas (nombre, galpon_id, galpon_nombre, created_at, updated_at) "
                    "VALUES ('J1', 999, 'X', 'now', 'now')"
                )
        finally:
            conn.close()
