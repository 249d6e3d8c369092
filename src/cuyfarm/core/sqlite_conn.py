"""SQLite adapter for the :class:`~cuyfarm.core.protocols.Connection` protocol.

Request handlers, background export tasks and scheduler jobs each open
their own connection to the same database file, so file databases run in
WAL mode with a busy timeout.  Foreign keys are switched on for every
connection; a dangling ``galpon_id`` or ``cliente_id`` therefore raises
``sqlite3.IntegrityError``, which the ops layer reports as ``FOREIGN_KEY``.
"""

from __future__ import annotations

import sqlite3
from typing import Any

MEMORY = ":memory:"


class SqliteConnection:
    """One ``sqlite3`` connection with a single shared cursor."""

    supports_returning = False

    def __init__(self, path: str = MEMORY, *, timeout: float = 30.0, row_factory: Any = sqlite3.Row) -> None:
        self.path = path
        self._conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._conn.execute("PRAGMA foreign_keys = ON")
        if path != MEMORY:
            self._conn.execute("PRAGMA journal_mode = WAL")
        self._cursor = self._conn.cursor()

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        self._cursor.executemany(sql, params)
        return self._cursor

    def executescript(self, script: str) -> None:
        self._conn.executescript(script)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"
