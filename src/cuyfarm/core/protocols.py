"""
Structural protocols shared across cuyfarm.

``Connection`` is the minimal synchronous database interface that
repositories and ops functions depend on.  ``sqlite3`` (through
:class:`~cuyfarm.core.sqlite_conn.SqliteConnection`) and SQLAlchemy
sessions (through :class:`~cuyfarm.core.orm.SAConnectionBridge`) both
satisfy it.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous connection interface.

    ::

        execute(sql, params)   → cursor-like result
        executemany(sql, list) → cursor-like result
        fetchone()             → one row of the last result
        fetchall()             → remaining rows of the last result
        commit() / rollback()  → transaction control
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def executemany(self, sql: str, params: list[tuple]) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
