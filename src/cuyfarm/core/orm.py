"""SQLAlchemy engine factory and Connection bridge.

PostgreSQL deployments run the same raw-SQL repositories as SQLite:
:class:`SAConnectionBridge` wraps a SQLAlchemy ``Session`` so it satisfies
:class:`cuyfarm.core.protocols.Connection`, rewriting ``?`` placeholders to
SQLAlchemy named parameters.

This module provides:

* ``create_farm_engine``   -- Create a SA engine from a URL.
* ``FarmSession``          -- Session with ``expire_on_commit=False``.
* ``SAConnectionBridge``   -- Session → ``Connection`` adapter.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


def create_farm_engine(
    url: str = "sqlite:///cuyfarm.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``).
    echo:
        If ``True``, log all SQL.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class FarmSession(Session):
    """Pre-configured session with ``expire_on_commit=False``."""

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def _rewrite_placeholders(sql: str) -> str:
    """Convert positional ``?`` markers to ``:p0, :p1, …``."""
    rewritten, idx = [], 0
    for ch in sql:
        if ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    return "".join(rewritten)


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like a ``Connection``.

    Implements: ``execute``, ``executemany``, ``fetchone``, ``fetchall``,
    ``commit``, ``rollback``, ``close`` and a DB-API style ``description``.
    """

    supports_returning = True

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> SAConnectionBridge:
        if parameters:
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._session.execute(text(_rewrite_placeholders(sql)), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    def executemany(self, sql: str, seq_of_parameters: Sequence[Sequence[Any]]) -> SAConnectionBridge:
        for params in seq_of_parameters:
            self.execute(sql, params)
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None or not self._last_result.returns_rows:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    @property
    def rowcount(self) -> int:
        return self._last_result.rowcount if self._last_result is not None else 0

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def description(self) -> list[tuple[str, ...]] | None:
        """DB-API 2.0 compatible description from the last result."""
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        keys = list(self._last_result.keys())
        return [(k, None, None, None, None, None, None) for k in keys]

    @property
    def session(self) -> Session:
        return self._session
