"""Base repository with portable database access.

Provides :class:`BaseRepository` - pairs a
:class:`~cuyfarm.core.protocols.Connection` with helper methods so that
domain repositories write plain ``?``-placeholder SQL that runs on both
SQLite and PostgreSQL (through the SQLAlchemy bridge).

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from cuyfarm.core.protocols   │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   scalar(sql, params)      → first column of first row             │
    │   insert(table, data)      → new row id                            │
    │   update(table, id, data)  → None                                  │
    │   paginate(...)            → (rows, total)                         │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class GastoRepository(BaseRepository):
    ...     def get(self, gasto_id: int):
    ...         return self.query_one(
    ...             f"SELECT * FROM gastos WHERE id = {self.ph(1)}",
    ...             (gasto_id,),
    ...         )
"""

from __future__ import annotations

from typing import Any

from cuyfarm.core.protocols import Connection


def _build_where(
    conditions: dict[str, Any],
    *,
    extra_clauses: list[str] | None = None,
    extra_params: tuple = (),
) -> tuple[str, tuple]:
    """Build a WHERE clause from a conditions dict.

    Returns ``(where_fragment, params_tuple)``.  Skips ``None`` values.
    ``extra_clauses`` are appended as-is with their ``extra_params``.
    """
    parts: list[str] = []
    params: list[Any] = []
    for col, val in conditions.items():
        if val is None:
            continue
        parts.append(f"{col} = ?")
        params.append(val)
    if extra_clauses:
        parts.extend(extra_clauses)
        params.extend(extra_params)
    where = " AND ".join(parts) if parts else "1=1"
    return where, tuple(params)


class BaseRepository:
    """Base class for data-access repositories.

    Subclasses set ``TABLE`` and gain generic ``get`` / ``delete`` /
    ``paginate`` helpers on top of the raw query helpers.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
    """

    TABLE: str = ""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def ph(self, count: int) -> str:
        """Comma-separated ``?`` placeholders for f-strings."""
        return ", ".join("?" * count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts.

        Mapping rows (``sqlite3.Row``) convert directly; tuple rows use the
        cursor ``description`` for column names.
        """
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []

        if hasattr(rows[0], "keys"):
            return [dict(row) for row in rows]

        description = getattr(cursor, "description", None)
        if description:
            columns = [desc[0] for desc in description]
            return [dict(zip(columns, row, strict=False)) for row in rows]

        return [{i: v for i, v in enumerate(row)} for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def scalar(self, sql: str, params: tuple = (), default: Any = 0) -> Any:
        """Return the first column of the first row, or *default*."""
        row = self.query_one(sql, params)
        if not row:
            return default
        value = next(iter(row.values()))
        return default if value is None else value

    # -- Write helpers -----------------------------------------------------

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert a single row from a dict and return its id.

        Tables keyed by text ids return the ``id`` supplied in *data*.
        """
        columns = list(data.keys())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({self.ph(len(columns))})"
        if "id" in data:
            self.conn.execute(sql, tuple(data.values()))
            return data["id"]

        if getattr(self.conn, "supports_returning", False):
            self.conn.execute(f"{sql} RETURNING id", tuple(data.values()))
            row = self.conn.fetchone()
            return row[0] if row else None

        cursor = self.conn.execute(sql, tuple(data.values()))
        return cursor.lastrowid

    def update(self, table: str, row_id: Any, updates: dict[str, Any]) -> None:
        """Update columns of the row identified by *row_id*."""
        if not updates:
            return
        sets = ", ".join(f"{k} = ?" for k in updates)
        self.conn.execute(
            f"UPDATE {table} SET {sets} WHERE id = ?",
            (*updates.values(), row_id),
        )

    def commit(self) -> None:
        """Commit the current transaction."""
        self.conn.commit()

    # -- Generic table helpers --------------------------------------------

    def get(self, row_id: Any) -> dict[str, Any] | None:
        """Fetch a row of ``TABLE`` by primary key."""
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = ?", (row_id,))

    def delete(self, row_id: Any) -> None:
        """Delete a row of ``TABLE`` by primary key."""
        self.conn.execute(f"DELETE FROM {self.TABLE} WHERE id = ?", (row_id,))

    def count(self, where: str = "1=1", params: tuple = ()) -> int:
        return int(self.scalar(f"SELECT COUNT(*) AS cnt FROM {self.TABLE} WHERE {where}", params))

    def paginate(
        self,
        where: str,
        params: tuple,
        *,
        order_by: str = "id DESC",
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Return one page of ``TABLE`` rows plus the total match count."""
        total = self.count(where, params)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY {order_by} LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return rows, total


__all__ = [
    "BaseRepository",
    "_build_where",
]
