"""Connection factory - create database connections from URL strings.

This is the single entry point for opening a database in cuyfarm.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/granja.db``                         SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
==================  ==========================================  ============

Usage
-----
::

    conn, info = create_connection("sqlite:///cuyfarm.db", init_schema=True)
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/srv/cuyfarm.db')
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cuyfarm.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """URL or path as passed to :func:`create_connection`."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.backend == "postgresql"


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from cuyfarm.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from cuyfarm.core.sqlite_conn import SqliteConnection

    path = Path(path_str).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


# One engine per URL; engines own the connection pool
_ENGINES: dict[str, Any] = {}


def _create_postgresql(url: str) -> tuple[Any, ConnectionInfo]:
    from cuyfarm.core.orm import FarmSession, SAConnectionBridge, create_farm_engine

    engine = _ENGINES.get(url)
    if engine is None:
        engine = _ENGINES[url] = create_farm_engine(url)
    conn = SAConnectionBridge(FarmSession(bind=engine))
    return conn, ConnectionInfo(backend="postgresql", persistent=True, url=url)


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    scheme is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if db.startswith(("postgresql://", "postgres://")):
        return "postgresql", db

    if db.startswith(("postgresql+", "postgres+")):
        # Async drivers (postgresql+asyncpg://) are served by the sync bridge
        scheme, _, rest = db.partition("://")
        return "postgresql", f"{scheme.split('+')[0]}://{rest}"

    return "file", db


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    data_dir: str | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        Database URL, file path, or ``None`` / ``"memory"``.
    init_schema:
        If ``True``, create all tables (idempotent) and seed defaults.
    data_dir:
        Relative SQLite paths are resolved inside this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir).expanduser() / target)
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_postgresql(target)

    if init_schema:
        from cuyfarm.core.schema import create_tables

        created = create_tables(conn, backend=info.backend)
        logger.debug("schema_initialized", backend=info.backend, tables=len(created))

    return conn, info
