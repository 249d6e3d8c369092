"""
FastAPI dependency injection: shared singletons and per-request factories.

Usage in routers::

    from cuyfarm.api.deps import OpContext, Settings

    @router.get("/cuyes")
    def list_cuyes(ctx: OpContext, settings: Settings):
        ...
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Query, Request

from cuyfarm.api.settings import CuyFarmSettings
from cuyfarm.core.connection import create_connection
from cuyfarm.core.errors import CuyFarmError
from cuyfarm.ops.context import OperationContext
from cuyfarm.reports.storage import FileStorage
from cuyfarm.scheduling.service import AlertScheduler

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> CuyFarmSettings:
    """Cached settings, loaded once per process."""
    return CuyFarmSettings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[CuyFarmSettings, Depends(get_settings)],
) -> Generator[Any, None, None]:
    """Yield a database connection for the request lifespan."""
    conn, _info = create_connection(
        settings.database_url,
        data_dir=settings.data_dir,
    )

    try:
        yield conn
    finally:
        if hasattr(conn, "close"):
            conn.close()


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    conn: Annotated[Any, Depends(get_connection)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request.

    The ``X-User-ID`` header identifies the owner of report exports.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        request_id=request_id,
        caller="api",
        user=request.headers.get("X-User-ID") or "anonymous",
    )


# ── Export storage and scheduler ─────────────────────────────────────────


def get_storage(
    settings: Annotated[CuyFarmSettings, Depends(get_settings)],
) -> FileStorage:
    return FileStorage(settings.export_dir, max_file_mb=settings.export_max_file_mb)


def get_scheduler(request: Request) -> AlertScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise CuyFarmError("Scheduler is not configured")
    return scheduler


# ── Pagination parameters (per-request) ─────────────────────────────────


@dataclass(frozen=True, slots=True)
class PaginationParams:
    """Pagination parameters for list endpoints.

    Attributes:
        page: Page number (1-indexed, converted to offset internally)
        page_size: Items per page (capped at 500)
    """

    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page (max 500)"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[CuyFarmSettings, Depends(get_settings)]
Conn = Annotated[Any, Depends(get_connection)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
Pagination = Annotated[PaginationParams, Depends(get_pagination)]
Storage = Annotated[FileStorage, Depends(get_storage)]
Scheduler = Annotated[AlertScheduler, Depends(get_scheduler)]
