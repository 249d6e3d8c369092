"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and the
lifespan (schema creation, default channels, alert scheduler) into a
single ``FastAPI`` instance.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from cuyfarm.api.deps import get_settings
from cuyfarm.api.middleware.auth import AuthMiddleware
from cuyfarm.api.middleware.errors import (
    cuyfarm_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from cuyfarm.api.middleware.request_id import RequestIDMiddleware
from cuyfarm.api.middleware.timing import TimingMiddleware
from cuyfarm.api.settings import CuyFarmSettings
from cuyfarm.core.connection import create_connection
from cuyfarm.core.errors import CuyFarmError
from cuyfarm.core.logging import configure_logging, get_logger
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.notifications import seed_default_channels
from cuyfarm.reports.storage import FileStorage
from cuyfarm.scheduling.service import AlertScheduler

log = get_logger("cuyfarm.api")


def session_factory(settings: CuyFarmSettings):
    """A factory of short-lived connections, one per scheduler job run."""

    @contextmanager
    def session() -> Iterator:
        conn, _info = create_connection(settings.database_url, data_dir=settings.data_dir)
        try:
            yield conn
        finally:
            conn.close()

    return session


def build_scheduler(settings: CuyFarmSettings) -> AlertScheduler:
    return AlertScheduler(
        session_factory(settings),
        storage=FileStorage(settings.export_dir, max_file_mb=settings.export_max_file_mb),
        interval_seconds=settings.scheduler_interval_seconds,
        export_timeout_minutes=settings.export_timeout_minutes,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown hooks."""
    settings: CuyFarmSettings = app.state.settings
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    log.info("cuyfarm_api_starting", version=app.version)

    conn, info = create_connection(settings.database_url, init_schema=True, data_dir=settings.data_dir)
    try:
        ctx = OperationContext(conn=conn, caller="startup", user="system")
        seeded = seed_default_channels(ctx, settings.smtp.channel_config())
        if not seeded.success:
            log.warning("channel_seed_failed", error=seeded.error.message if seeded.error else None)
    finally:
        conn.close()
    log.info("database_initialized", backend=info.backend)

    scheduler = build_scheduler(settings)
    app.state.scheduler = scheduler
    if settings.scheduler_enabled:
        scheduler.start()

    yield

    scheduler.stop()
    log.info("cuyfarm_api_shutting_down")


def create_app(*, settings: CuyFarmSettings | None = None) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : CuyFarmSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash settings on app state for middleware access
    app.state.settings = settings

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AuthMiddleware, api_key=settings.api_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CuyFarmError, cuyfarm_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from cuyfarm.api.routers import (
        alerts,
        cuyes,
        dashboard,
        galpones,
        gastos,
        health,
        inventario,
        notifications,
        reports,
        reproduccion,
        salud,
        scheduler,
        ventas,
    )

    prefix = settings.api_prefix

    # Health endpoints at root level (no prefix) for container healthchecks
    app.include_router(health.router, tags=["health"])

    app.include_router(cuyes.router, prefix=prefix, tags=["cuyes"])
    app.include_router(galpones.router, prefix=prefix, tags=["galpones"])
    app.include_router(reproduccion.router, prefix=prefix, tags=["reproduccion"])
    app.include_router(salud.router, prefix=prefix, tags=["salud"])
    app.include_router(inventario.router, prefix=prefix, tags=["inventario"])
    app.include_router(ventas.router, prefix=prefix, tags=["ventas"])
    app.include_router(gastos.router, prefix=prefix, tags=["gastos"])
    app.include_router(dashboard.router, prefix=prefix, tags=["dashboard"])
    app.include_router(alerts.router, prefix=prefix, tags=["alerts"])
    app.include_router(notifications.router, prefix=prefix, tags=["notifications"])
    app.include_router(scheduler.router, prefix=prefix, tags=["scheduler"])
    app.include_router(reports.router, prefix=prefix, tags=["reports"])

    return app
