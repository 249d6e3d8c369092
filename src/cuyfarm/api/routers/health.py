"""
Health endpoints, mounted at the root (no API prefix).

    GET /health        Database and scheduler checks
    GET /health/live   Liveness probe, always 200

The database is required: when it cannot answer ``SELECT 1`` the
status is ``unhealthy``.  A stopped scheduler only degrades the status
when the scheduler is enabled in the settings.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any, Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cuyfarm.core.connection import create_connection

_START_TIME = time.monotonic()

router = APIRouter(prefix="/health")


class CheckResult(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"] = "healthy"
    service: str = "cuyfarm"
    version: str = ""
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _START_TIME, 1))
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


def _check_database(settings) -> CheckResult:
    start = time.monotonic()
    try:
        conn, info = create_connection(settings.database_url, data_dir=settings.data_dir)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except Exception as exc:  # noqa: BLE001
        return CheckResult(status="unhealthy", error=str(exc)[:200])
    elapsed = (time.monotonic() - start) * 1000
    return CheckResult(status="healthy", latency_ms=round(elapsed, 2), details={"backend": info.backend})


def _check_scheduler(request: Request, enabled: bool) -> CheckResult:
    scheduler = getattr(request.app.state, "scheduler", None)
    running = bool(scheduler and scheduler.is_running)
    status = "healthy" if running or not enabled else "degraded"
    return CheckResult(status=status, details={"enabled": enabled, "running": running})


@router.get("", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    checks = {
        "database": _check_database(settings),
        "scheduler": _check_scheduler(request, settings.scheduler_enabled),
    }
    if checks["database"].status != "healthy":
        status = "unhealthy"
    elif any(c.status != "healthy" for c in checks.values()):
        status = "degraded"
    else:
        status = "healthy"
    return HealthResponse(status=status, version=settings.api_version, checks=checks)


@router.get("/live")
def liveness() -> dict[str, str]:
    return {"status": "alive"}
