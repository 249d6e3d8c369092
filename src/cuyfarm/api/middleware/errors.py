"""
Error handling: maps ops-layer error codes to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cuyfarm.api.schemas.common import ErrorDetail, ProblemDetail
from cuyfarm.core.errors import CuyFarmError
from cuyfarm.core.logging import get_logger

logger = get_logger(__name__)

# ── Error code → HTTP status mapping ─────────────────────────────────────

ERROR_CODE_TO_STATUS: dict[str, int] = {
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "FOREIGN_KEY": 400,
    "VALIDATION_FAILED": 400,
    "INVALID_INPUT": 400,
    "FORBIDDEN": 403,
    "GONE": 410,
    "RANGE_NOT_SATISFIABLE": 416,
    "TRANSIENT": 503,
    "UNAVAILABLE": 503,
    "STORAGE": 500,
    "JOB_FAILED": 500,
    "INTERNAL": 500,
}


def status_for_error_code(code: str) -> int:
    """Resolve an ops error code to HTTP status, defaulting to 500."""
    return ERROR_CODE_TO_STATUS.get(code, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(status_code=status, content=body.model_dump(), headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request bodies and query parameters that fail validation → 400."""
    errors = [
        {
            "code": str(err.get("type", "invalid")).upper(),
            "message": err.get("msg", "Invalid value"),
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")) or None,
        }
        for err in exc.errors()
    ]
    return problem_response(
        status=400,
        title="Validation failed",
        detail=f"{len(errors)} invalid field(s)",
        instance=str(request.url),
        errors=errors,
    )


async def cuyfarm_error_handler(request: Request, exc: CuyFarmError) -> JSONResponse:
    """Domain errors raised outside the ops layer (dependencies, streaming)."""
    return problem_response(
        status=status_for_error_code(exc.code),
        title=exc.message,
        instance=str(request.url),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with ProblemDetail."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
