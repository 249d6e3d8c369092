"""Timing middleware: ``X-Process-Time-Ms`` header plus one access log line per request."""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cuyfarm.core.logging import get_logger

logger = get_logger(__name__)

# Report downloads stream large bodies; only the time to first byte is measured.
SLOW_REQUEST_MS = 1000.0


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time-Ms"] = str(elapsed_ms)

        log = logger.warning if elapsed_ms >= SLOW_REQUEST_MS else logger.debug
        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return response
