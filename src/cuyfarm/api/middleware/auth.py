"""
API-key authentication middleware.

When ``CUYFARM_API_KEY`` is set, every request must include a matching
``X-API-Key`` header (or ``?api_key=`` query param).  Unauthenticated
requests receive a 401 JSON response.

Bypass paths (no API key required):
  - ``/health``
  - ``/docs``, ``/redoc``, ``/openapi.json``
  - ``.../reports/download/{job_id}?token=...``: the signed token is
    checked by the endpoint itself
"""

from __future__ import annotations

import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

_BYPASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^/health"),
    re.compile(r"/docs$"),
    re.compile(r"/redoc$"),
    re.compile(r"/openapi\.json$"),
]

_TOKEN_DOWNLOAD = re.compile(r"/reports/download/[^/]+$")


def _is_bypass(request: Request) -> bool:
    path = request.url.path
    if any(p.search(path) for p in _BYPASS_PATTERNS):
        return True
    return bool(_TOKEN_DOWNLOAD.search(path) and request.query_params.get("token"))


class AuthMiddleware(BaseHTTPMiddleware):
    """Reject requests that lack a valid API key.

    If ``api_key`` is ``None`` (the default), authentication is disabled
    and all requests pass through.
    """

    def __init__(self, app: object, api_key: str | None = None) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._api_key is None or _is_bypass(request):
            return await call_next(request)

        provided = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if provided != self._api_key:
            return JSONResponse(
                status_code=401,
                content={
                    "title": "Unauthorized",
                    "status": 401,
                    "detail": "Missing or invalid API key. Provide X-API-Key header.",
                },
            )

        return await call_next(request)
