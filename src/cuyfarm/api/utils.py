"""
Shared API router utilities.

- ``_dc()``: convert a dataclass or dict to a plain dict
- ``_handle_error()``: convert a failed OperationResult to a ``problem_response``
- ``_single()`` / ``_paged()``: unwrap successful results into response bodies
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cuyfarm.api.middleware.errors import problem_response, status_for_error_code
from cuyfarm.api.schemas.common import PageMeta


def _dc(obj: Any) -> dict[str, Any]:
    """Convert a dataclass (or dict) to a plain dict."""
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj if isinstance(obj, dict) else {}


def _body(model: Any) -> dict[str, Any]:
    """Fields the client actually sent in a pydantic body."""
    return model.model_dump(exclude_unset=True, mode="json")


def _handle_error(result):
    """Convert a failed ``OperationResult`` into a Problem Details response.

    The error code picks the HTTP status; a ``field`` detail becomes a
    field-level error, and an unsatisfiable range carries its
    ``Content-Range`` header.
    """
    error = result.error
    code = result.error_code or "INTERNAL"
    details = error.details if error else {}
    errors = None
    if details.get("field"):
        errors = [{"code": code, "message": error.message, "field": str(details["field"])}]
    headers = None
    if code == "RANGE_NOT_SATISFIABLE" and details.get("content_range"):
        headers = {"Content-Range": details["content_range"]}
    return problem_response(
        status=status_for_error_code(code),
        title=error.message if error else "Operation failed",
        errors=errors,
        headers=headers,
    )


def _single(result, *, status_code: int = 200):
    if not result.success:
        return _handle_error(result)
    if status_code != 200:
        return JSONResponse(status_code=status_code, content=jsonable_encoder(result.data))
    return result.data


def _paged(result):
    if not result.success:
        return _handle_error(result)
    return {
        "data": [_dc(item) for item in (result.data or [])],
        "page": PageMeta.from_result(result.total, result.limit, result.offset).model_dump(),
    }
