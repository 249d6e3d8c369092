"""
Common API schemas: list envelopes and RFC 7807 errors.

Single-item endpoints return the object itself; list endpoints return
:class:`PagedResponse` (``{"data": [...], "page": {...}}``); every 4xx/5xx
is a :class:`ProblemDetail`.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Field-level error detail."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``NOT_FOUND`` (404): record does not exist
        - ``VALIDATION_FAILED`` / ``FOREIGN_KEY`` (400): invalid input or
          a referenced record is missing
        - ``FORBIDDEN`` (403): export belongs to another user
        - ``CONFLICT`` (409): duplicate record or wrong job state
        - ``GONE`` (410): export expired
        - ``RANGE_NOT_SATISFIABLE`` (416)
        - ``TRANSIENT`` (503): temporary failure, retry later
        - ``INTERNAL`` (500): unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Cuy 42 not found",
            "status": 404,
            "detail": "",
            "instance": "/api/v1/cuyes/42",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(default_factory=list, description="Field-level error details")


# ── Success envelopes ────────────────────────────────────────────────────


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    total: int = Field(description="Total items across all pages")
    limit: int = Field(description="Items per page (requested)")
    offset: int = Field(description="Current offset (0-based)")
    has_more: bool = Field(description="True if more pages exist after current")
    page: int = Field(default=1, description="Current page number (1-indexed)")
    total_pages: int = Field(default=1, description="Total number of pages")

    @classmethod
    def from_result(cls, total: int, limit: int, offset: int) -> PageMeta:
        """Factory that auto-computes derived fields."""
        limit = max(limit, 1)
        return cls(
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + limit) < total,
            page=(offset // limit) + 1,
            total_pages=max(1, (total + limit - 1) // limit),
        )


class PagedResponse(BaseModel, Generic[T]):
    """Paged success envelope for list responses."""

    data: list[T] = Field(description="List of items for this page")
    page: PageMeta = Field(description="Pagination metadata")


class DeletedResponse(BaseModel):
    id: Any
    deleted: bool = True
