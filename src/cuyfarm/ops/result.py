"""
Result envelopes for farm operations.

Every function in :mod:`cuyfarm.ops` returns an :class:`OperationResult`
(or :class:`PagedResult` for listings) instead of raising.  The error
``code`` is what the API error middleware maps to an HTTP status and what
the CLI prints before exiting non-zero, so both surfaces agree on the
outcome of a call.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from cuyfarm.core.errors import CuyFarmError, ErrorCategory

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    ``code`` is one of ``NOT_FOUND``, ``CONFLICT``, ``FOREIGN_KEY``,
    ``VALIDATION_FAILED``, ``FORBIDDEN``, ``GONE``,
    ``RANGE_NOT_SATISFIABLE``, ``TRANSIENT`` or ``INTERNAL``.  ``details``
    carries the offending ``field`` for validation errors and the current
    ``status`` for export jobs that are not downloadable yet.
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


@dataclass
class OperationResult(Generic[T]):
    """Outcome of one operation: ``data`` on success, ``error`` otherwise."""

    success: bool
    data: T | None = None
    error: OperationError | None = None
    elapsed_ms: float = 0.0

    @classmethod
    def ok(cls, data: T, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        return cls(success=True, data=data, elapsed_ms=elapsed_ms)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        error = OperationError(
            code=code,
            message=message,
            category=category,
            details=details or {},
            retryable=retryable,
        )
        return cls(success=False, error=error, elapsed_ms=elapsed_ms)

    @classmethod
    def from_error(cls, exc: CuyFarmError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        """Failed result carrying the code and details of a domain error."""
        return cls.fail(
            exc.code,
            exc.message,
            category=exc.category,
            details=exc.details,
            retryable=exc.retryable,
            elapsed_ms=elapsed_ms,
        )

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None


@dataclass
class PagedResult(OperationResult[list[T]]):
    """A page of rows plus the total count of the filtered listing."""

    total: int = 0
    limit: int = 50
    offset: int = 0
    has_more: bool = False

    @classmethod
    def from_items(
        cls,
        items: list[T],
        total: int,
        *,
        limit: int = 50,
        offset: int = 0,
        elapsed_ms: float = 0.0,
    ) -> PagedResult[T]:
        return cls(
            success=True,
            data=items,
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + limit) < total,
            elapsed_ms=elapsed_ms,
        )


class _Timer:
    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Start a stopwatch; read ``elapsed_ms`` when the operation ends."""
    return _Timer()
