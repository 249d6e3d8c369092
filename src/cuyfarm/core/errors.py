"""
Structured error types for cuyfarm.

Every error carries a :class:`ErrorCategory`, a ``retryable`` flag and an
optional chained ``cause``.  The ops layer converts these (and raw driver
integrity errors, via :func:`classify_db_error`) into the machine-readable
codes that the API maps to HTTP statuses.

Architecture:
    ::

        CuyFarmError
        ├── TransientError      (retryable: network, SMTP, locked DB)
        ├── ValidationError     (VALIDATION_FAILED → 400)
        ├── NotFoundError       (NOT_FOUND → 404)
        ├── ConflictError       (CONFLICT → 409)
        ├── ForeignKeyError     (FOREIGN_KEY → 400)
        ├── StorageError        (export files on disk)
        └── DownloadError       (carries its own ops code)

Examples:
    >>> err = NotFoundError("Cuy 7 not found")
    >>> err.code
    'NOT_FOUND'
    >>> TransientError("SMTP timeout").retryable
    True
"""

from __future__ import annotations

import sqlite3
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and retry decisions."""

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    STORAGE = "STORAGE"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    CONFIG = "CONFIG"
    AUTH = "AUTH"
    INTERNAL = "INTERNAL"


class CuyFarmError(Exception):
    """Base exception for all cuyfarm errors.

    Subclasses set ``default_category``, ``default_retryable`` and
    ``code`` (the ops-layer error code).
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class TransientError(CuyFarmError):
    """Temporary failure that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True
    code = "TRANSIENT"


class ValidationError(CuyFarmError):
    """Business-rule or input validation failure."""

    default_category = ErrorCategory.VALIDATION
    code = "VALIDATION_FAILED"


class NotFoundError(CuyFarmError):
    """Referenced record does not exist."""

    default_category = ErrorCategory.NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(CuyFarmError):
    """Unique constraint or state conflict."""

    default_category = ErrorCategory.CONFLICT
    code = "CONFLICT"


class ForeignKeyError(CuyFarmError):
    """A referenced parent row is missing (or still referenced on delete)."""

    default_category = ErrorCategory.DATABASE
    code = "FOREIGN_KEY"


class StorageError(CuyFarmError):
    """Export file could not be written, read or removed."""

    default_category = ErrorCategory.STORAGE
    code = "STORAGE"


class DownloadError(CuyFarmError):
    """Download refused; ``code`` is chosen per instance."""

    default_category = ErrorCategory.AUTH

    def __init__(self, message: str, *, code: str = "FORBIDDEN", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code


# ── Driver error classification ──────────────────────────────────────────

# PostgreSQL SQLSTATE classes for integrity violations
_PG_CODES: dict[str, str] = {
    "23505": "CONFLICT",
    "23503": "FOREIGN_KEY",
    "23502": "VALIDATION_FAILED",
    "23514": "VALIDATION_FAILED",
}


def classify_db_error(exc: BaseException) -> str | None:
    """Map a database integrity error to an ops error code.

    Understands ``sqlite3.IntegrityError`` messages and SQLAlchemy-wrapped
    driver errors exposing ``orig.pgcode``.  Returns ``None`` when *exc*
    is not an integrity error.
    """
    if isinstance(exc, CuyFarmError):
        return exc.code

    orig = getattr(exc, "orig", None) or exc
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _PG_CODES:
        return _PG_CODES[pgcode]

    if isinstance(orig, sqlite3.IntegrityError) or type(exc).__name__ == "IntegrityError":
        msg = str(orig).upper()
        if "UNIQUE" in msg or "DUPLICATE" in msg:
            return "CONFLICT"
        if "FOREIGN KEY" in msg:
            return "FOREIGN_KEY"
        if "NOT NULL" in msg or "CHECK" in msg:
            return "VALIDATION_FAILED"
        return "CONFLICT"

    if isinstance(orig, sqlite3.OperationalError) and "locked" in str(orig).lower():
        return "TRANSIENT"

    return None


__all__ = [
    "ConflictError",
    "CuyFarmError",
    "DownloadError",
    "ErrorCategory",
    "ForeignKeyError",
    "NotFoundError",
    "StorageError",
    "TransientError",
    "ValidationError",
    "classify_db_error",
]
