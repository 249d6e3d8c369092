"""
Core primitives for cuyfarm.

Persistence (connection factory, schema, repositories), structured
logging, the error hierarchy and the farm's domain vocabulary.
"""

from cuyfarm.core.errors import (
    ConflictError,
    CuyFarmError,
    ErrorCategory,
    ForeignKeyError,
    NotFoundError,
    StorageError,
    TransientError,
    ValidationError,
    classify_db_error,
)
from cuyfarm.core.logging import configure_logging, get_logger

__all__ = [
    "ConflictError",
    "CuyFarmError",
    "ErrorCategory",
    "ForeignKeyError",
    "NotFoundError",
    "StorageError",
    "TransientError",
    "ValidationError",
    "classify_db_error",
    "configure_logging",
    "get_logger",
]
