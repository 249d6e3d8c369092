"""
Per-call context for farm operations.

Routers, CLI commands and scheduler jobs each build an
:class:`OperationContext` and pass it as the first argument of every
operation.  ``user`` decides which report exports a caller may see;
``dry_run`` lets write operations validate and return a preview without
touching the database.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from cuyfarm.core.protocols import Connection


@dataclass
class OperationContext:
    """Connection plus the identity of whoever is calling.

    Attributes:
        conn: Open database connection; operations commit or roll back on it.
        request_id: Correlates log lines of one call (``X-Request-ID`` over HTTP).
        caller: ``"api"``, ``"cli"``, ``"scheduler"``, ``"background"`` or ``"startup"``.
        user: Owner of report exports; ``X-User-ID`` over HTTP.
        dry_run: Validate writes and return the would-be row without persisting.
    """

    conn: Connection
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "api"
    user: str = "anonymous"
    dry_run: bool = False
