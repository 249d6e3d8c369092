"""
Operations layer: farm business logic behind the API, CLI and scheduler.

- All functions accept ``OperationContext`` as first argument
- All functions return ``OperationResult[T]`` or ``PagedResult[T]`` (never raise)
- All functions are transport-agnostic (no HTTP, no CLI knowledge)
- Write functions honour ``ctx.dry_run`` where a preview makes sense

Usage::

    from cuyfarm.ops import OperationContext
    from cuyfarm.ops.cuyes import list_cuyes
    from cuyfarm.ops.requests import ListCuyesRequest

    ctx = OperationContext(conn=my_connection)
    result = list_cuyes(ctx, ListCuyesRequest(galpon="A"))
    assert result.success
"""

from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.result import OperationError, OperationResult, PagedResult

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "PagedResult",
]
