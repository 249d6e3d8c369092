"""Shared plumbing for operation functions."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.errors import CuyFarmError, classify_db_error
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repository import BaseRepository
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.result import OperationError, OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

_DB_MESSAGES = {
    "CONFLICT": "Record already exists",
    "FOREIGN_KEY": "Referenced record does not exist or is still in use",
    "VALIDATION_FAILED": "Required field missing or invalid",
    "TRANSIENT": "Database temporarily unavailable",
}


def _err(code: str, message: str, **details: Any) -> OperationError:
    return OperationError(code=code, message=message, details=details)


def not_found(entity: str, key: Any, elapsed_ms: float = 0.0) -> OperationResult:
    return OperationResult.fail("NOT_FOUND", f"{entity} {key} not found", elapsed_ms=elapsed_ms)


def fail_from_exception(
    ctx: OperationContext,
    exc: Exception,
    action: str,
    *,
    elapsed_ms: float = 0.0,
    paged: bool = False,
) -> OperationResult:
    """Roll back and convert *exc* into a failed result.

    Domain errors keep their own code and message.  Integrity errors from
    the driver are classified (unique → ``CONFLICT``, FK → ``FOREIGN_KEY``);
    anything else is logged with its traceback and reported as
    ``INTERNAL``.
    """
    _rollback(ctx)
    cls = PagedResult if paged else OperationResult
    if isinstance(exc, CuyFarmError):
        logger.info("op_rejected", action=action, code=exc.code, error=exc.message)
        return cls.from_error(exc, elapsed_ms=elapsed_ms)

    code = classify_db_error(exc)
    if code is not None:
        logger.warning("op_db_error", action=action, code=code, error=str(exc))
        return cls(
            success=False,
            error=_err(code, f"Failed to {action}: {_DB_MESSAGES.get(code, str(exc))}"),
            elapsed_ms=elapsed_ms,
        )

    logger.exception("op_failed", action=action, error=str(exc))
    return cls(
        success=False,
        error=_err("INTERNAL", f"Failed to {action}: {exc}"),
        elapsed_ms=elapsed_ms,
    )


def _rollback(ctx: OperationContext) -> None:
    rollback = getattr(ctx.conn, "rollback", None)
    if rollback is not None:
        rollback()


def clean(data: dict[str, Any], allowed: set[str] | frozenset[str]) -> dict[str, Any]:
    """Keep only the writable columns of a payload."""
    return {k: v for k, v in data.items() if k in allowed}


# ── Generic single-row operations ────────────────────────────────────────


def get_by_id(ctx: OperationContext, repo: BaseRepository, entity: str, row_id: Any) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = repo.get(row_id)
        if not row:
            return not_found(entity, row_id, timer.elapsed_ms)
        return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, f"get {entity.lower()}", elapsed_ms=timer.elapsed_ms)


def create_row(
    ctx: OperationContext,
    repo: BaseRepository,
    entity: str,
    row: dict[str, Any],
) -> OperationResult[dict]:
    """Insert *row* into ``repo.TABLE`` and return the stored record."""
    timer = start_timer()
    try:
        row_id = repo.insert(repo.TABLE, row)
        ctx.conn.commit()
        logger.info("row_created", table=repo.TABLE, row_id=row_id)
        return OperationResult.ok(repo.get(row_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, f"create {entity.lower()}", elapsed_ms=timer.elapsed_ms)


def update_by_id(
    ctx: OperationContext,
    repo: BaseRepository,
    entity: str,
    row_id: Any,
    updates: dict[str, Any],
) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if not repo.get(row_id):
            return not_found(entity, row_id, timer.elapsed_ms)
        if updates:
            repo.update(repo.TABLE, row_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(repo.get(row_id), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, f"update {entity.lower()}", elapsed_ms=timer.elapsed_ms)


def delete_by_id(ctx: OperationContext, repo: BaseRepository, entity: str, row_id: Any) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if not repo.get(row_id):
            return not_found(entity, row_id, timer.elapsed_ms)
        repo.delete(row_id)
        ctx.conn.commit()
        logger.info("row_deleted", table=repo.TABLE, row_id=row_id)
        return OperationResult.ok({"id": row_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, f"delete {entity.lower()}", elapsed_ms=timer.elapsed_ms)


def paged(ctx: OperationContext, action: str, fetch, limit: int, offset: int) -> PagedResult[dict]:
    """Run a repository ``(rows, total)`` fetch and wrap it in a page."""
    timer = start_timer()
    try:
        rows, total = fetch()
        return PagedResult.from_items(rows, total, limit=limit, offset=offset, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, action, elapsed_ms=timer.elapsed_ms, paged=True)
