"""
Alert operations.

Alerts are created by users or by the rules in :mod:`cuyfarm.alerts.rules`.
A rule never raises a second alert for a record while an earlier alert of
the same type for that record is still unread.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta

from cuyfarm.alerts.protocol import Alert, AlertSeverity, AlertType
from cuyfarm.alerts.rules import RULES
from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.errors import ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import AlertRepository
from cuyfarm.ops._helpers import fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import CreateAlertRequest, ListAlertsRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)


def new_alert_id() -> str:
    return f"alert_{uuid.uuid4().hex[:12]}"


def _parse_enum(enum_cls, value: str, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {field_name} '{value}' (expected one of: {allowed})",
            details={"field": field_name},
        ) from e


def _store(repo: AlertRepository, alert: Alert) -> Alert:
    alert.id = alert.id or new_alert_id()
    repo.create_alert(alert.to_row())
    return alert


def create_alert(ctx: OperationContext, request: CreateAlertRequest) -> OperationResult[dict]:
    timer = start_timer()
    try:
        alert = Alert(
            type=_parse_enum(AlertType, request.alert_type, "type"),
            severity=_parse_enum(AlertSeverity, request.severity, "severity"),
            title=request.title,
            message=request.message,
            data=dict(request.data),
            user_id=request.user_id,
            related_entity_id=request.related_entity_id,
            related_entity_type=request.related_entity_type,
        )
        if not alert.title.strip():
            raise ValidationError("title is required", details={"field": "title"})
        if ctx.dry_run:
            return OperationResult.ok({"dry_run": True, **alert.to_dict()}, elapsed_ms=timer.elapsed_ms)
        _store(AlertRepository(ctx.conn), alert)
        ctx.conn.commit()
        logger.info("alert_created", alert_id=alert.id, type=alert.type.value, severity=alert.severity.value)
        return OperationResult.ok(alert.to_dict(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create alert", elapsed_ms=timer.elapsed_ms)


def list_alerts(ctx: OperationContext, request: ListAlertsRequest) -> PagedResult[dict]:
    """Alerts newest first, filtered by type, severity, read state and user."""
    timer = start_timer()
    try:
        rows, total = AlertRepository(ctx.conn).list_alerts(
            alert_type=request.alert_type,
            severity=request.severity,
            read=request.read,
            user_id=request.user_id,
            limit=request.limit,
            offset=request.offset,
        )
        items = [Alert.from_row(r).to_dict() for r in rows]
        return PagedResult.from_items(
            items, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list alerts", elapsed_ms=timer.elapsed_ms, paged=True)


def get_alert(ctx: OperationContext, alert_id: str) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = AlertRepository(ctx.conn).get(alert_id)
        if not row:
            return not_found("Alert", alert_id, timer.elapsed_ms)
        return OperationResult.ok(Alert.from_row(row).to_dict(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get alert", elapsed_ms=timer.elapsed_ms)


def mark_read(ctx: OperationContext, alert_id: str, action_taken: str | None = None) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = AlertRepository(ctx.conn)
        row = repo.get(alert_id)
        if not row:
            return not_found("Alert", alert_id, timer.elapsed_ms)
        repo.mark_read(alert_id, utcnow_iso(), action_taken or row.get("action_taken"))
        ctx.conn.commit()
        return OperationResult.ok(Alert.from_row(repo.get(alert_id)).to_dict(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "mark alert read", elapsed_ms=timer.elapsed_ms)


def mark_all_read(ctx: OperationContext, user_id: str | None = None) -> OperationResult[dict]:
    timer = start_timer()
    try:
        updated = AlertRepository(ctx.conn).mark_all_read(utcnow_iso(), user_id)
        ctx.conn.commit()
        return OperationResult.ok({"updated": updated}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "mark alerts read", elapsed_ms=timer.elapsed_ms)


def delete_alert(ctx: OperationContext, alert_id: str) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = AlertRepository(ctx.conn)
        if not repo.get(alert_id):
            return not_found("Alert", alert_id, timer.elapsed_ms)
        repo.delete_alert(alert_id)
        ctx.conn.commit()
        return OperationResult.ok({"id": alert_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete alert", elapsed_ms=timer.elapsed_ms)


def alert_stats(ctx: OperationContext) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = AlertRepository(ctx.conn)
        return OperationResult.ok(
            {
                "total": repo.count(),
                "unread": repo.count("read_at IS NULL"),
                "by_severity": repo.grouped("severity"),
                "by_type": repo.grouped("type"),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute alert stats", elapsed_ms=timer.elapsed_ms)


def cleanup_old_alerts(ctx: OperationContext, days: int = 30) -> OperationResult[dict]:
    """Delete alerts (and their deliveries) older than *days*."""
    timer = start_timer()
    try:
        cutoff = (datetime.now(UTC) - timedelta(days=days)).isoformat()
        deleted = AlertRepository(ctx.conn).delete_older_than(cutoff)
        ctx.conn.commit()
        logger.info("alerts_cleaned", deleted=deleted, days=days)
        return OperationResult.ok({"deleted": deleted, "cutoff": cutoff}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "clean up alerts", elapsed_ms=timer.elapsed_ms)


def generate_all_alerts(ctx: OperationContext, hoy: date | None = None) -> OperationResult[dict]:
    """Run every rule and store the alerts that are not already pending.

    Returns the new alerts grouped by type plus ``total``.
    """
    timer = start_timer()
    try:
        repo = AlertRepository(ctx.conn)
        generated: dict[str, list[dict]] = {}
        skipped = 0
        for alert_type, rule in RULES.items():
            nuevas = []
            for alert in rule(ctx.conn, hoy):
                if alert.related_entity_id and repo.find_unread(alert.type.value, alert.related_entity_id):
                    skipped += 1
                    continue
                nuevas.append(_store(repo, alert).to_dict())
            generated[alert_type.value] = nuevas
        ctx.conn.commit()
        total = sum(len(v) for v in generated.values())
        logger.info("alerts_generated", total=total, skipped=skipped)
        return OperationResult.ok({**generated, "total": total, "skipped": skipped}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "generate alerts", elapsed_ms=timer.elapsed_ms)
