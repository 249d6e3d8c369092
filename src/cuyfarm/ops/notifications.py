"""
Notification operations: channels, templates and deliveries.

Every send attempt is recorded in ``notification_deliveries``.  A failed
delivery is retried by :func:`retry_failed_deliveries` until it has been
attempted :data:`MAX_ATTEMPTS` times; it is never attempted more often.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from cuyfarm.alerts.protocol import Alert, ChannelType, DeliveryStatus
from cuyfarm.alerts.registry import channel_min_severity, channel_registry
from cuyfarm.alerts.templates import DEFAULT_TEMPLATES, render, template_for
from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.errors import ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import AlertRepository, ChannelRepository, DeliveryRepository
from cuyfarm.ops._helpers import delete_by_id, fail_from_exception, not_found, paged
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import CreateChannelRequest, ListChannelsRequest, ListDeliveriesRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

MAX_ATTEMPTS = 3


def _channel_dict(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "type": row["type"],
        "config": json.loads(row["config_json"]) if row.get("config_json") else {},
        "enabled": bool(row["enabled"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _channel_type(value: str) -> str:
    try:
        return ChannelType(value).value
    except ValueError as e:
        raise ValidationError(
            f"Unsupported channel type: {value}", details={"field": "type"},
        ) from e


# ------------------------------------------------------------------ #
# Channels
# ------------------------------------------------------------------ #


def list_channels(ctx: OperationContext, request: ListChannelsRequest) -> PagedResult[dict]:
    timer = start_timer()
    try:
        rows, total = ChannelRepository(ctx.conn).list_channels(
            enabled=request.enabled,
            channel_type=request.channel_type,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [_channel_dict(r) for r in rows], total,
            limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list channels", elapsed_ms=timer.elapsed_ms, paged=True)


def get_channel(ctx: OperationContext, channel_id: str) -> OperationResult[dict]:
    timer = start_timer()
    try:
        row = ChannelRepository(ctx.conn).get(channel_id)
        if not row:
            return not_found("Channel", channel_id, timer.elapsed_ms)
        return OperationResult.ok(_channel_dict(row), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get channel", elapsed_ms=timer.elapsed_ms)


def _checked_config(config: dict[str, Any]) -> dict[str, Any]:
    channel_min_severity(config)
    return config


def create_channel(ctx: OperationContext, request: CreateChannelRequest) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if not request.name.strip():
            raise ValidationError("name is required", details={"field": "name"})
        now = utcnow_iso()
        row = {
            "id": request.channel_id or f"ch_{uuid.uuid4().hex[:12]}",
            "name": request.name.strip(),
            "type": _channel_type(request.channel_type),
            "config_json": json.dumps(_checked_config(request.config)),
            "enabled": 1 if request.enabled else 0,
            "created_at": now,
            "updated_at": now,
        }
        repo = ChannelRepository(ctx.conn)
        channel_id = repo.create_channel(row)
        ctx.conn.commit()
        logger.info("channel_created", channel_id=channel_id, type=row["type"])
        return OperationResult.ok(_channel_dict(repo.get(channel_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create channel", elapsed_ms=timer.elapsed_ms)


def update_channel(ctx: OperationContext, channel_id: str, data: dict[str, Any]) -> OperationResult[dict]:
    """Rename, enable/disable or reconfigure a channel.

    ``config`` replaces the stored config as a whole.
    """
    timer = start_timer()
    try:
        repo = ChannelRepository(ctx.conn)
        if not repo.get(channel_id):
            return not_found("Channel", channel_id, timer.elapsed_ms)
        updates: dict[str, Any] = {}
        if data.get("name") is not None:
            updates["name"] = data["name"]
        if data.get("type") is not None:
            updates["type"] = _channel_type(data["type"])
        if data.get("config") is not None:
            updates["config_json"] = json.dumps(_checked_config(data["config"]))
        if data.get("enabled") is not None:
            updates["enabled"] = 1 if data["enabled"] else 0
        if updates:
            updates["updated_at"] = utcnow_iso()
            repo.update_channel(channel_id, updates)
            ctx.conn.commit()
        return OperationResult.ok(_channel_dict(repo.get(channel_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "update channel", elapsed_ms=timer.elapsed_ms)


def delete_channel(ctx: OperationContext, channel_id: str) -> OperationResult[dict]:
    return delete_by_id(ctx, ChannelRepository(ctx.conn), "Channel", channel_id)


def seed_default_channels(ctx: OperationContext, email_config: dict[str, Any] | None = None) -> OperationResult[dict]:
    """Create ``in_app_default`` (enabled) and ``email_default`` (disabled) if missing."""
    timer = start_timer()
    try:
        repo = ChannelRepository(ctx.conn)
        now = utcnow_iso()
        defaults = [
            ("in_app_default", "Notificaciones en la aplicación", ChannelType.IN_APP, {}, 1),
            ("email_default", "Correo electrónico", ChannelType.EMAIL, email_config or {}, 0),
        ]
        created = []
        for channel_id, name, channel_type, config, enabled in defaults:
            if repo.get(channel_id):
                continue
            repo.create_channel({
                "id": channel_id,
                "name": name,
                "type": channel_type.value,
                "config_json": json.dumps(config),
                "enabled": enabled,
                "created_at": now,
                "updated_at": now,
            })
            created.append(channel_id)
        ctx.conn.commit()
        if created:
            logger.info("channels_seeded", channels=created)
        return OperationResult.ok({"created": created}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "seed channels", elapsed_ms=timer.elapsed_ms)


def list_templates(ctx: OperationContext) -> OperationResult[list[dict]]:
    return OperationResult.ok([t.to_dict() for t in DEFAULT_TEMPLATES.values()])


# ------------------------------------------------------------------ #
# Delivery
# ------------------------------------------------------------------ #


def _attempt(ctx: OperationContext, alert: Alert, channel_id: str) -> tuple[bool, str | None]:
    """Try one delivery.  Returns ``(sent, error_message)``."""
    row = ChannelRepository(ctx.conn).get(channel_id)
    if not row:
        return False, f"Notification channel not found: {channel_id}"
    if not row["enabled"]:
        return False, f"Notification channel disabled: {channel_id}"
    try:
        channel = channel_registry.build(row)
    except ValidationError as e:
        return False, e.message
    if not channel.should_send(alert):
        return False, (
            f"Alert severity {alert.severity.value} is below the channel minimum {channel.min_severity.value}"
        )
    template = template_for(alert.type.value)
    if template is None:
        return False, f"No template for alert type: {alert.type.value}"

    subject, body = render(template, alert)
    result = channel.send(alert, subject, body)
    if result.success:
        return True, None
    return False, result.message


def _deliver(ctx: OperationContext, alert: Alert, channel_id: str, delivery: dict[str, Any] | None = None) -> dict:
    """Attempt delivery and record it, creating the delivery row when needed."""
    deliveries = DeliveryRepository(ctx.conn)
    now = utcnow_iso()
    if delivery is None:
        delivery_id = deliveries.create_delivery({
            "id": f"delivery_{uuid.uuid4().hex[:12]}",
            "alert_id": alert.id,
            "channel_id": channel_id,
            "status": DeliveryStatus.PENDING.value,
            "attempts": 0,
            "created_at": now,
        })
        attempts = 0
    else:
        delivery_id = delivery["id"]
        attempts = int(delivery["attempts"])

    sent, error = _attempt(ctx, alert, channel_id)
    deliveries.update_delivery(delivery_id, {
        "status": DeliveryStatus.SENT.value if sent else DeliveryStatus.FAILED.value,
        "attempts": attempts + 1,
        "last_attempt_at": now,
        "delivered_at": now if sent else None,
        "error": error,
    })
    if sent:
        logger.info("notification_sent", alert_id=alert.id, channel_id=channel_id)
    else:
        logger.warning("notification_failed", alert_id=alert.id, channel_id=channel_id, error=error)
    return deliveries.get(delivery_id)


def _load_alert(ctx: OperationContext, alert_id: str) -> Alert | None:
    row = AlertRepository(ctx.conn).get(alert_id)
    return Alert.from_row(row) if row else None


def send_notification(ctx: OperationContext, alert_id: str, channel_id: str) -> OperationResult[dict]:
    """Deliver one alert through one channel.

    A missing or disabled channel, or an alert type without a template,
    produces a ``failed`` delivery record rather than an error.
    """
    timer = start_timer()
    try:
        alert = _load_alert(ctx, alert_id)
        if alert is None:
            return not_found("Alert", alert_id, timer.elapsed_ms)
        delivery = _deliver(ctx, alert, channel_id)
        ctx.conn.commit()
        return OperationResult.ok(delivery, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "send notification", elapsed_ms=timer.elapsed_ms)


def _accepting_channels(ctx: OperationContext, alert: Alert) -> list[str]:
    """Enabled channels whose ``min_severity`` admits *alert*."""
    repo = ChannelRepository(ctx.conn)
    targets = []
    for channel_id in repo.enabled_ids():
        try:
            channel = channel_registry.build(repo.get(channel_id))
        except ValidationError:
            # Misconfigured channels still get a failed delivery recorded
            targets.append(channel_id)
            continue
        if channel.should_send(alert):
            targets.append(channel_id)
    return targets


def broadcast(
    ctx: OperationContext, alert_id: str, channel_ids: list[str] | None = None,
) -> OperationResult[list[dict]]:
    """Deliver an alert to the given channels.

    Without *channel_ids* the alert goes to every enabled channel whose
    ``min_severity`` it meets; channels it falls below are skipped, not failed.
    """
    timer = start_timer()
    try:
        alert = _load_alert(ctx, alert_id)
        if alert is None:
            return not_found("Alert", alert_id, timer.elapsed_ms)
        targets = channel_ids if channel_ids is not None else _accepting_channels(ctx, alert)
        deliveries = [_deliver(ctx, alert, channel_id) for channel_id in targets]
        ctx.conn.commit()
        logger.info("notification_broadcast", alert_id=alert_id, channels=len(deliveries))
        return OperationResult.ok(deliveries, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "broadcast notification", elapsed_ms=timer.elapsed_ms)


def retry_failed_deliveries(ctx: OperationContext, max_attempts: int = MAX_ATTEMPTS) -> OperationResult[dict]:
    """Re-send failed deliveries that have been attempted fewer than *max_attempts* times."""
    timer = start_timer()
    try:
        deliveries = DeliveryRepository(ctx.conn)
        retried = sent = 0
        for delivery in deliveries.retryable(max_attempts):
            deliveries.update_delivery(delivery["id"], {"status": DeliveryStatus.RETRYING.value})
            alert = _load_alert(ctx, delivery["alert_id"])
            if alert is None:
                deliveries.update_delivery(delivery["id"], {
                    "status": DeliveryStatus.FAILED.value,
                    "attempts": max_attempts,
                    "error": "Alert no longer exists",
                })
                continue
            retried += 1
            result = _deliver(ctx, alert, delivery["channel_id"], delivery)
            if result["status"] == DeliveryStatus.SENT.value:
                sent += 1
        ctx.conn.commit()
        logger.info("notifications_retried", retried=retried, sent=sent)
        return OperationResult.ok(
            {"retried": retried, "sent": sent, "failed": retried - sent},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "retry notifications", elapsed_ms=timer.elapsed_ms)


def list_deliveries(ctx: OperationContext, request: ListDeliveriesRequest) -> PagedResult[dict]:
    repo = DeliveryRepository(ctx.conn)
    return paged(
        ctx,
        "list deliveries",
        lambda: repo.list_deliveries(
            alert_id=request.alert_id,
            channel_id=request.channel_id,
            status=request.status,
            limit=request.limit,
            offset=request.offset,
        ),
        request.limit,
        request.offset,
    )


def delivery_stats(ctx: OperationContext) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = DeliveryRepository(ctx.conn)
        counts = repo.counts_by_status()
        return OperationResult.ok(
            {
                "total": sum(counts.values()),
                "sent": counts.get(DeliveryStatus.SENT.value, 0),
                "failed": counts.get(DeliveryStatus.FAILED.value, 0),
                "pending": counts.get(DeliveryStatus.PENDING.value, 0),
                "retrying": counts.get(DeliveryStatus.RETRYING.value, 0),
                "by_channel": repo.by_channel(),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute delivery stats", elapsed_ms=timer.elapsed_ms)


def cleanup_old_deliveries(ctx: OperationContext, days: int = 7) -> OperationResult[dict]:
    timer = start_timer()
    try:
        cutoff = (datetime.now(UTC) - timedelta(days=days)).isoformat()
        deleted = DeliveryRepository(ctx.conn).delete_older_than(cutoff)
        ctx.conn.commit()
        logger.info("deliveries_cleaned", deleted=deleted, days=days)
        return OperationResult.ok({"deleted": deleted, "cutoff": cutoff}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "clean up deliveries", elapsed_ms=timer.elapsed_ms)
