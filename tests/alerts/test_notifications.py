"""Tests for ``cuyfarm.ops.notifications``: channels, delivery and retries."""

from __future__ import annotations

import urllib.error
from unittest.mock import patch

import pytest

from cuyfarm.ops import alerts as alert_ops
from cuyfarm.ops import notifications as ops
from cuyfarm.ops.requests import CreateAlertRequest, CreateChannelRequest, ListChannelsRequest, ListDeliveriesRequest

WEBHOOK_POST = "cuyfarm.alerts.channels.webhook.post_json"


@pytest.fixture()
def alert(ctx):
    result = alert_ops.create_alert(ctx, CreateAlertRequest(
        alert_type="birth_reminder",
        severity="high",
        title="Parto próximo",
        message="Madre 3",
        data={"madre_id": 3, "fecha_probable_parto": "2025-06-01", "days_until_birth": 2},
    ))
    return result.data


@pytest.fixture()
def webhook(ctx):
    return ops.create_channel(ctx, CreateChannelRequest(
        name="Hook", channel_type="webhook", config={"url": "http://hooks.local/x"}, channel_id="hook",
    )).data


class TestChannels:
    def test_seed_is_idempotent(self, ctx):
        assert ops.seed_default_channels(ctx).data == {"created": ["in_app_default", "email_default"]}
        assert ops.seed_default_channels(ctx).data == {"created": []}
        enabled = ops.list_channels(ctx, ListChannelsRequest(enabled=True))
        assert [c["id"] for c in enabled.data] == ["in_app_default"]

    def test_unknown_type(self, ctx):
        result = ops.create_channel(ctx, CreateChannelRequest(name="SMS", channel_type="sms"))
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "type"

    def test_duplicate_id_conflicts(self, ctx, webhook):
        result = ops.create_channel(ctx, CreateChannelRequest(name="Otro", channel_type="webhook", channel_id="hook"))
        assert result.error.code == "CONFLICT"

    def test_update_replaces_config(self, ctx, webhook):
        updated = ops.update_channel(ctx, "hook", {"config": {"url": "http://b"}, "enabled": False}).data
        assert updated["config"] == {"url": "http://b"}
        assert updated["enabled"] is False

    def test_templates(self, ctx):
        ids = {t["alert_type"] for t in ops.list_templates(ctx).data}
        assert ids == {"birth_reminder", "overdue_pregnancy", "inactive_reproducer", "capacity_warning"}


class TestSend:
    def test_in_app_delivery(self, ctx, alert):
        ops.seed_default_channels(ctx)
        delivery = ops.send_notification(ctx, alert["id"], "in_app_default").data
        assert delivery["status"] == "sent"
        assert delivery["attempts"] == 1
        assert delivery["delivered_at"]

    def test_missing_channel_records_failure(self, ctx, alert):
        result = ops.send_notification(ctx, alert["id"], "ghost")
        assert result.success
        assert result.data["status"] == "failed"
        assert "not found" in result.data["error"]

    def test_disabled_channel_records_failure(self, ctx, alert):
        ops.seed_default_channels(ctx)
        delivery = ops.send_notification(ctx, alert["id"], "email_default").data
        assert delivery["status"] == "failed"
        assert "disabled" in delivery["error"]

    def test_missing_alert(self, ctx):
        assert ops.send_notification(ctx, "alert_x", "in_app_default").error.code == "NOT_FOUND"

    def test_webhook_posts_rendered_alert(self, ctx, alert, webhook):
        with patch(WEBHOOK_POST, return_value=200) as post:
            delivery = ops.send_notification(ctx, alert["id"], "hook").data
        assert delivery["status"] == "sent"
        url, payload, _headers = post.call_args.args
        assert url == "http://hooks.local/x"
        assert payload["subject"] == "Recordatorio: parto próximo en 2 día(s)"
        assert payload["alert"]["id"] == alert["id"]

    def test_alert_type_without_template(self, ctx):
        ops.seed_default_channels(ctx)
        alert = alert_ops.create_alert(ctx, CreateAlertRequest(alert_type="health_check_due", title="t")).data
        delivery = ops.send_notification(ctx, alert["id"], "in_app_default").data
        assert delivery["status"] == "failed"
        assert "template" in delivery["error"]

    def test_broadcast_to_enabled_channels(self, ctx, alert, webhook):
        ops.seed_default_channels(ctx)
        with patch(WEBHOOK_POST, return_value=204):
            deliveries = ops.broadcast(ctx, alert["id"]).data
        assert {d["channel_id"]: d["status"] for d in deliveries} == {"hook": "sent", "in_app_default": "sent"}

    def test_broadcast_skips_channels_above_alert_severity(self, ctx, alert):
        ops.seed_default_channels(ctx)
        ops.create_channel(ctx, CreateChannelRequest(
            name="Guardia", channel_id="guardia", config={"min_severity": "critical"},
        ))
        deliveries = ops.broadcast(ctx, alert["id"]).data
        assert [d["channel_id"] for d in deliveries] == ["in_app_default"]

    def test_explicit_send_below_min_severity_fails(self, ctx, alert):
        ops.create_channel(ctx, CreateChannelRequest(
            name="Guardia", channel_id="guardia", config={"min_severity": "critical"},
        ))
        delivery = ops.send_notification(ctx, alert["id"], "guardia").data
        assert delivery["status"] == "failed"
        assert "below the channel minimum critical" in delivery["error"]

    def test_invalid_min_severity_rejected(self, ctx, webhook):
        result = ops.create_channel(ctx, CreateChannelRequest(name="X", config={"min_severity": "urgente"}))
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "config.min_severity"
        assert ops.update_channel(ctx, "hook", {"config": {"min_severity": 3}}).error.code == "VALIDATION_FAILED"

    def test_broadcast_explicit_channels(self, ctx, alert):
        deliveries = ops.broadcast(ctx, alert["id"], ["a", "b"]).data
        assert [d["status"] for d in deliveries] == ["failed", "failed"]


class TestRetry:
    def test_gives_up_after_three_attempts(self, ctx, alert, webhook):
        error = urllib.error.URLError("connection refused")
        with patch(WEBHOOK_POST, side_effect=error) as post:
            first = ops.send_notification(ctx, alert["id"], "hook").data
            assert first["status"] == "failed"

            assert ops.retry_failed_deliveries(ctx).data == {"retried": 1, "sent": 0, "failed": 1}
            assert ops.retry_failed_deliveries(ctx).data == {"retried": 1, "sent": 0, "failed": 1}
            assert ops.retry_failed_deliveries(ctx).data == {"retried": 0, "sent": 0, "failed": 0}
        assert post.call_count == 3

        delivery = ops.list_deliveries(ctx, ListDeliveriesRequest(alert_id=alert["id"])).data[0]
        assert delivery["attempts"] == 3
        assert delivery["status"] == "failed"

    def test_retry_can_succeed(self, ctx, alert, webhook):
        with patch(WEBHOOK_POST, side_effect=urllib.error.URLError("down")):
            ops.send_notification(ctx, alert["id"], "hook")
        with patch(WEBHOOK_POST, return_value=200):
            assert ops.retry_failed_deliveries(ctx).data == {"retried": 1, "sent": 1, "failed": 0}
        stats = ops.delivery_stats(ctx).data
        assert stats["sent"] == 1
        assert stats["by_channel"] == {"hook": {"sent": 1}}

    def test_deleted_alert_drops_its_deliveries(self, ctx, alert):
        ops.send_notification(ctx, alert["id"], "ghost")
        alert_ops.delete_alert(ctx, alert["id"])
        assert ops.retry_failed_deliveries(ctx).data["retried"] == 0
        assert ops.delivery_stats(ctx).data["total"] == 0


class TestCleanup:
    def test_old_deliveries(self, ctx, conn, alert):
        ops.send_notification(ctx, alert["id"], "ghost")
        ops.send_notification(ctx, alert["id"], "ghost")
        conn.execute("UPDATE notification_deliveries SET created_at = '2001-01-01T00:00:00+00:00' "
                     "WHERE id IN (SELECT id FROM notification_deliveries LIMIT 1)")
        conn.commit()
        assert ops.cleanup_old_deliveries(ctx, days=7).data["deleted"] == 1
        assert ops.delivery_stats(ctx).data["total"] == 1
