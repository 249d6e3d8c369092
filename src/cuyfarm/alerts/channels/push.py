"""Push notification channel posting to a push gateway."""

from __future__ import annotations

import urllib.error

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.channels.webhook import post_json
from cuyfarm.alerts.protocol import Alert, ChannelType, DeliveryResult
from cuyfarm.core.errors import TransientError, ValidationError


class PushChannel(BaseChannel):
    """
    Push channel.

    Config keys: ``endpoint`` (gateway URL, required), ``token`` (sent as
    a bearer token when present), ``topic`` (optional).
    """

    channel_type = ChannelType.PUSH

    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        endpoint = self._config.get("endpoint")
        if not endpoint:
            return DeliveryResult.fail(self._name, ValidationError("Push endpoint not configured"))

        headers = {}
        if self._config.get("token"):
            headers["Authorization"] = f"Bearer {self._config['token']}"
        payload = {
            "title": subject,
            "body": alert.message,
            "topic": self._config.get("topic"),
            "data": {"alert_id": alert.id, "type": alert.type.value, "severity": alert.severity.value},
        }
        try:
            status = post_json(endpoint, payload, headers)
            return DeliveryResult.ok(self._name, response={"status": status})
        except urllib.error.URLError as e:
            return DeliveryResult.fail(self._name, TransientError(str(e), cause=e))
        except Exception as e:
            return DeliveryResult.fail(self._name, e)
