"""Generic webhook notification channel.

POSTs the alert as JSON to a configured URL so custom integrations work
without dedicated channel code.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from datetime import UTC, datetime
from typing import Any

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.protocol import Alert, ChannelType, DeliveryResult
from cuyfarm.core.errors import TransientError, ValidationError


def post_json(url: str, payload: dict[str, Any], headers: dict[str, str] | None = None,
              timeout: float = 10) -> int:
    """POST *payload* as JSON and return the HTTP status."""
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    req = urllib.request.Request(
        url,
        data=json.dumps(payload, default=str).encode("utf-8"),
        headers=all_headers,
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return response.status


class WebhookChannel(BaseChannel):
    """
    Generic webhook channel.

    Config keys: ``url`` (required), ``headers`` (optional).
    """

    channel_type = ChannelType.WEBHOOK

    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        """Send alert to webhook."""
        url = self._config.get("url")
        if not url:
            return DeliveryResult.fail(self._name, ValidationError("Webhook URL not configured"))

        payload = {
            "alert": alert.to_dict(),
            "subject": subject,
            "body": body,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        try:
            status = post_json(url, payload, self._config.get("headers"))
            return DeliveryResult.ok(self._name, response={"status": status})
        except urllib.error.URLError as e:
            return DeliveryResult.fail(self._name, TransientError(str(e), cause=e))
        except Exception as e:
            return DeliveryResult.fail(self._name, e)
