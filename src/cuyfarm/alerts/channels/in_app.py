"""In-app notification channel.

The alert row itself is the in-app notification, so delivery only
records that the alert was published.
"""

from __future__ import annotations

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.protocol import Alert, ChannelType, DeliveryResult
from cuyfarm.core.logging import get_logger

logger = get_logger(__name__)


class InAppChannel(BaseChannel):
    """Stores nothing beyond the alert; always succeeds."""

    channel_type = ChannelType.IN_APP

    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        logger.info("in_app_notification", alert_id=alert.id, title=alert.title)
        return DeliveryResult.ok(self._name, message="published")
