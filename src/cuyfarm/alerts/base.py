"""
Notification channel base class.

Channels are built from persisted ``notification_channels`` rows.  Besides
its transport settings, a channel's config may carry ``min_severity``;
alerts below it are not delivered through that channel.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cuyfarm.alerts.protocol import (
    Alert,
    AlertSeverity,
    ChannelType,
    DeliveryResult,
)


class BaseChannel(ABC):
    """Base class for notification channel implementations."""

    channel_type: ChannelType

    def __init__(
        self,
        name: str,
        config: dict | None = None,
        *,
        min_severity: AlertSeverity = AlertSeverity.LOW,
        enabled: bool = True,
    ):
        self._name = name
        self._config = config or {}
        self._min_severity = min_severity
        self._enabled = enabled

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> dict:
        return self._config

    @property
    def min_severity(self) -> AlertSeverity:
        return self._min_severity

    @property
    def enabled(self) -> bool:
        return self._enabled

    def should_send(self, alert: Alert) -> bool:
        """True when the channel is enabled and *alert* meets its minimum severity."""
        if not self._enabled:
            return False
        return alert.severity >= self._min_severity

    @abstractmethod
    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        """Send a rendered alert to the channel."""
        ...
