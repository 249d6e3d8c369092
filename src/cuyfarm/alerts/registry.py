"""Channel registry: maps channel types to implementations."""

from __future__ import annotations

import json
from typing import Any

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.channels import EmailChannel, InAppChannel, PushChannel, WebhookChannel
from cuyfarm.alerts.protocol import AlertSeverity, ChannelType
from cuyfarm.core.errors import ValidationError


def channel_min_severity(config: dict[str, Any]) -> AlertSeverity:
    """Read ``min_severity`` from a channel config; ``low`` when absent."""
    value = config.get("min_severity") or AlertSeverity.LOW.value
    try:
        return AlertSeverity(str(value).lower())
    except ValueError as e:
        raise ValidationError(
            f"Invalid min_severity: {value}", details={"field": "config.min_severity"}, cause=e,
        ) from e


class ChannelRegistry:
    """
    Registry of channel classes keyed by :class:`ChannelType`.

    Persisted channels store only their type and config; the registry
    turns a ``notification_channels`` row into a live channel.
    """

    def __init__(self):
        self._classes: dict[ChannelType, type[BaseChannel]] = {}

    def register(self, channel_type: ChannelType, channel_cls: type[BaseChannel]) -> None:
        """Register the implementation for a channel type."""
        self._classes[channel_type] = channel_cls

    def build(self, row: dict[str, Any]) -> BaseChannel:
        """Instantiate the channel described by a ``notification_channels`` row."""
        try:
            channel_type = ChannelType(row["type"])
        except ValueError as e:
            raise ValidationError(f"Unsupported channel type: {row['type']}", cause=e) from e
        channel_cls = self._classes.get(channel_type)
        if channel_cls is None:
            raise ValidationError(f"Unsupported channel type: {row['type']}")
        raw = row.get("config_json")
        config = json.loads(raw) if raw else {}
        return channel_cls(
            row["id"],
            config,
            min_severity=channel_min_severity(config),
            enabled=bool(row.get("enabled", 1)),
        )


# Global registry
channel_registry = ChannelRegistry()
channel_registry.register(ChannelType.IN_APP, InAppChannel)
channel_registry.register(ChannelType.EMAIL, EmailChannel)
channel_registry.register(ChannelType.WEBHOOK, WebhookChannel)
channel_registry.register(ChannelType.PUSH, PushChannel)
