"""
Alerting package.

Rule-based alert generation plus pluggable notification channels
(in-app, e-mail, webhook, push) and per-type message templates.
"""

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.channels import EmailChannel, InAppChannel, PushChannel, WebhookChannel
from cuyfarm.alerts.protocol import (
    Alert,
    AlertSeverity,
    AlertType,
    ChannelType,
    DeliveryResult,
    DeliveryStatus,
    NotificationChannel,
)
from cuyfarm.alerts.registry import ChannelRegistry, channel_registry
from cuyfarm.alerts.templates import DEFAULT_TEMPLATES, NotificationTemplate, render_template

__all__ = [
    # Enums
    "AlertSeverity",
    "AlertType",
    "ChannelType",
    "DeliveryStatus",
    # Data classes
    "Alert",
    "DeliveryResult",
    "NotificationTemplate",
    # Protocols
    "NotificationChannel",
    # Base class
    "BaseChannel",
    # Implementations
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "WebhookChannel",
    # Registry
    "ChannelRegistry",
    "channel_registry",
    # Templates
    "DEFAULT_TEMPLATES",
    "render_template",
]
