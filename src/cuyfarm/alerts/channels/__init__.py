"""Notification channel implementations.

Each module implements a single delivery target.  New channels are added
as modules here and registered in the channel registry.
"""

from cuyfarm.alerts.channels.email import EmailChannel
from cuyfarm.alerts.channels.in_app import InAppChannel
from cuyfarm.alerts.channels.push import PushChannel
from cuyfarm.alerts.channels.webhook import WebhookChannel

__all__ = [
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "WebhookChannel",
]
