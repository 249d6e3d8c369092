"""
Alerting protocol and data classes.

Defines the protocol (interface) for notification channels and the core
data types shared by the rules, the channels and the ops layer.
Concrete channels live in ``channels/``; the shared base class is in
``base.py``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class AlertSeverity(str, Enum):
    """Alert severity levels, ordered ``low < medium < high < critical``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def _order(self) -> list[AlertSeverity]:
        return [
            AlertSeverity.LOW,
            AlertSeverity.MEDIUM,
            AlertSeverity.HIGH,
            AlertSeverity.CRITICAL,
        ]

    def __lt__(self, other: AlertSeverity) -> bool:
        return self._order().index(self) < self._order().index(other)

    def __le__(self, other: AlertSeverity) -> bool:
        return self._order().index(self) <= self._order().index(other)

    def __ge__(self, other: AlertSeverity) -> bool:
        return self._order().index(self) >= self._order().index(other)

    def __gt__(self, other: AlertSeverity) -> bool:
        return self._order().index(self) > self._order().index(other)


class AlertType(str, Enum):
    """Kinds of farm alerts."""

    BIRTH_REMINDER = "birth_reminder"
    OVERDUE_PREGNANCY = "overdue_pregnancy"
    INACTIVE_REPRODUCER = "inactive_reproducer"
    CAPACITY_WARNING = "capacity_warning"
    HEALTH_CHECK_DUE = "health_check_due"
    BREEDING_OPPORTUNITY = "breeding_opportunity"
    PERFORMANCE_DECLINE = "performance_decline"


class ChannelType(str, Enum):
    """Notification channel types."""

    IN_APP = "in_app"
    EMAIL = "email"
    WEBHOOK = "webhook"
    PUSH = "push"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    RETRYING = "retrying"


@dataclass
class Alert:
    """
    An alert raised by a rule or created by a user.

    ``related_entity_id`` / ``related_entity_type`` point at the record the
    alert is about (a preñez, a cuy, a galpón) and are used to avoid
    raising the same alert twice while it is unread.
    """

    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    read_at: str | None = None
    action_taken: str | None = None
    user_id: str | None = None
    related_entity_id: str | None = None
    related_entity_type: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Alert:
        """Build an alert from an ``alertas`` row."""
        return cls(
            id=row["id"],
            type=AlertType(row["type"]),
            severity=AlertSeverity(row["severity"]),
            title=row["title"],
            message=row["message"],
            data=json.loads(row["data_json"]) if row.get("data_json") else {},
            created_at=datetime.fromisoformat(row["created_at"]),
            read_at=row.get("read_at"),
            action_taken=row.get("action_taken"),
            user_id=row.get("user_id"),
            related_entity_id=row.get("related_entity_id"),
            related_entity_type=row.get("related_entity_type"),
        )

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the ``alertas`` table."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "data_json": json.dumps(self.data, default=str),
            "created_at": self.created_at.isoformat(),
            "read_at": self.read_at,
            "action_taken": self.action_taken,
            "user_id": self.user_id,
            "related_entity_id": self.related_entity_id,
            "related_entity_type": self.related_entity_type,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
            "read_at": self.read_at,
            "read": self.read_at is not None,
        }
        if self.action_taken:
            result["action_taken"] = self.action_taken
        if self.user_id:
            result["user_id"] = self.user_id
        if self.related_entity_id:
            result["related_entity_id"] = self.related_entity_id
            result["related_entity_type"] = self.related_entity_type
        return result


@dataclass
class DeliveryResult:
    """Result of a single delivery attempt."""

    channel_name: str
    success: bool
    message: str | None = None
    response: dict[str, Any] | None = None
    error: Exception | None = None
    delivered_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def retryable(self) -> bool:
        return bool(getattr(self.error, "retryable", False))

    @classmethod
    def ok(cls, channel_name: str, message: str | None = None, **kwargs: Any) -> DeliveryResult:
        return cls(channel_name=channel_name, success=True, message=message, **kwargs)

    @classmethod
    def fail(cls, channel_name: str, error: Exception) -> DeliveryResult:
        return cls(
            channel_name=channel_name,
            success=False,
            error=error,
            message=str(error),
        )


@runtime_checkable
class NotificationChannel(Protocol):
    """
    Protocol for notification channels.

    Implementations must provide:
    - name: Unique channel identifier
    - channel_type: Type classification
    - send(): Deliver a rendered alert
    """

    @property
    def name(self) -> str:
        """Unique channel name."""
        ...

    @property
    def channel_type(self) -> ChannelType:
        """Channel type."""
        ...

    @property
    def enabled(self) -> bool:
        """Whether channel is enabled."""
        ...

    def should_send(self, alert: Alert) -> bool:
        """Check if alert should be sent to this channel."""
        ...

    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        """Send a rendered alert to the channel."""
        ...


__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertType",
    "ChannelType",
    "DeliveryResult",
    "DeliveryStatus",
    "NotificationChannel",
]
