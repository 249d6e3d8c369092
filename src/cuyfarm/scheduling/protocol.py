"""Scheduler backend protocol.

Backends control WHEN ticks happen; :class:`cuyfarm.scheduling.service.AlertScheduler`
controls WHAT happens on each tick (evaluating cron jobs and running the
due ones).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TickCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class SchedulerBackend(Protocol):
    """Protocol for pluggable scheduler timing backends.

    A backend is responsible ONLY for timing: calling the tick callback
    at the given interval.
    """

    name: str

    def start(self, tick_callback: TickCallback, interval_seconds: float = 60.0) -> None:
        """Start the loop; *tick_callback* is awaited once per tick."""
        ...

    def stop(self) -> None:
        """Stop the loop, waiting for the current tick to finish."""
        ...

    def health(self) -> dict[str, Any]:
        """At least ``healthy``, ``backend``, ``tick_count`` and ``last_tick``."""
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    tick_count: int = 0
    last_tick: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            **self.extra,
        }
