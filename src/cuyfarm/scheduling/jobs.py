"""
Cron jobs run by the alert scheduler.

Each job function takes an :class:`OperationContext` and a
:class:`JobEnv` and returns a small summary dict; a failed operation
raises :class:`JobFailed` so the scheduler records the error.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from croniter import croniter

from cuyfarm.alerts.protocol import AlertSeverity
from cuyfarm.core.errors import CuyFarmError
from cuyfarm.core.logging import get_logger
from cuyfarm.ops.alerts import alert_stats, cleanup_old_alerts, generate_all_alerts
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.notifications import (
    MAX_ATTEMPTS,
    broadcast,
    cleanup_old_deliveries,
    delivery_stats,
    retry_failed_deliveries,
)
from cuyfarm.ops.reports import cleanup_expired_exports, mark_timeouts
from cuyfarm.ops.result import OperationResult
from cuyfarm.reports.storage import FileStorage

logger = get_logger(__name__)

ALERT_RETENTION_DAYS = 30
DELIVERY_RETENTION_DAYS = 7
BROADCAST_SEVERITIES = frozenset({AlertSeverity.HIGH.value, AlertSeverity.CRITICAL.value})


class JobFailed(CuyFarmError):
    code = "JOB_FAILED"


@dataclass
class JobEnv:
    """Collaborators a job may need besides the database."""

    storage: FileStorage | None = None
    export_timeout_minutes: int = 10


JobFunc = Callable[[OperationContext, JobEnv], dict[str, Any]]


@dataclass
class CronJob:
    """A named job with a cron expression and its run bookkeeping."""

    name: str
    cron: str
    func: JobFunc
    description: str = ""
    enabled: bool = True
    next_run: datetime | None = None
    last_run: datetime | None = None
    last_status: str | None = None
    last_error: str | None = None
    last_result: dict[str, Any] | None = None
    run_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    history: list[dict[str, Any]] = field(default_factory=list)
    # Held while the job runs; the tick thread and manual runs share it.
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not croniter.is_valid(self.cron):
            raise ValueError(f"Invalid cron expression for {self.name}: {self.cron!r}")

    def schedule_next(self, base: datetime | None = None) -> datetime:
        base = base or datetime.now(UTC)
        self.next_run = croniter(self.cron, base).get_next(datetime)
        return self.next_run

    def is_due(self, now: datetime) -> bool:
        return self.enabled and self.next_run is not None and self.next_run <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "cron": self.cron,
            "description": self.description,
            "enabled": self.enabled,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_status": self.last_status,
            "last_error": self.last_error,
            "run_count": self.run_count,
            "failure_count": self.failure_count,
            "skipped_count": self.skipped_count,
            "running": self.lock.locked(),
        }


def _unwrap(result: OperationResult) -> Any:
    if not result.success:
        raise JobFailed(result.error.message if result.error else "operation failed")
    return result.data


# ── Job functions ────────────────────────────────────────────────────────


def generate_alerts_job(ctx: OperationContext, env: JobEnv) -> dict[str, Any]:
    """Run the alert rules and broadcast the high and critical ones."""
    generated = _unwrap(generate_all_alerts(ctx))
    urgent = [
        alert
        for alerts in generated.values()
        if isinstance(alerts, list)
        for alert in alerts
        if alert["severity"] in BROADCAST_SEVERITIES
    ]
    sent = 0
    for alert in urgent:
        deliveries = _unwrap(broadcast(ctx, alert["id"]))
        sent += sum(1 for d in deliveries if d["status"] == "sent")
    return {"generated": generated["total"], "broadcast": len(urgent), "deliveries_sent": sent}


def cleanup_alerts_job(ctx: OperationContext, env: JobEnv) -> dict[str, Any]:
    alerts = _unwrap(cleanup_old_alerts(ctx, ALERT_RETENTION_DAYS))
    deliveries = _unwrap(cleanup_old_deliveries(ctx, DELIVERY_RETENTION_DAYS))
    return {"alerts_deleted": alerts["deleted"], "deliveries_deleted": deliveries["deleted"]}


def retry_notifications_job(ctx: OperationContext, env: JobEnv) -> dict[str, Any]:
    return _unwrap(retry_failed_deliveries(ctx, MAX_ATTEMPTS))


def alert_stats_job(ctx: OperationContext, env: JobEnv) -> dict[str, Any]:
    stats = {"alerts": _unwrap(alert_stats(ctx)), "deliveries": _unwrap(delivery_stats(ctx))}
    logger.info(
        "alert_stats",
        total=stats["alerts"]["total"],
        unread=stats["alerts"]["unread"],
        deliveries_failed=stats["deliveries"]["failed"],
    )
    return stats


def cleanup_exports_job(ctx: OperationContext, env: JobEnv) -> dict[str, Any]:
    timed_out = _unwrap(mark_timeouts(ctx, env.export_timeout_minutes))
    summary: dict[str, Any] = {"timed_out": len(timed_out["timed_out"])}
    if env.storage is not None:
        summary.update(_unwrap(cleanup_expired_exports(ctx, env.storage)))
    return summary


DEFAULT_JOBS: tuple[tuple[str, str, JobFunc, str], ...] = (
    ("generate_alerts", "0 * * * *", generate_alerts_job,
     "Evaluate alert rules and notify high/critical alerts"),
    ("cleanup_alerts", "0 2 * * *", cleanup_alerts_job,
     "Delete alerts older than 30 days and deliveries older than 7 days"),
    ("retry_notifications", "*/30 * * * *", retry_notifications_job,
     "Retry failed notification deliveries"),
    ("alert_stats", "0 */6 * * *", alert_stats_job,
     "Log alert and delivery statistics"),
    ("cleanup_exports", "15 * * * *", cleanup_exports_job,
     "Time out stuck export jobs and delete expired export files"),
)


def default_jobs() -> list[CronJob]:
    return [CronJob(name=n, cron=c, func=f, description=d) for n, c, f, d in DEFAULT_JOBS]
