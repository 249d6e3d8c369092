"""
Alert scheduler: cron jobs polled by a timing backend.

Each tick runs every job whose ``next_run`` has passed, in its own
database session, then schedules the job's next run from the tick time.
A failing job is logged and recorded on the job; it never stops the
other jobs or the loop.

Example:
    >>> scheduler = AlertScheduler(session_factory, storage=storage)
    >>> scheduler.start()
    >>> scheduler.status()["running"]
    True
    >>> scheduler.stop()
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import UTC, datetime
from typing import Any

from cuyfarm.core.errors import NotFoundError
from cuyfarm.core.logging import LogContext, get_logger
from cuyfarm.core.protocols import Connection
from cuyfarm.ops.context import OperationContext
from cuyfarm.reports.storage import FileStorage
from cuyfarm.scheduling.jobs import CronJob, JobEnv, default_jobs
from cuyfarm.scheduling.protocol import SchedulerBackend
from cuyfarm.scheduling.thread_backend import ThreadSchedulerBackend

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Connection]]

HISTORY_LIMIT = 20


class AlertScheduler:
    """Runs the farm's periodic jobs.

    Args:
        session_factory: Returns a context manager yielding a connection;
            entered once per job run.
        storage: Export storage for the export cleanup job.
        backend: Timing backend (default :class:`ThreadSchedulerBackend`).
        interval_seconds: Tick interval.
        jobs: Job list (default :func:`default_jobs`).
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        storage: FileStorage | None = None,
        backend: SchedulerBackend | None = None,
        interval_seconds: float = 60.0,
        export_timeout_minutes: int = 10,
        jobs: list[CronJob] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.backend = backend or ThreadSchedulerBackend()
        self.interval = interval_seconds
        self.env = JobEnv(storage=storage, export_timeout_minutes=export_timeout_minutes)
        self.jobs: dict[str, CronJob] = {j.name: j for j in (jobs if jobs is not None else default_jobs())}
        self._running = False
        self._started_at: datetime | None = None

    # === Lifecycle ===

    def start(self) -> None:
        if self._running:
            logger.warning("scheduler_already_running")
            return
        now = datetime.now(UTC)
        for job in self.jobs.values():
            job.schedule_next(now)
        self.backend.start(self._tick, self.interval)
        self._running = True
        self._started_at = now
        logger.info("scheduler_started", backend=self.backend.name, jobs=len(self.jobs))

    def stop(self) -> None:
        if not self._running:
            return
        self.backend.stop()
        self._running = False
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # === Tick processing ===

    async def _tick(self) -> None:
        self.run_due(datetime.now(UTC))

    def run_due(self, now: datetime) -> list[str]:
        """Run every due job and reschedule it; returns the names actually run."""
        ran = []
        for job in self.jobs.values():
            if job.next_run is None:
                job.schedule_next(now)
                continue
            if not job.is_due(now):
                continue
            entry = self._execute(job)
            job.schedule_next(now)
            if entry["status"] != "skipped":
                ran.append(job.name)
        return ran

    def _execute(self, job: CronJob) -> dict[str, Any]:
        """Run *job* unless another thread is already running it.

        A skipped run is reported with ``status: skipped`` and does not
        touch the job's run bookkeeping or history.
        """
        if not job.lock.acquire(blocking=False):
            job.skipped_count += 1
            logger.warning("scheduler_job_skipped", job=job.name, reason="already running")
            return {
                "started_at": datetime.now(UTC).isoformat(),
                "status": "skipped",
                "reason": "already running",
            }
        try:
            return self._run_locked(job)
        finally:
            job.lock.release()

    def _run_locked(self, job: CronJob) -> dict[str, Any]:
        started = datetime.now(UTC)
        job.last_run = started
        job.run_count += 1
        entry: dict[str, Any] = {"started_at": started.isoformat()}
        with LogContext(job=job.name):
            try:
                with self.session_factory() as conn:
                    ctx = OperationContext(conn=conn, caller="scheduler", user="scheduler")
                    result = job.func(ctx, self.env)
            except Exception as e:
                job.failure_count += 1
                job.last_status = "failed"
                job.last_error = str(e)
                entry.update(status="failed", error=str(e))
                logger.exception("scheduler_job_failed", error=str(e))
            else:
                job.last_status = "completed"
                job.last_error = None
                job.last_result = result
                entry.update(status="completed", result=result)
                logger.info("scheduler_job_completed", result=result)
        entry["finished_at"] = datetime.now(UTC).isoformat()
        job.history = [entry, *job.history][:HISTORY_LIMIT]
        return entry

    # === Manual operations ===

    def run_job(self, name: str) -> dict[str, Any]:
        """Run a job now, outside its schedule.  Raises ``NotFoundError``."""
        job = self.jobs.get(name)
        if job is None:
            raise NotFoundError(f"Scheduler job {name} not found", details={"available": sorted(self.jobs)})
        logger.info("scheduler_job_triggered", job=name)
        return {"job": name, **self._execute(job)}

    def set_enabled(self, name: str, enabled: bool) -> CronJob:
        job = self.jobs.get(name)
        if job is None:
            raise NotFoundError(f"Scheduler job {name} not found")
        job.enabled = enabled
        return job

    def job_history(self, name: str) -> list[dict[str, Any]]:
        job = self.jobs.get(name)
        if job is None:
            raise NotFoundError(f"Scheduler job {name} not found")
        return list(job.history)

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "interval_seconds": self.interval,
            "backend": self.backend.health(),
            "jobs": [job.to_dict() for job in self.jobs.values()],
        }
