"""Tests for AlertScheduler, its cron jobs and the thread backend."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

import pytest

from cuyfarm.core.errors import NotFoundError
from cuyfarm.ops import alerts as alert_ops
from cuyfarm.ops.requests import ListAlertsRequest
from cuyfarm.reports.storage import FileStorage
from cuyfarm.scheduling import AlertScheduler, CronJob, SchedulerBackend, ThreadSchedulerBackend, default_jobs
from cuyfarm.scheduling.jobs import JobEnv, cleanup_exports_job, generate_alerts_job


class FakeBackend:
    """Records start/stop calls and never ticks on its own."""

    name = "fake"

    def __init__(self):
        self.started = False
        self.callback = None

    def start(self, tick_callback, interval_seconds=60.0):
        self.started = True
        self.callback = tick_callback

    def stop(self):
        self.started = False

    def health(self):
        return {"healthy": self.started, "backend": self.name, "tick_count": 0, "last_tick": None}


@pytest.fixture()
def session_factory(conn):
    @contextmanager
    def _session():
        yield conn

    return _session


def _job(name, func, cron="0 * * * *"):
    return CronJob(name=name, cron=cron, func=func)


class TestCronJob:
    def test_invalid_cron(self):
        with pytest.raises(ValueError):
            _job("bad", lambda ctx, env: {}, cron="every hour")

    def test_schedule_next(self):
        job = _job("hourly", lambda ctx, env: {})
        base = datetime(2025, 5, 1, 10, 15, tzinfo=UTC)
        assert job.schedule_next(base) == datetime(2025, 5, 1, 11, 0, tzinfo=UTC)
        assert job.is_due(base) is False
        assert job.is_due(base + timedelta(hours=1)) is True
        job.enabled = False
        assert job.is_due(base + timedelta(hours=1)) is False

    def test_default_jobs(self):
        names = [j.name for j in default_jobs()]
        assert names == ["generate_alerts", "cleanup_alerts", "retry_notifications", "alert_stats", "cleanup_exports"]


class TestAlertScheduler:
    def test_start_schedules_every_job(self, session_factory):
        backend = FakeBackend()
        scheduler = AlertScheduler(session_factory, backend=backend)
        scheduler.start()
        assert backend.started
        assert scheduler.is_running
        status = scheduler.status()
        assert status["running"] is True
        assert all(j["next_run"] for j in status["jobs"])
        scheduler.stop()
        assert not backend.started

    def test_run_job_records_result(self, session_factory):
        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[
            _job("echo", lambda ctx, env: {"user": ctx.user}),
        ])
        entry = scheduler.run_job("echo")
        assert entry["job"] == "echo"
        assert entry["status"] == "completed"
        assert entry["result"] == {"user": "scheduler"}
        assert scheduler.jobs["echo"].run_count == 1

    def test_unknown_job(self, session_factory):
        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[])
        with pytest.raises(NotFoundError):
            scheduler.run_job("nope")

    def test_failure_is_recorded(self, session_factory):
        """A raising job is recorded and does not stop the other due jobs."""

        def boom(ctx, env):
            raise RuntimeError("disk full")

        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[
            _job("boom", boom), _job("ok", lambda ctx, env: {"ok": True}),
        ])
        base = datetime(2025, 5, 1, 10, 15, tzinfo=UTC)
        for job in scheduler.jobs.values():
            job.schedule_next(base)

        assert scheduler.run_due(base + timedelta(hours=1)) == ["boom", "ok"]
        failed = scheduler.jobs["boom"]
        assert failed.last_status == "failed"
        assert failed.last_error == "disk full"
        assert failed.failure_count == 1
        assert scheduler.jobs["ok"].last_status == "completed"
        assert scheduler.job_history("boom")[0]["status"] == "failed"

    def test_run_due_skips_jobs_not_due(self, session_factory):
        calls = []
        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[
            _job("hourly", lambda ctx, env: calls.append(1) or {}),
        ])
        base = datetime(2025, 5, 1, 10, 15, tzinfo=UTC)
        assert scheduler.run_due(base) == []
        assert scheduler.run_due(base + timedelta(minutes=10)) == []
        assert scheduler.run_due(base + timedelta(hours=1)) == ["hourly"]
        assert calls == [1]
        assert scheduler.jobs["hourly"].next_run == datetime(2025, 5, 1, 12, 0, tzinfo=UTC)

    def test_running_job_is_not_started_twice(self, session_factory):
        calls = []
        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[
            _job("hourly", lambda ctx, env: calls.append(1) or {}),
        ])
        job = scheduler.jobs["hourly"]
        base = datetime(2025, 5, 1, 10, 15, tzinfo=UTC)
        job.schedule_next(base)

        with job.lock:
            entry = scheduler.run_job("hourly")
            assert scheduler.run_due(base + timedelta(hours=1)) == []
            assert job.to_dict()["running"] is True

        assert entry["status"] == "skipped"
        assert entry["reason"] == "already running"
        assert calls == []
        assert job.run_count == 0
        assert job.skipped_count == 2
        assert job.history == []
        assert scheduler.run_job("hourly")["status"] == "completed"
        assert job.to_dict()["running"] is False

    def test_manual_run_during_tick_is_skipped(self, session_factory):
        inside, release = threading.Event(), threading.Event()

        def slow(ctx, env):
            inside.set()
            release.wait(5)
            return {}

        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), jobs=[_job("slow", slow)])
        worker = threading.Thread(target=scheduler.run_job, args=("slow",))
        worker.start()
        try:
            assert inside.wait(5)
            assert scheduler.run_job("slow")["status"] == "skipped"
        finally:
            release.set()
            worker.join(5)
        assert scheduler.jobs["slow"].run_count == 1
        assert scheduler.jobs["slow"].last_status == "completed"

    def test_disable_job(self, session_factory):
        scheduler = AlertScheduler(session_factory, backend=FakeBackend())
        assert scheduler.set_enabled("cleanup_alerts", False).enabled is False
        with pytest.raises(NotFoundError):
            scheduler.set_enabled("nope", True)


class TestJobs:
    def test_generate_alerts_broadcasts_urgent(self, ctx, make_cuy, make_prenez):
        make_prenez(make_cuy()["id"], dias=69)
        summary = generate_alerts_job(ctx, JobEnv())
        assert summary == {"generated": 1, "broadcast": 1, "deliveries_sent": 0}
        assert alert_ops.list_alerts(ctx, ListAlertsRequest()).total == 1

    def test_cleanup_exports_without_storage(self, ctx):
        assert cleanup_exports_job(ctx, JobEnv()) == {"timed_out": 0}

    def test_default_jobs_run_on_empty_farm(self, session_factory, tmp_path):
        scheduler = AlertScheduler(session_factory, backend=FakeBackend(), storage=FileStorage(tmp_path))
        for name in scheduler.jobs:
            assert scheduler.run_job(name)["status"] == "completed", name


class TestThreadBackend:
    def test_implements_protocol(self):
        backend = ThreadSchedulerBackend()
        assert isinstance(backend, SchedulerBackend)
        assert backend.health()["healthy"] is False

    def test_ticks_until_stopped(self):
        ticks = 0

        async def tick():
            nonlocal ticks
            ticks += 1

        backend = ThreadSchedulerBackend()
        backend.start(tick, interval_seconds=0.05)
        time.sleep(0.2)
        backend.stop()
        assert not backend.is_running
        assert ticks >= 2
