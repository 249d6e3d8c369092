"""
Periodic jobs for the farm: alert generation, notification retries and
cleanup of old alerts, deliveries and export files.

Quick start::

    from cuyfarm.scheduling import AlertScheduler

    scheduler = AlertScheduler(session_factory, storage=storage)
    scheduler.start()
    scheduler.run_job("generate_alerts")
    scheduler.stop()
"""

from cuyfarm.scheduling.jobs import CronJob, JobEnv, JobFailed, default_jobs
from cuyfarm.scheduling.protocol import BackendHealth, SchedulerBackend
from cuyfarm.scheduling.service import AlertScheduler
from cuyfarm.scheduling.thread_backend import ThreadSchedulerBackend

__all__ = [
    "AlertScheduler",
    "BackendHealth",
    "CronJob",
    "JobEnv",
    "JobFailed",
    "SchedulerBackend",
    "ThreadSchedulerBackend",
    "default_jobs",
]
