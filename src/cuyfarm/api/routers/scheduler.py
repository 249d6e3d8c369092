"""
Scheduler router: inspect and drive the periodic alert jobs.

Endpoints:
    GET  /scheduler/status               Running state and every job
    POST /scheduler/jobs/{name}/run      Run a job now
    GET  /scheduler/jobs/{name}/history  Last runs of a job
    POST /scheduler/jobs/{name}/enable   Enable a job
    POST /scheduler/jobs/{name}/disable  Disable a job
"""

from __future__ import annotations

from fastapi import APIRouter

from cuyfarm.api.deps import Scheduler

router = APIRouter(prefix="/scheduler")


@router.get("/status")
def scheduler_status(scheduler: Scheduler):
    return scheduler.status()


@router.post("/jobs/{name}/run")
def run_job(scheduler: Scheduler, name: str):
    """Runs synchronously; a failing job answers 200 with ``status: failed``."""
    return scheduler.run_job(name)


@router.get("/jobs/{name}/history")
def job_history(scheduler: Scheduler, name: str):
    return {"job": name, "runs": scheduler.job_history(name)}


@router.post("/jobs/{name}/enable")
def enable_job(scheduler: Scheduler, name: str):
    return scheduler.set_enabled(name, True).to_dict()


@router.post("/jobs/{name}/disable")
def disable_job(scheduler: Scheduler, name: str):
    return scheduler.set_enabled(name, False).to_dict()
