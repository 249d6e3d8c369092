"""
CLI: ``cuyfarm scheduler``: inspect, run and host the periodic jobs.
"""

from __future__ import annotations

import signal
import threading

import typer

from cuyfarm.api.app import build_scheduler
from cuyfarm.cli.utils import console, err_console, load_settings, print_dict, print_table
from cuyfarm.core.errors import NotFoundError
from cuyfarm.core.logging import configure_logging

app = typer.Typer(no_args_is_help=True)


@app.command("jobs")
def jobs() -> None:
    """List the scheduled jobs and their cron expressions."""
    scheduler = build_scheduler(load_settings())
    print_table(
        [job.to_dict() for job in scheduler.jobs.values()],
        title="Scheduler Jobs",
        columns=["name", "cron", "enabled", "description"],
    )


@app.command("run")
def run(name: str = typer.Argument(..., help="Job name")) -> None:
    """Run one job now and print its outcome."""
    scheduler = build_scheduler(load_settings())
    try:
        outcome = scheduler.run_job(name)
    except NotFoundError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e.message}")
        raise typer.Exit(code=1) from e
    print_dict(outcome, title=f"Job {name}")
    if outcome["status"] != "completed":
        raise typer.Exit(code=1)


@app.command("start")
def start(
    interval: float | None = typer.Option(None, "--interval", help="Tick interval in seconds"),
) -> None:
    """Run the scheduler in the foreground until interrupted."""
    settings = load_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    if interval:
        settings.scheduler_interval_seconds = interval
    scheduler = build_scheduler(settings)

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    scheduler.start()
    console.print(
        f"[bold green]Scheduler running[/bold green] "
        f"({len(scheduler.jobs)} jobs, tick={settings.scheduler_interval_seconds}s)"
    )
    try:
        stop.wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped by user[/yellow]")
    finally:
        scheduler.stop()
