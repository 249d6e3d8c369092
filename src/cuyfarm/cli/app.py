"""
Root Typer application for the cuyfarm CLI.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

app = Typer(
    name="cuyfarm",
    help="cuyfarm: guinea-pig farm management backend.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("cuyfarm")
        except PackageNotFoundError:
            v = "unknown"
        typer.echo(f"cuyfarm {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """cuyfarm CLI: database, alerts, notifications, reports and scheduler."""


# ── Sub-command registration ─────────────────────────────────────────────

from cuyfarm.cli.alerts import app as alerts_app  # noqa: E402
from cuyfarm.cli.db import app as db_app  # noqa: E402
from cuyfarm.cli.notifications import app as notifications_app  # noqa: E402
from cuyfarm.cli.reports import app as reports_app  # noqa: E402
from cuyfarm.cli.scheduler import app as scheduler_app  # noqa: E402
from cuyfarm.cli.serve import app as serve_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
app.add_typer(alerts_app, name="alerts", help="Alert generation and housekeeping.")
app.add_typer(notifications_app, name="notifications", help="Notification channels and retries.")
app.add_typer(reports_app, name="reports", help="Report exports.")
app.add_typer(scheduler_app, name="scheduler", help="Periodic jobs.")
