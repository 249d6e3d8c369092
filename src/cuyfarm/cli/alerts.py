"""
CLI: ``cuyfarm alerts``: alert generation and housekeeping.
"""

from __future__ import annotations

from datetime import date

import typer

from cuyfarm.cli.utils import console, make_context, output_paged, output_result
from cuyfarm.ops import alerts as ops
from cuyfarm.ops.requests import ListAlertsRequest

app = typer.Typer(no_args_is_help=True)


@app.command("generate")
def generate(
    hoy: str | None = typer.Option(None, "--date", help="Reference date YYYY-MM-DD (default today)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run every alert rule and store the new alerts."""
    ctx, conn = make_context(database)
    try:
        result = ops.generate_all_alerts(ctx, date.fromisoformat(hoy) if hoy else None)
        if json_out or not result.success:
            output_result(result, as_json=json_out)
            return
        data = result.data
        for alert_type, alerts in data.items():
            if isinstance(alerts, list):
                console.print(f"  [cyan]{alert_type}[/cyan]: {len(alerts)}")
        console.print(f"[bold]{data['total']} new alert(s)[/bold], {data['skipped']} already pending")
    finally:
        conn.close()


@app.command("list")
def list_alerts(
    alert_type: str | None = typer.Option(None, "--type", "-t"),
    severity: str | None = typer.Option(None, "--severity", "-s"),
    unread: bool = typer.Option(False, "--unread", help="Only unread alerts"),
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List alerts, newest first."""
    ctx, conn = make_context(database)
    try:
        request = ListAlertsRequest(
            alert_type=alert_type,
            severity=severity,
            read=False if unread else None,
            limit=limit,
            offset=offset,
        )
        output_paged(ops.list_alerts(ctx, request), as_json=json_out, title="Alerts")
    finally:
        conn.close()


@app.command("stats")
def stats(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Alert totals by severity and type."""
    ctx, conn = make_context(database)
    try:
        output_result(ops.alert_stats(ctx), as_json=json_out, title="Alert Statistics")
    finally:
        conn.close()


@app.command("cleanup")
def cleanup(
    days: int = typer.Option(30, "--days", help="Delete alerts older than N days"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete old alerts and their deliveries."""
    ctx, conn = make_context(database)
    try:
        output_result(ops.cleanup_old_alerts(ctx, days), as_json=json_out, title="Alert Cleanup")
    finally:
        conn.close()
