"""
CLI: ``cuyfarm reports``: exports and their housekeeping.
"""

from __future__ import annotations

import json

import typer

from cuyfarm.cli.utils import console, err_console, load_settings, make_context, output_result
from cuyfarm.ops import reports as ops
from cuyfarm.ops.requests import CreateExportRequest
from cuyfarm.reports.storage import FileStorage

app = typer.Typer(no_args_is_help=True)


def _storage() -> FileStorage:
    settings = load_settings()
    return FileStorage(settings.export_dir, max_file_mb=settings.export_max_file_mb)


@app.command("export")
def export(
    template_id: str = typer.Argument(..., help="financial, inventory, reproductive or health"),
    fmt: str = typer.Option("pdf", "--format", "-f", help="pdf, excel or csv"),
    desde: str | None = typer.Option(None, "--desde", help="Start date YYYY-MM-DD"),
    hasta: str | None = typer.Option(None, "--hasta", help="End date YYYY-MM-DD"),
    user: str = typer.Option("cli", "--user", "-u", help="Owner of the export"),
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate the request without generating anything"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Generate an export right away and print where it was stored."""
    date_range = {k: v for k, v in {"from": desde, "to": hasta}.items() if v}
    parameters = {"date_range": date_range} if date_range else {}
    ctx, conn = make_context(database, user=user, dry_run=dry_run)
    try:
        created = ops.create_export_job(
            ctx, CreateExportRequest(template_id=template_id, format=fmt, parameters=parameters),
            ttl_hours=load_settings().export_ttl_hours,
        )
        if not created.success or dry_run:
            output_result(created, as_json=json_out, title="Export (dry run)")
            return
        result = ops.process_export_job(ctx, created.data["id"], _storage())
        if json_out or not result.success:
            output_result(result, as_json=json_out)
            return
        job = result.data
        console.print(f"[bold green]Export {job['id']} completed[/bold green]")
        if job.get("file"):
            console.print(f"  file: {job['file']['file_name']} ({job['file']['file_size']} bytes)")
    finally:
        conn.close()


@app.command("stats")
def stats(
    user: str = typer.Option("cli", "--user", "-u"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Export statistics of one user."""
    ctx, conn = make_context(database, user=user)
    try:
        result = ops.export_stats(ctx)
        if not result.success:
            output_result(result)
            return
        console.print_json(json.dumps(result.data, default=str))
    finally:
        conn.close()


@app.command("cleanup")
def cleanup(
    timeout_minutes: int | None = typer.Option(None, "--timeout", help="Also time out jobs stuck for N minutes"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete the files of expired exports."""
    ctx, conn = make_context(database)
    try:
        if timeout_minutes:
            timed_out = ops.mark_timeouts(ctx, timeout_minutes)
            if not timed_out.success:
                err_console.print(f"[red]{timed_out.error.message}[/red]")
            else:
                console.print(f"Timed out: {len(timed_out.data['timed_out'])} job(s)")
        output_result(ops.cleanup_expired_exports(ctx, _storage()), as_json=json_out, title="Export Cleanup")
    finally:
        conn.close()
