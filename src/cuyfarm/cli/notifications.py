"""
CLI: ``cuyfarm notifications``: channels and delivery retries.
"""

from __future__ import annotations

import typer

from cuyfarm.cli.utils import make_context, output_paged, output_result
from cuyfarm.ops import notifications as ops
from cuyfarm.ops.requests import ListChannelsRequest

app = typer.Typer(no_args_is_help=True)


@app.command("channels")
def list_channels(
    channel_type: str | None = typer.Option(None, "--type", "-t"),
    enabled: bool | None = typer.Option(None, "--enabled/--disabled"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List notification channels."""
    ctx, conn = make_context(database)
    try:
        request = ListChannelsRequest(enabled=enabled, channel_type=channel_type)
        output_paged(ops.list_channels(ctx, request), as_json=json_out, title="Channels")
    finally:
        conn.close()


@app.command("retry")
def retry(
    max_attempts: int = typer.Option(ops.MAX_ATTEMPTS, "--max-attempts", min=1, max=ops.MAX_ATTEMPTS),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Retry failed deliveries."""
    ctx, conn = make_context(database)
    try:
        output_result(ops.retry_failed_deliveries(ctx, max_attempts), as_json=json_out, title="Retry")
    finally:
        conn.close()


@app.command("stats")
def stats(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delivery totals by status and channel."""
    ctx, conn = make_context(database)
    try:
        output_result(ops.delivery_stats(ctx), as_json=json_out, title="Delivery Statistics")
    finally:
        conn.close()
