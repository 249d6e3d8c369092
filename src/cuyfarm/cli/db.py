"""
CLI: ``cuyfarm db``: database management commands.
"""

from __future__ import annotations

import typer

from cuyfarm.cli.utils import console, get_connection, load_settings, output_result
from cuyfarm.core.schema import TABLES
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.notifications import seed_default_channels

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create the tables and the default notification channels."""
    conn = get_connection(database, init_schema=True)
    try:
        ctx = OperationContext(conn=conn, caller="cli", user="cli")
        result = seed_default_channels(ctx, load_settings().smtp.channel_config())
        output_result(result, as_json=json_out, title="Database Init")
    finally:
        conn.close()


@app.command()
def tables(
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Show row counts for every table."""
    conn = get_connection(database)
    try:
        for name in TABLES.values():
            count = conn.execute(f"SELECT COUNT(*) FROM {name}").fetchone()[0]
            console.print(f"  [cyan]{name}[/cyan]: {count}")
    finally:
        conn.close()
