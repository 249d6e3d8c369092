"""
CLI: ``cuyfarm serve``: start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from cuyfarm.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address (default CUYFARM_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default CUYFARM_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of workers"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the cuyfarm REST API server."""
    settings = load_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting cuyfarm API[/bold green] on {host}:{port}")
    uvicorn.run(
        "cuyfarm.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )
