"""
CLI layer for cuyfarm.

Provides a Typer application with sub-commands that delegate to the
operations layer (``cuyfarm.ops``).  This package handles only terminal
transport: argument parsing, coloured output and table formatting.

Entry point::

    cuyfarm --help
"""

from cuyfarm.cli.app import app

__all__ = ["app"]
