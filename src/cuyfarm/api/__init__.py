"""
REST API layer for cuyfarm.

Provides a FastAPI application factory with typed endpoints that
delegate to the operations layer (``cuyfarm.ops``).  Routers handle only
HTTP transport concerns: serialisation, authentication, error mapping
and request context.

Quick start::

    from cuyfarm.api import create_app

    app = create_app()  # ready for uvicorn
"""

from cuyfarm.api.app import create_app

__all__ = ["create_app"]
