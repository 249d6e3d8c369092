"""
API settings.

All values can be overridden with environment variables prefixed with
``CUYFARM_`` (``CUYFARM_DATABASE_URL``, ``CUYFARM_SMTP__HOST`` ...) or a
``.env`` file.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class SmtpSettings(BaseModel):
    """SMTP server used by the default e-mail channel."""

    host: str | None = None
    port: int = 587
    user: str | None = None
    password: str | None = None
    use_tls: bool = True
    sender: str | None = Field(default=None, description="From address")
    recipients: list[str] = Field(default_factory=list)

    def channel_config(self) -> dict[str, Any]:
        return {
            "smtp": {
                "host": self.host,
                "port": self.port,
                "user": self.user,
                "password": self.password,
                "use_tls": self.use_tls,
            },
            "from": self.sender,
            "to": self.recipients,
        }


class CuyFarmSettings(BaseSettings):
    """Settings for the cuyfarm REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``CUYFARM_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="cuyfarm API", description="OpenAPI title")
    api_version: str = Field(default="1.0.0", description="OpenAPI version string")

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///cuyfarm.db",
        description="SQLAlchemy-style connection URL",
    )
    data_dir: str = Field(default="~/.cuyfarm", description="Directory for relative SQLite paths")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Auth ─────────────────────────────────────────────────────────────
    api_key: str | None = Field(default=None, description="Optional API key for gating access")

    # ── Exports ──────────────────────────────────────────────────────────
    export_dir: str = Field(default="~/.cuyfarm/exports", description="Where generated reports are stored")
    export_ttl_hours: int = Field(default=24, description="Hours a finished export stays downloadable")
    export_max_file_mb: int = Field(default=50, description="Maximum export size")
    export_timeout_minutes: int = Field(default=10, description="Stuck jobs are marked TIMEOUT after this")
    download_secret: str = Field(default="change-me", description="HMAC key for signed download URLs")
    download_token_minutes: int = Field(default=60, description="Lifetime of signed download URLs")

    # ── Scheduler ────────────────────────────────────────────────────────
    scheduler_enabled: bool = Field(default=False, description="Run cron jobs inside the API process")
    scheduler_interval_seconds: float = Field(default=60.0, description="Scheduler tick interval")

    # ── Notifications ────────────────────────────────────────────────────
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)

    # ── Farm ─────────────────────────────────────────────────────────────
    precio_kg: float = Field(default=25.0, description="Price per kg (PEN) for inventory valuation")

    model_config: dict[str, Any] = {
        "env_prefix": "CUYFARM_",
        "env_file": ".env",
        "extra": "ignore",
        "env_nested_delimiter": "__",
    }
