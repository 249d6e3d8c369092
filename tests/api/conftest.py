"""Fixtures for API tests: an app on a temporary SQLite file."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cuyfarm.api.app import create_app
from cuyfarm.api.settings import CuyFarmSettings


def _settings(tmp_path, **overrides) -> CuyFarmSettings:
    return CuyFarmSettings(
        database_url=f"sqlite:///{tmp_path / 'farm.db'}",
        data_dir=str(tmp_path),
        export_dir=str(tmp_path / "exports"),
        download_secret="test-secret",
        **overrides,
    )


@pytest.fixture()
def client(tmp_path):
    """Client for an app without API-key auth; the lifespan creates the schema."""
    with TestClient(create_app(settings=_settings(tmp_path))) as c:
        yield c


@pytest.fixture()
def secured_client(tmp_path):
    with TestClient(create_app(settings=_settings(tmp_path, api_key="k3y"))) as c:
        yield c
