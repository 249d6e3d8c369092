"""Export, download and API-key tests through the HTTP layer."""

from __future__ import annotations

from urllib.parse import urlsplit

import pytest

API = "/api/v1"
ANA = {"X-User-ID": "ana"}
MAYO = {"date_range": {"from": "2025-05-01", "to": "2025-05-31"}}


@pytest.fixture()
def export(client):
    """A CSV export owned by ``ana``; the background task completes it."""
    resp = client.post(
        f"{API}/reports/exports",
        json={"template_id": "financial", "format": "csv", "parameters": MAYO},
        headers=ANA,
    )
    assert resp.status_code == 201, resp.text
    job = client.get(f"{API}/reports/exports/{resp.json()['id']}", headers=ANA).json()
    assert job["status"] == "COMPLETED", job
    return job


class TestExports:
    def test_templates(self, client):
        ids = {t["id"] for t in client.get(f"{API}/reports/templates").json()}
        assert ids == {"financial", "inventory", "reproductive", "health"}

    def test_invalid_template_is_400(self, client):
        resp = client.post(f"{API}/reports/exports", json={"template_id": "clima"})
        assert resp.status_code == 400

    def test_invalid_period_is_400(self, client):
        resp = client.post(f"{API}/reports/exports", json={
            "template_id": "health", "parameters": {"date_range": {"from": "2025-06-01", "to": "2025-05-01"}},
        })
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "date_range"

    def test_history_is_per_user(self, client, export):
        assert client.get(f"{API}/reports/exports", headers=ANA).json()["page"]["total"] == 1
        assert client.get(f"{API}/reports/exports", headers={"X-User-ID": "luis"}).json()["page"]["total"] == 0

    def test_other_user_is_forbidden(self, client, export):
        resp = client.get(f"{API}/reports/exports/{export['id']}", headers={"X-User-ID": "luis"})
        assert resp.status_code == 403


class TestDownload:
    def test_full_download(self, client, export):
        resp = client.get(f"{API}/reports/download/{export['id']}", headers=ANA)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["accept-ranges"] == "bytes"
        assert resp.content.decode("utf-8-sig").startswith("Reporte financiero")
        assert int(resp.headers["content-length"]) == export["file"]["file_size"]

    def test_range_request(self, client, export):
        resp = client.get(f"{API}/reports/download/{export['id']}", headers={**ANA, "Range": "bytes=0-9"})
        assert resp.status_code == 206
        assert len(resp.content) == 10
        assert resp.headers["content-range"] == f"bytes 0-9/{export['file']['file_size']}"

    def test_unsatisfiable_range(self, client, export):
        resp = client.get(f"{API}/reports/download/{export['id']}", headers={**ANA, "Range": "bytes=999999-"})
        assert resp.status_code == 416
        assert resp.headers["content-range"] == f"bytes */{export['file']['file_size']}"

    def test_etag_not_modified(self, client, export):
        first = client.get(f"{API}/reports/download/{export['id']}", headers=ANA)
        resp = client.get(
            f"{API}/reports/download/{export['id']}", headers={**ANA, "If-None-Match": first.headers["etag"]},
        )
        assert resp.status_code == 304

    def test_custom_filename(self, client, export):
        resp = client.get(f"{API}/reports/download/{export['id']}", params={"filename": "../mayo.csv"}, headers=ANA)
        assert 'filename="mayo.csv"' in resp.headers["content-disposition"]

    def test_preview_is_inline(self, client, export):
        resp = client.get(f"{API}/reports/exports/{export['id']}/preview", headers=ANA)
        assert resp.status_code == 200
        assert resp.headers["content-disposition"].startswith("inline;")

    def test_signed_url(self, client, export):
        link = client.get(f"{API}/reports/exports/{export['id']}/download-url", headers=ANA).json()
        parts = urlsplit(link["url"])
        assert parts.path == f"{API}/reports/download/{export['id']}"

        resp = client.get(link["url"], headers={"X-User-ID": "luis"})
        assert resp.status_code == 200
        bad = client.get(f"{parts.path}?token=1.abc", headers={"X-User-ID": "luis"})
        assert bad.status_code == 403

    def test_stats_count_downloads(self, client, export):
        client.get(f"{API}/reports/download/{export['id']}", headers=ANA)
        stats = client.get(f"{API}/reports/stats", headers=ANA).json()
        assert stats["downloads"] == 1
        assert stats["by_status"] == {"COMPLETED": 1}

    def test_delete(self, client, export):
        assert client.delete(f"{API}/reports/exports/{export['id']}", headers=ANA).json()["deleted"] is True
        assert client.get(f"{API}/reports/download/{export['id']}", headers=ANA).status_code == 404


class TestApiKey:
    def test_missing_key_is_401(self, secured_client):
        resp = secured_client.get(f"{API}/cuyes")
        assert resp.status_code == 401
        assert resp.json()["status"] == 401

    def test_header_and_query_param(self, secured_client):
        assert secured_client.get(f"{API}/cuyes", headers={"X-API-Key": "k3y"}).status_code == 200
        assert secured_client.get(f"{API}/cuyes", params={"api_key": "k3y"}).status_code == 200

    def test_health_bypasses_auth(self, secured_client):
        assert secured_client.get("/health/live").status_code == 200

    def test_token_download_bypasses_auth(self, secured_client):
        headers = {"X-API-Key": "k3y", **ANA}
        job = secured_client.post(
            f"{API}/reports/exports", json={"template_id": "health", "format": "csv"}, headers=headers,
        ).json()
        link = secured_client.get(f"{API}/reports/exports/{job['id']}/download-url", headers=headers).json()

        assert secured_client.get(link["url"]).status_code == 200
        assert secured_client.get(f"{API}/reports/download/{job['id']}").status_code == 401
