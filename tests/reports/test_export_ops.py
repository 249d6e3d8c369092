"""Tests for ``cuyfarm.ops.reports`` and ``cuyfarm.ops.downloads``."""

from __future__ import annotations

import pytest

from cuyfarm.core.errors import ValidationError
from cuyfarm.ops import downloads
from cuyfarm.ops import reports as ops
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import CreateExportRequest, ListExportsRequest
from cuyfarm.reports.storage import FileStorage

SECRET = "download-secret"
MAYO = {"date_range": {"from": "2025-05-01", "to": "2025-05-31"}}


@pytest.fixture()
def storage(tmp_path) -> FileStorage:
    return FileStorage(tmp_path / "exports")


@pytest.fixture()
def other_ctx(conn) -> OperationContext:
    return OperationContext(conn=conn, caller="test", user="intruso")


@pytest.fixture()
def completed(ctx, storage):
    job = ops.create_export_job(ctx, CreateExportRequest(template_id="financial", format="csv", parameters=MAYO))
    assert job.success, job.error
    result = ops.process_export_job(ctx, job.data["id"], storage)
    assert result.success, result.error
    return result.data


def _expire(conn, job_id):
    conn.execute("UPDATE export_jobs SET expires_at = '2000-01-01T00:00:00+00:00' WHERE id = ?", (job_id,))
    conn.commit()


class TestCreateJob:
    def test_pending_job(self, ctx):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="inventory", format="excel")).data
        assert job["id"].startswith("job_")
        assert job["status"] == "PENDING"
        assert job["user_id"] == "tester"
        assert job["parameters"] == {}
        assert job["expires_at"] > job["created_at"]

    @pytest.mark.parametrize(
        ("request_", "field"),
        [
            (CreateExportRequest(template_id="clima"), "template_id"),
            (CreateExportRequest(template_id="health", format="docx"), "format"),
            (CreateExportRequest(template_id="health", parameters={"date_range": {"from": "x"}}), "date_range"),
        ],
    )
    def test_validation(self, ctx, request_, field):
        result = ops.create_export_job(ctx, request_)
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == field

    def test_dry_run(self, dry_ctx, ctx):
        result = ops.create_export_job(dry_ctx, CreateExportRequest(template_id="health"))
        assert result.data["dry_run"] is True
        assert ops.job_history(ctx, ListExportsRequest()).total == 0

    def test_templates(self, ctx):
        ids = [t["id"] for t in ops.list_report_templates(ctx).data]
        assert ids == ["financial", "inventory", "reproductive", "health"]


class TestProcessJob:
    def test_completes_with_file(self, completed, storage):
        assert completed["status"] == "COMPLETED"
        assert completed["progress"] == 100
        assert completed["file"]["file_name"] == "financial_2025-05-01_2025-05-31.csv"
        assert completed["file"]["mime_type"] == "text/csv"
        assert storage.stats()["files"] == 1

    def test_only_pending_jobs(self, ctx, completed, storage):
        assert ops.process_export_job(ctx, completed["id"], storage).error.code == "CONFLICT"

    def test_missing_job(self, ctx, storage):
        assert ops.process_export_job(ctx, "job_x", storage).error.code == "NOT_FOUND"

    def test_failure_marks_job_failed(self, ctx, storage, monkeypatch):
        def boom(*_args, **_kwargs):
            raise ValidationError("sin datos")

        monkeypatch.setattr(ops, "build_report_data", boom)
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="health", format="csv")).data
        result = ops.process_export_job(ctx, job["id"], storage)
        assert result.error.code == "VALIDATION_FAILED"

        failed = ops.get_job(ctx, job["id"]).data
        assert failed["status"] == "FAILED"
        assert failed["error_message"] == "sin datos"
        assert "file" not in failed

    def test_stored_file_removed_when_record_fails(self, ctx, storage, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(ops.ExportFileRepository, "create_file", boom)
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="inventory", format="csv")).data
        assert not ops.process_export_job(ctx, job["id"], storage).success

        assert ops.get_job(ctx, job["id"]).data["status"] == "FAILED"
        assert storage.stats()["files"] == 0

    def test_late_completion_keeps_timeout(self, ctx, conn, storage, monkeypatch):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="inventory", format="csv")).data
        real_store = storage.store

        def store_after_timeout(*args):
            conn.execute("UPDATE export_jobs SET status = 'TIMEOUT' WHERE id = ?", (job["id"],))
            conn.commit()
            return real_store(*args)

        monkeypatch.setattr(storage, "store", store_after_timeout)
        result = ops.process_export_job(ctx, job["id"], storage)
        assert result.error.code == "CONFLICT"

        timed_out = ops.get_job(ctx, job["id"]).data
        assert timed_out["status"] == "TIMEOUT"
        assert "file" not in timed_out
        assert storage.stats()["files"] == 0


class TestOwnership:
    def test_other_user_is_forbidden(self, other_ctx, completed, storage):
        assert ops.get_job(other_ctx, completed["id"]).error.code == "FORBIDDEN"
        assert ops.delete_job(other_ctx, completed["id"], storage).error.code == "FORBIDDEN"
        assert downloads.prepare_download(other_ctx, completed["id"], storage).error.code == "FORBIDDEN"

    def test_history_is_per_user(self, ctx, other_ctx, completed):
        ops.create_export_job(other_ctx, CreateExportRequest(template_id="health"))
        history = ops.job_history(ctx, ListExportsRequest())
        assert [j["id"] for j in history.data] == [completed["id"]]
        assert ops.job_history(ctx, ListExportsRequest(status="FAILED")).total == 0


class TestPrepareDownload:
    def test_full_download_is_counted(self, ctx, completed, storage):
        plan = downloads.prepare_download(ctx, completed["id"], storage).data
        assert plan.status_code == 200
        assert plan.start == 0
        assert plan.end is None
        assert plan.headers["Content-Length"] == str(completed["file"]["file_size"])
        assert ops.get_job(ctx, completed["id"]).data["file"]["download_count"] == 1

    def test_partial_download(self, ctx, completed, storage):
        plan = downloads.prepare_download(ctx, completed["id"], storage, range_header="bytes=0-9").data
        assert plan.status_code == 206
        assert plan.headers["Content-Range"] == f"bytes 0-9/{plan.file_size}"

        resumed = downloads.prepare_download(ctx, completed["id"], storage, range_header="bytes=10-").data
        assert resumed.start == 10
        assert ops.get_job(ctx, completed["id"]).data["file"]["download_count"] == 1

    def test_unsatisfiable_range(self, ctx, completed, storage):
        result = downloads.prepare_download(ctx, completed["id"], storage, range_header="bytes=999999-")
        assert result.error.code == "RANGE_NOT_SATISFIABLE"

    def test_not_modified(self, ctx, completed, storage):
        etag = f'"{completed["file"]["checksum"]}"'
        plan = downloads.prepare_download(ctx, completed["id"], storage, if_none_match=etag).data
        assert plan.status_code == 304
        assert plan.headers["X-Content-Type-Options"] == "nosniff"
        assert plan.headers["Content-Security-Policy"] == "default-src 'none'"
        assert ops.get_job(ctx, completed["id"]).data["file"]["download_count"] == 0

    def test_custom_file_name_is_sanitised(self, ctx, completed, storage):
        plan = downloads.prepare_download(ctx, completed["id"], storage, file_name="../mayo.csv").data
        assert 'filename="mayo.csv"' in plan.headers["Content-Disposition"]

    def test_pending_job_conflicts(self, ctx, storage):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="health")).data
        result = downloads.prepare_download(ctx, job["id"], storage)
        assert result.error.code == "CONFLICT"
        assert result.error.details["status"] == "PENDING"

    def test_expired_job_is_gone(self, ctx, conn, completed, storage):
        _expire(conn, completed["id"])
        assert downloads.prepare_download(ctx, completed["id"], storage).error.code == "GONE"

    def test_preview(self, ctx, completed, storage):
        plan = downloads.prepare_download(ctx, completed["id"], storage, preview=True).data
        assert plan.headers["Content-Disposition"].startswith("inline;")

    def test_no_preview_for_excel(self, ctx, storage):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="health", format="excel")).data
        ops.process_export_job(ctx, job["id"], storage)
        result = downloads.prepare_download(ctx, job["id"], storage, preview=True)
        assert result.error.code == "VALIDATION_FAILED"


class TestSignedUrls:
    def test_token_grants_access_to_other_caller(self, ctx, other_ctx, completed, storage):
        link = downloads.download_url(ctx, completed["id"], SECRET).data
        assert link["url"] == f"/api/v1/reports/download/{completed['id']}?token={link['token']}"

        result = downloads.prepare_download(other_ctx, completed["id"], storage, token=link["token"], secret=SECRET)
        assert result.success, result.error

    def test_bad_token(self, other_ctx, completed, storage):
        result = downloads.prepare_download(other_ctx, completed["id"], storage, token="1.abc", secret=SECRET)
        assert result.error.code == "FORBIDDEN"

    def test_url_needs_completed_job(self, ctx):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="health")).data
        assert downloads.download_url(ctx, job["id"], SECRET).error.code == "CONFLICT"


class TestMaintenance:
    def test_mark_timeouts(self, ctx, conn):
        job = ops.create_export_job(ctx, CreateExportRequest(template_id="health")).data
        assert ops.mark_timeouts(ctx, minutes=10).data == {"timed_out": []}

        conn.execute("UPDATE export_jobs SET created_at = '2000-01-01T00:00:00+00:00' WHERE id = ?", (job["id"],))
        conn.commit()
        assert ops.mark_timeouts(ctx, minutes=10).data == {"timed_out": [job["id"]]}
        assert ops.get_job(ctx, job["id"]).data["status"] == "TIMEOUT"

    def test_cleanup_expired(self, ctx, conn, completed, storage):
        assert ops.cleanup_expired_exports(ctx, storage).data["files_deleted"] == 0
        _expire(conn, completed["id"])

        result = ops.cleanup_expired_exports(ctx, storage).data
        assert result["expired_jobs"] == 1
        assert result["files_deleted"] == 1
        assert result["bytes_freed"] == completed["file"]["file_size"]
        assert storage.stats()["files"] == 0
        assert ops.get_job(ctx, completed["id"]).data["status"] == "COMPLETED"

    def test_stats(self, ctx, completed, storage):
        downloads.prepare_download(ctx, completed["id"], storage)
        stats = ops.export_stats(ctx).data
        assert stats["total_jobs"] == 1
        assert stats["by_status"] == {"COMPLETED": 1}
        assert stats["by_format"] == {"csv": 1}
        assert stats["downloads"] == 1
        assert stats["files"] == 1
        assert stats["activity"]["last_24h"] == 1

    def test_delete_job(self, ctx, completed, storage):
        assert ops.delete_job(ctx, completed["id"], storage).data == {"id": completed["id"], "deleted": True}
        assert storage.stats()["files"] == 0
        assert ops.get_job(ctx, completed["id"]).error.code == "NOT_FOUND"
