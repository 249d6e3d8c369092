"""
Report export operations.

Job lifecycle::

    create_export_job          PENDING
    process_export_job         PROCESSING → COMPLETED | FAILED
    mark_timeouts              PENDING/PROCESSING past the timeout → TIMEOUT
    cleanup_expired_exports    files of expired COMPLETED jobs are removed

Jobs belong to the user on the :class:`OperationContext`; another user
asking for a job gets ``FORBIDDEN``.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.errors import ConflictError, CuyFarmError, DownloadError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import ExportFileRepository, ExportJobRepository
from cuyfarm.ops._helpers import _rollback, fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import CreateExportRequest, ListExportsRequest
from cuyfarm.ops.result import OperationResult, PagedResult, start_timer
from cuyfarm.reports.data import BUILDERS, build_report_data, resolve_period
from cuyfarm.reports.formats import ExportFormat, ExportStatus
from cuyfarm.reports.generators import get_generator
from cuyfarm.reports.storage import FileStorage

logger = get_logger(__name__)

EXPORT_TTL_HOURS = 24

TEMPLATE_DESCRIPTIONS = {
    "financial": "Ventas, gastos y rentabilidad del periodo",
    "inventory": "Población por galpón, raza y etapa de vida",
    "reproductive": "Preñeces, camadas y tasa de éxito",
    "health": "Registros sanitarios y costos veterinarios",
}


def _job_dict(job: dict[str, Any], file_row: dict[str, Any] | None = None) -> dict[str, Any]:
    d = {k: v for k, v in job.items() if k not in ("parameters_json", "options_json")}
    d["parameters"] = json.loads(job["parameters_json"]) if job.get("parameters_json") else {}
    d["options"] = json.loads(job["options_json"]) if job.get("options_json") else {}
    if file_row is not None:
        d["file"] = {
            "id": file_row["id"],
            "file_name": file_row["file_name"],
            "file_size": file_row["file_size"],
            "mime_type": file_row["mime_type"],
            "checksum": file_row["checksum"],
            "download_count": file_row["download_count"],
            "last_downloaded_at": file_row["last_downloaded_at"],
        }
    return d


def owned_job(ctx: OperationContext, job_id: str) -> dict[str, Any] | None:
    """The job row, ``None`` when missing; raises when another user owns it."""
    job = ExportJobRepository(ctx.conn).get(job_id)
    if job and job["user_id"] != ctx.user:
        raise DownloadError(f"Export job {job_id} belongs to another user", code="FORBIDDEN")
    return job


def list_report_templates(ctx: OperationContext) -> OperationResult[list[dict]]:
    return OperationResult.ok([
        {
            "id": template_id,
            "description": TEMPLATE_DESCRIPTIONS.get(template_id, ""),
            "formats": [f.value for f in ExportFormat],
        }
        for template_id in BUILDERS
    ])


def create_export_job(
    ctx: OperationContext, request: CreateExportRequest, *, ttl_hours: int = EXPORT_TTL_HOURS,
) -> OperationResult[dict]:
    timer = start_timer()
    try:
        if request.template_id not in BUILDERS:
            raise ValidationError(
                f"Unknown report template: {request.template_id}",
                details={"field": "template_id", "allowed": sorted(BUILDERS)},
            )
        try:
            fmt = ExportFormat(request.format)
        except ValueError as e:
            raise ValidationError(f"Unsupported export format: {request.format}",
                                  details={"field": "format"}) from e
        resolve_period(request.parameters)

        now = datetime.now(UTC)
        row = {
            "id": f"job_{uuid.uuid4().hex[:16]}",
            "user_id": ctx.user,
            "template_id": request.template_id,
            "format": fmt.value,
            "parameters_json": json.dumps(request.parameters, default=str),
            "options_json": json.dumps(request.options, default=str),
            "status": ExportStatus.PENDING.value,
            "progress": 0,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(hours=ttl_hours)).isoformat(),
        }
        if ctx.dry_run:
            return OperationResult.ok({"dry_run": True, **_job_dict(row)}, elapsed_ms=timer.elapsed_ms)
        repo = ExportJobRepository(ctx.conn)
        job_id = repo.create_job(row)
        ctx.conn.commit()
        logger.info("export_job_created", job_id=job_id, template_id=request.template_id, format=fmt.value)
        return OperationResult.ok(_job_dict(repo.get(job_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create export job", elapsed_ms=timer.elapsed_ms)


def process_export_job(ctx: OperationContext, job_id: str, storage: FileStorage) -> OperationResult[dict]:
    """Build, render and store the export for a PENDING job.

    A failure while generating leaves the job ``FAILED`` with the error
    message; the operation then fails with the underlying error code.
    The job only leaves ``PROCESSING`` through this function if nothing
    else (the timeout sweep) moved it first; otherwise the stored file is
    removed and the operation fails with ``CONFLICT``.
    """
    timer = start_timer()
    repo = ExportJobRepository(ctx.conn)
    try:
        job = repo.get(job_id)
        if not job:
            return not_found("Export job", job_id, timer.elapsed_ms)
        started = repo.transition(job_id, ExportStatus.PENDING.value, {
            "status": ExportStatus.PROCESSING.value, "started_at": utcnow_iso(), "progress": 10,
        })
        if not started:
            raise ConflictError(f"Export job {job_id} is {job['status']}, expected PENDING")
        ctx.conn.commit()
    except Exception as exc:
        return fail_from_exception(ctx, exc, "start export job", elapsed_ms=timer.elapsed_ms)

    stored = None
    try:
        parameters = json.loads(job["parameters_json"]) if job.get("parameters_json") else {}
        options = json.loads(job["options_json"]) if job.get("options_json") else {}
        report = build_report_data(ctx.conn, job["template_id"], parameters)
        repo.update_job(job_id, {"progress": 40})

        generator = get_generator(job["format"])
        content = generator.generate(report, options)
        repo.update_job(job_id, {"progress": 70})

        stored = storage.store(job["user_id"], job_id, generator.file_name(report), content)
        ExportFileRepository(ctx.conn).create_file({
            "id": f"file_{uuid.uuid4().hex[:16]}",
            "job_id": job_id,
            "file_name": stored.file_name,
            "file_path": str(stored.path),
            "file_size": stored.size,
            "mime_type": generator.format.mime_type,
            "checksum": stored.checksum,
            "download_count": 0,
            "created_at": utcnow_iso(),
        })
        completed = repo.transition(job_id, ExportStatus.PROCESSING.value, {
            "status": ExportStatus.COMPLETED.value, "progress": 100, "completed_at": utcnow_iso(),
        })
        if not completed:
            raise ConflictError(f"Export job {job_id} is no longer PROCESSING")
        ctx.conn.commit()
        logger.info("export_job_completed", job_id=job_id, size=stored.size)
        return get_job(ctx, job_id, check_owner=False)
    except Exception as exc:
        _rollback(ctx)
        if stored is not None:
            _discard_file(storage, job_id, stored.path)
        message = getattr(exc, "message", None) or str(exc)
        failed = repo.transition(job_id, ExportStatus.PROCESSING.value, {
            "status": ExportStatus.FAILED.value, "error_message": message, "completed_at": utcnow_iso(),
        })
        ctx.conn.commit()
        logger.warning("export_job_failed" if failed else "export_job_abandoned", job_id=job_id, error=message)
        return fail_from_exception(ctx, exc, "process export job", elapsed_ms=timer.elapsed_ms)


def _discard_file(storage: FileStorage, job_id: str, path) -> None:
    """Remove a file whose job never reached COMPLETED."""
    try:
        storage.delete(path)
    except CuyFarmError as e:
        logger.error("export_file_discard_failed", job_id=job_id, path=str(path), error=e.message)


def get_job(ctx: OperationContext, job_id: str, *, check_owner: bool = True) -> OperationResult[dict]:
    timer = start_timer()
    try:
        job = owned_job(ctx, job_id) if check_owner else ExportJobRepository(ctx.conn).get(job_id)
        if not job:
            return not_found("Export job", job_id, timer.elapsed_ms)
        return OperationResult.ok(
            _job_dict(job, ExportFileRepository(ctx.conn).for_job(job_id)), elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "get export job", elapsed_ms=timer.elapsed_ms)


def job_history(ctx: OperationContext, request: ListExportsRequest) -> PagedResult[dict]:
    """The current user's export jobs, newest first."""
    timer = start_timer()
    try:
        rows, total = ExportJobRepository(ctx.conn).list_jobs(
            user_id=ctx.user,
            status=request.status,
            template_id=request.template_id,
            limit=request.limit,
            offset=request.offset,
        )
        files = ExportFileRepository(ctx.conn)
        items = [_job_dict(r, files.for_job(r["id"])) for r in rows]
        return PagedResult.from_items(
            items, total, limit=request.limit, offset=request.offset, elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "list export jobs", elapsed_ms=timer.elapsed_ms, paged=True)


def export_stats(ctx: OperationContext) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = ExportJobRepository(ctx.conn)
        now = datetime.now(UTC)
        by_status = repo.grouped("status", ctx.user)
        return OperationResult.ok(
            {
                "total_jobs": sum(by_status.values()),
                "by_status": by_status,
                "by_format": repo.grouped("format", ctx.user),
                "by_template": repo.grouped("template_id", ctx.user),
                **ExportFileRepository(ctx.conn).totals(ctx.user),
                "activity": {
                    "last_24h": repo.created_since((now - timedelta(hours=24)).isoformat(), ctx.user),
                    "last_7d": repo.created_since((now - timedelta(days=7)).isoformat(), ctx.user),
                    "last_30d": repo.created_since((now - timedelta(days=30)).isoformat(), ctx.user),
                },
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "compute export stats", elapsed_ms=timer.elapsed_ms)


def cleanup_expired_exports(ctx: OperationContext, storage: FileStorage) -> OperationResult[dict]:
    """Delete the files of completed jobs past ``expires_at``; job rows stay."""
    timer = start_timer()
    try:
        jobs = ExportJobRepository(ctx.conn)
        files = ExportFileRepository(ctx.conn)
        expired = jobs.expired_completed(utcnow_iso())
        deleted = freed = 0
        for job in expired:
            file_row = files.for_job(job["id"])
            if file_row is None:
                continue
            if storage.delete(file_row["file_path"]):
                deleted += 1
                freed += int(file_row["file_size"] or 0)
            files.delete_for_job(job["id"])
        ctx.conn.commit()
        logger.info("exports_cleaned", jobs=len(expired), files_deleted=deleted, bytes_freed=freed)
        return OperationResult.ok(
            {"expired_jobs": len(expired), "files_deleted": deleted, "bytes_freed": freed},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "clean up exports", elapsed_ms=timer.elapsed_ms)


def mark_timeouts(ctx: OperationContext, minutes: int = 10) -> OperationResult[dict]:
    """Move jobs stuck in PENDING/PROCESSING for over *minutes* to TIMEOUT."""
    timer = start_timer()
    try:
        repo = ExportJobRepository(ctx.conn)
        cutoff = (datetime.now(UTC) - timedelta(minutes=minutes)).isoformat()
        stale = repo.stale_processing(cutoff)
        now = utcnow_iso()
        timed_out = [
            job["id"] for job in stale
            if repo.transition(job["id"], job["status"], {
                "status": ExportStatus.TIMEOUT.value,
                "error_message": f"Timed out after {minutes} minutes",
                "completed_at": now,
            })
        ]
        ctx.conn.commit()
        if timed_out:
            logger.warning("export_jobs_timed_out", count=len(timed_out))
        return OperationResult.ok({"timed_out": timed_out}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "mark export timeouts", elapsed_ms=timer.elapsed_ms)


def delete_job(ctx: OperationContext, job_id: str, storage: FileStorage) -> OperationResult[dict]:
    timer = start_timer()
    try:
        job = owned_job(ctx, job_id)
        if not job:
            return not_found("Export job", job_id, timer.elapsed_ms)
        files = ExportFileRepository(ctx.conn)
        file_row = files.for_job(job_id)
        if file_row is not None:
            storage.delete(file_row["file_path"])
            files.delete_for_job(job_id)
        ExportJobRepository(ctx.conn).delete(job_id)
        ctx.conn.commit()
        logger.info("export_job_deleted", job_id=job_id)
        return OperationResult.ok({"id": job_id, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return fail_from_exception(ctx, exc, "delete export job", elapsed_ms=timer.elapsed_ms)
