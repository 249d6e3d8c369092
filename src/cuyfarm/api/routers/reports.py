"""
Reports router: export jobs, downloads and previews.

Endpoints:
    GET    /reports/templates                    Available report templates
    POST   /reports/exports                      Queue an export (processed in background)
    GET    /reports/exports                      The caller's export history
    GET    /reports/exports/{id}                 Job status and file info
    DELETE /reports/exports/{id}                 Delete a job and its file
    GET    /reports/exports/{id}/download-url    Signed, time-limited download URL
    GET    /reports/exports/{id}/preview         Inline view (PDF / CSV only)
    GET    /reports/download/{id}                Download (Range, If-None-Match, ?token=)
    GET    /reports/stats                        Export statistics of the caller
    POST   /reports/cleanup                      Remove files of expired exports
    POST   /reports/timeouts                     Time out stuck export jobs

Ownership comes from the ``X-User-ID`` header.  A download request with
a valid ``token`` query parameter needs neither the header nor the API
key.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Header, Query
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field

from cuyfarm.api.deps import OpContext, Pagination, Settings, Storage
from cuyfarm.api.settings import CuyFarmSettings
from cuyfarm.api.utils import _handle_error, _paged, _single
from cuyfarm.core.connection import create_connection
from cuyfarm.core.logging import LogContext, get_logger
from cuyfarm.ops import downloads as download_ops
from cuyfarm.ops import reports as ops
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.requests import CreateExportRequest, ListExportsRequest
from cuyfarm.reports.downloads import iter_file_range
from cuyfarm.reports.formats import ExportFormat, ReportTemplate
from cuyfarm.reports.storage import FileStorage

logger = get_logger(__name__)

router = APIRouter(prefix="/reports")


class ExportCreate(BaseModel):
    template_id: ReportTemplate
    format: ExportFormat = ExportFormat.PDF
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="date_range: {from, to} (default: last 30 days)",
    )
    options: dict[str, Any] = Field(default_factory=dict)


def run_export_job(settings: CuyFarmSettings, job_id: str, storage: FileStorage, user: str) -> None:
    """Background task: process one export on its own connection.

    The request's connection is closed once the response is sent, so
    the job opens a fresh one.
    """
    conn, _info = create_connection(settings.database_url, data_dir=settings.data_dir)
    try:
        with LogContext(export_job=job_id):
            ctx = OperationContext(conn=conn, caller="background", user=user)
            result = ops.process_export_job(ctx, job_id, storage)
            if not result.success:
                logger.warning("export_job_background_failed", error=result.error.message if result.error else None)
    finally:
        conn.close()


def _download_response(result) -> Response:
    if not result.success:
        return _handle_error(result)
    plan = result.data
    if plan.status_code == 304:
        return Response(status_code=304, headers=plan.headers)
    return StreamingResponse(
        iter_file_range(plan.path, plan.start, plan.end),
        status_code=plan.status_code,
        headers=plan.headers,
        media_type=plan.headers.get("Content-Type"),
    )


@router.get("/templates")
def list_templates(ctx: OpContext):
    return _single(ops.list_report_templates(ctx))


@router.post("/exports", status_code=201)
def create_export(
    ctx: OpContext,
    body: ExportCreate,
    background: BackgroundTasks,
    settings: Settings,
    storage: Storage,
    dry_run: bool = Query(False, description="Validate only; no job is queued"),
):
    """Queue an export; poll ``GET /reports/exports/{id}`` for progress."""
    ctx.dry_run = dry_run
    request = CreateExportRequest(
        template_id=body.template_id.value,
        format=body.format.value,
        parameters=body.parameters,
        options=body.options,
    )
    result = ops.create_export_job(ctx, request, ttl_hours=settings.export_ttl_hours)
    if result.success and not dry_run:
        background.add_task(run_export_job, settings, result.data["id"], storage, ctx.user)
    return _single(result, status_code=200 if dry_run else 201)


@router.get("/exports")
def list_exports(
    ctx: OpContext,
    pagination: Pagination,
    status: str | None = Query(None),
    template_id: str | None = Query(None),
):
    request = ListExportsRequest(
        status=status, template_id=template_id, limit=pagination.limit, offset=pagination.offset,
    )
    return _paged(ops.job_history(ctx, request))


@router.get("/exports/{job_id}")
def get_export(ctx: OpContext, job_id: str):
    return _single(ops.get_job(ctx, job_id))


@router.delete("/exports/{job_id}")
def delete_export(ctx: OpContext, job_id: str, storage: Storage):
    return _single(ops.delete_job(ctx, job_id, storage))


@router.get("/exports/{job_id}/download-url")
def export_download_url(ctx: OpContext, job_id: str, settings: Settings):
    return _single(download_ops.download_url(
        ctx,
        job_id,
        settings.download_secret,
        base_path=f"{settings.api_prefix}/reports/download",
        minutes=settings.download_token_minutes,
    ))


@router.get("/exports/{job_id}/preview")
def preview_export(
    ctx: OpContext,
    job_id: str,
    storage: Storage,
    range: str | None = Header(None),
):
    result = download_ops.prepare_download(ctx, job_id, storage, range_header=range, preview=True)
    return _download_response(result)


@router.get("/download/{job_id}")
def download_export(
    ctx: OpContext,
    job_id: str,
    storage: Storage,
    settings: Settings,
    token: str | None = Query(None, description="Signed token from /download-url"),
    filename: str | None = Query(None, description="Custom file name for Content-Disposition"),
    range: str | None = Header(None),
    if_none_match: str | None = Header(None),
):
    """Stream the export file in 64 KB chunks; honours ``Range`` (206) and ``If-None-Match`` (304)."""
    result = download_ops.prepare_download(
        ctx,
        job_id,
        storage,
        range_header=range,
        if_none_match=if_none_match,
        token=token,
        secret=settings.download_secret,
        file_name=filename,
    )
    return _download_response(result)


@router.get("/stats")
def export_stats(ctx: OpContext):
    return _single(ops.export_stats(ctx))


@router.post("/cleanup")
def cleanup_exports(ctx: OpContext, storage: Storage):
    return _single(ops.cleanup_expired_exports(ctx, storage))


@router.post("/timeouts")
def mark_timeouts(ctx: OpContext, settings: Settings, minutes: int | None = Query(None, ge=1)):
    return _single(ops.mark_timeouts(ctx, minutes or settings.export_timeout_minutes))
