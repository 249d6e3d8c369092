"""
Export download operations.

:func:`prepare_download` runs every check a download needs and returns a
:class:`DownloadPlan`; the API layer only streams the planned byte range.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from cuyfarm.core.domain import utcnow_iso
from cuyfarm.core.errors import ConflictError, DownloadError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.core.repositories import ExportFileRepository, ExportJobRepository
from cuyfarm.ops._helpers import fail_from_exception, not_found
from cuyfarm.ops.context import OperationContext
from cuyfarm.ops.reports import owned_job
from cuyfarm.ops.result import OperationResult, start_timer
from cuyfarm.reports.downloads import (
    SECURITY_HEADERS,
    ByteRange,
    build_download_headers,
    etag_matches,
    generate_download_token,
    parse_range_header,
    verify_download_token,
)
from cuyfarm.reports.formats import PREVIEWABLE_MIME_TYPES, ExportStatus
from cuyfarm.reports.storage import FileStorage, safe_name

logger = get_logger(__name__)


@dataclass
class DownloadPlan:
    path: Path
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    byte_range: ByteRange | None = None
    file_size: int = 0

    @property
    def start(self) -> int:
        return self.byte_range.start if self.byte_range else 0

    @property
    def end(self) -> int | None:
        return self.byte_range.end if self.byte_range else None


def _expired(expires_at: str | None) -> bool:
    if not expires_at:
        return False
    expires = datetime.fromisoformat(expires_at)
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return expires < datetime.now(UTC)


def prepare_download(
    ctx: OperationContext,
    job_id: str,
    storage: FileStorage,
    *,
    range_header: str | None = None,
    if_none_match: str | None = None,
    token: str | None = None,
    secret: str | None = None,
    preview: bool = False,
    file_name: str | None = None,
) -> OperationResult[DownloadPlan]:
    """Check access to a job's file and plan the response.

    Access is granted to the job owner, or to anyone holding a valid
    signed *token* for the job.  Failures map to ``NOT_FOUND``,
    ``FORBIDDEN``, ``CONFLICT`` (job not finished), ``GONE`` (expired),
    ``VALIDATION_FAILED`` (preview of a binary format) and
    ``RANGE_NOT_SATISFIABLE``.

    A download is counted once per full transfer: requests without a
    range or whose range starts at byte 0.  *file_name* overrides the
    name sent in ``Content-Disposition``.
    """
    timer = start_timer()
    try:
        if token:
            job = ExportJobRepository(ctx.conn).get(job_id)
            if job and not verify_download_token(token, job_id, job["user_id"], secret or ""):
                raise DownloadError("Invalid or expired download token", code="FORBIDDEN")
        else:
            job = owned_job(ctx, job_id)
        if not job:
            return not_found("Export job", job_id, timer.elapsed_ms)

        if job["status"] != ExportStatus.COMPLETED.value:
            raise ConflictError(
                f"Export job {job_id} is not ready (status {job['status']})",
                details={"status": job["status"]},
            )
        if _expired(job.get("expires_at")):
            raise DownloadError(f"Export job {job_id} has expired", code="GONE")

        files = ExportFileRepository(ctx.conn)
        file_row = files.for_job(job_id)
        if file_row is None:
            return not_found("Export file for job", job_id, timer.elapsed_ms)
        if preview and file_row["mime_type"] not in PREVIEWABLE_MIME_TYPES:
            raise ValidationError(
                f"Preview not available for {file_row['mime_type']}",
                details={"mime_type": file_row["mime_type"]},
            )

        path = storage.resolve(file_row["file_path"])
        size = path.stat().st_size

        if etag_matches(if_none_match, file_row["checksum"]):
            return OperationResult.ok(
                DownloadPlan(
                    path=path,
                    status_code=304,
                    headers={
                        **SECURITY_HEADERS,
                        "ETag": f'"{file_row["checksum"]}"',
                        "Cache-Control": "private, max-age=3600",
                    },
                    file_size=size,
                ),
                elapsed_ms=timer.elapsed_ms,
            )

        byte_range = parse_range_header(range_header, size)
        headers = build_download_headers(
            file_name=safe_name(file_name) if file_name else file_row["file_name"],
            mime_type=file_row["mime_type"],
            size=size,
            byte_range=byte_range,
            inline=preview,
            checksum=file_row["checksum"],
            cache=not preview,
        )

        if byte_range is None or byte_range.start == 0:
            files.record_download(file_row["id"], utcnow_iso())
            ctx.conn.commit()

        logger.info(
            "export_download",
            job_id=job_id,
            preview=preview,
            range=byte_range.content_range if byte_range else None,
        )
        return OperationResult.ok(
            DownloadPlan(
                path=path,
                status_code=206 if byte_range else 200,
                headers=headers,
                byte_range=byte_range,
                file_size=size,
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "prepare download", elapsed_ms=timer.elapsed_ms)


def download_url(
    ctx: OperationContext,
    job_id: str,
    secret: str,
    *,
    base_path: str = "/api/v1/reports/download",
    minutes: int = 60,
) -> OperationResult[dict]:
    """Signed, time-limited download URL for one of the caller's jobs."""
    timer = start_timer()
    try:
        job = owned_job(ctx, job_id)
        if not job:
            return not_found("Export job", job_id, timer.elapsed_ms)
        if job["status"] != ExportStatus.COMPLETED.value:
            raise ConflictError(f"Export job {job_id} is not ready (status {job['status']})")
        token = generate_download_token(job_id, job["user_id"], secret, minutes)
        expires = datetime.fromtimestamp(int(token.split(".", 1)[0]), UTC)
        return OperationResult.ok(
            {
                "url": f"{base_path}/{job_id}?token={token}",
                "token": token,
                "expires_at": expires.isoformat(),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_from_exception(ctx, exc, "create download url", elapsed_ms=timer.elapsed_ms)
