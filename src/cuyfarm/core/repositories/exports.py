"""Report export job and file repositories."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where


class ExportJobRepository(BaseRepository):
    """CRUD for ``export_jobs``."""

    TABLE = "export_jobs"

    def list_jobs(
        self,
        *,
        user_id: str | None = None,
        status: str | None = None,
        template_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        where, params = _build_where(
            {"user_id": user_id, "status": status, "template_id": template_id},
        )
        return self.paginate(where, params, order_by="created_at DESC", limit=limit, offset=offset)

    def create_job(self, data: dict[str, Any]) -> str:
        return self.insert(self.TABLE, data)

    def update_job(self, job_id: str, updates: dict[str, Any]) -> None:
        self.update(self.TABLE, job_id, updates)

    def transition(self, job_id: str, from_status: str, updates: dict[str, Any]) -> bool:
        """Apply *updates* only while the job is still in *from_status*."""
        sets = ", ".join(f"{k} = ?" for k in updates)
        cursor = self.execute(
            f"UPDATE export_jobs SET {sets} WHERE id = ? AND status = ?",
            (*updates.values(), job_id, from_status),
        )
        return cursor.rowcount == 1

    def grouped(self, column: str, user_id: str | None = None) -> dict[str, int]:
        if column not in ("status", "format", "template_id"):
            raise ValueError(f"Unknown export column: {column}")
        where, params = _build_where({"user_id": user_id})
        rows = self.query(
            f"SELECT {column} AS k, COUNT(*) AS total FROM export_jobs WHERE {where} "
            f"GROUP BY {column}",
            params,
        )
        return {r["k"]: int(r["total"]) for r in rows}

    def created_since(self, since: str, user_id: str | None = None) -> int:
        where, params = _build_where({"user_id": user_id}, extra_clauses=["created_at >= ?"],
                                     extra_params=(since,))
        return self.count(where, params)

    def stale_processing(self, started_before: str) -> list[dict[str, Any]]:
        """Jobs still PENDING or PROCESSING that started before the cutoff."""
        return self.query(
            "SELECT * FROM export_jobs WHERE status IN ('PENDING', 'PROCESSING') "
            "AND COALESCE(started_at, created_at) < ?",
            (started_before,),
        )

    def expired_completed(self, now: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM export_jobs WHERE status = 'COMPLETED' AND expires_at < ?", (now,),
        )


class ExportFileRepository(BaseRepository):
    """CRUD for ``export_files``."""

    TABLE = "export_files"

    def create_file(self, data: dict[str, Any]) -> str:
        return self.insert(self.TABLE, data)

    def for_job(self, job_id: str) -> dict[str, Any] | None:
        return self.query_one(
            "SELECT * FROM export_files WHERE job_id = ? ORDER BY created_at DESC", (job_id,),
        )

    def delete_for_job(self, job_id: str) -> None:
        self.execute("DELETE FROM export_files WHERE job_id = ?", (job_id,))

    def record_download(self, file_id: str, at: str) -> None:
        self.execute(
            "UPDATE export_files SET download_count = download_count + 1, "
            "last_downloaded_at = ? WHERE id = ?",
            (at, file_id),
        )

    def totals(self, user_id: str | None = None) -> dict[str, int]:
        """Total downloads and stored bytes, optionally for one user."""
        where, params = _build_where({"j.user_id": user_id})
        row = self.query_one(
            "SELECT COALESCE(SUM(f.download_count), 0) AS downloads, "
            "COALESCE(SUM(f.file_size), 0) AS bytes, COUNT(f.id) AS files "
            "FROM export_files f JOIN export_jobs j ON j.id = f.job_id "
            f"WHERE {where}",
            params,
        ) or {}
        return {
            "downloads": int(row.get("downloads") or 0),
            "bytes": int(row.get("bytes") or 0),
            "files": int(row.get("files") or 0),
        }
