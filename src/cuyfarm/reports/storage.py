"""
Local file storage for generated exports.

Files live under ``<export_dir>/<user>/<job>_<name>``.  Every path handed
back by :class:`FileStorage` is checked to stay inside ``export_dir``.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from cuyfarm.core.errors import DownloadError, StorageError, ValidationError
from cuyfarm.core.logging import get_logger
from cuyfarm.reports.downloads import CHUNK_SIZE, iter_file_range

logger = get_logger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_name(name: str, default: str = "file") -> str:
    """Strip directories and anything outside ``[A-Za-z0-9._-]``."""
    base = Path(str(name).replace("\\", "/")).name
    cleaned = _UNSAFE.sub("_", base).strip("._")
    return cleaned[:200] or default


@dataclass(frozen=True)
class StoredFile:
    path: Path
    file_name: str
    size: int
    checksum: str


class FileStorage:
    """Writes, reads and removes export files under one root directory."""

    def __init__(self, export_dir: str | Path, *, max_file_mb: int = 50):
        self.root = Path(export_dir).resolve()
        self.max_bytes = max_file_mb * 1024 * 1024

    def _inside_root(self, path: Path) -> Path:
        resolved = path.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise DownloadError(f"Path outside export directory: {path}", code="FORBIDDEN")
        return resolved

    def store(self, user_id: str, job_id: str, file_name: str, content: bytes) -> StoredFile:
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"File exceeds maximum size of {self.max_bytes // (1024 * 1024)} MB",
                details={"size": len(content), "max_bytes": self.max_bytes},
            )
        name = f"{safe_name(job_id)}_{safe_name(file_name)}"
        target = self._inside_root(self.root / safe_name(user_id, "anonymous") / name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Could not write export file: {e}", cause=e) from e
        checksum = hashlib.sha256(content).hexdigest()
        logger.info("export_file_stored", path=str(target), size=len(content))
        return StoredFile(path=target, file_name=safe_name(file_name), size=len(content), checksum=checksum)

    def resolve(self, file_path: str | Path) -> Path:
        """Validated absolute path of a stored file; 404 when missing."""
        path = self._inside_root(Path(file_path))
        if not path.is_file():
            raise DownloadError(f"File not found: {path.name}", code="NOT_FOUND")
        return path

    def open_range(
        self, file_path: str | Path, start: int = 0, end: int | None = None, chunk_size: int = CHUNK_SIZE,
    ) -> Iterator[bytes]:
        """Stream bytes ``start..end`` (inclusive) of a stored file."""
        return iter_file_range(self.resolve(file_path), start, end, chunk_size)

    def delete(self, file_path: str | Path) -> bool:
        """Remove a stored file.  Returns ``False`` when it was already gone."""
        path = self._inside_root(Path(file_path))
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Could not delete export file: {e}", cause=e) from e
        logger.info("export_file_deleted", path=str(path))
        return True

    def stats(self) -> dict[str, int]:
        if not self.root.exists():
            return {"files": 0, "bytes": 0}
        files = [p for p in self.root.rglob("*") if p.is_file()]
        return {"files": len(files), "bytes": sum(p.stat().st_size for p in files)}
