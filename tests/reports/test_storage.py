"""Tests for ``cuyfarm.reports.storage``."""

from __future__ import annotations

import hashlib

import pytest

from cuyfarm.core.errors import DownloadError, ValidationError
from cuyfarm.reports.storage import FileStorage, safe_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("reporte.pdf", "reporte.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\temp\\x.csv", "x.csv"),
        ("mi reporte (1).xlsx", "mi_reporte_1_.xlsx"),
        ("..", "file"),
        ("", "file"),
    ],
)
def test_safe_name(raw, expected):
    assert safe_name(raw) == expected


class TestFileStorage:
    def test_store_and_read(self, tmp_path):
        storage = FileStorage(tmp_path)
        stored = storage.store("ana", "job_1", "r.csv", b"a,b\n1,2\n")
        assert stored.path == (tmp_path / "ana" / "job_1_r.csv").resolve()
        assert stored.size == 8
        assert stored.checksum == hashlib.sha256(b"a,b\n1,2\n").hexdigest()
        assert b"".join(storage.open_range(stored.path, 4)) == b"1,2\n"
        assert storage.stats() == {"files": 1, "bytes": 8}

    def test_user_id_cannot_escape(self, tmp_path):
        storage = FileStorage(tmp_path / "exports")
        stored = storage.store("../../evil", "job_1", "r.csv", b"x")
        assert (tmp_path / "exports").resolve() in stored.path.parents

    def test_size_limit(self, tmp_path):
        storage = FileStorage(tmp_path, max_file_mb=1)
        with pytest.raises(ValidationError):
            storage.store("ana", "job_1", "big.bin", b"0" * (1024 * 1024 + 1))

    def test_resolve_outside_root(self, tmp_path):
        storage = FileStorage(tmp_path / "exports")
        outside = tmp_path / "secret.txt"
        outside.write_text("x")
        with pytest.raises(DownloadError) as info:
            storage.resolve(outside)
        assert info.value.code == "FORBIDDEN"

    def test_resolve_missing(self, tmp_path):
        storage = FileStorage(tmp_path)
        with pytest.raises(DownloadError) as info:
            storage.resolve(tmp_path / "nope.pdf")
        assert info.value.code == "NOT_FOUND"

    def test_delete(self, tmp_path):
        storage = FileStorage(tmp_path)
        stored = storage.store("ana", "job_1", "r.csv", b"x")
        assert storage.delete(stored.path) is True
        assert storage.delete(stored.path) is False
        assert storage.stats()["files"] == 0

    def test_stats_without_root(self, tmp_path):
        assert FileStorage(tmp_path / "missing").stats() == {"files": 0, "bytes": 0}
