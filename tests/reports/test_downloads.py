"""Tests for ``cuyfarm.reports.downloads``."""

from __future__ import annotations

import pytest

from cuyfarm.core.errors import DownloadError
from cuyfarm.reports.downloads import (
    build_download_headers,
    content_disposition,
    etag_matches,
    generate_download_token,
    iter_file_range,
    parse_range_header,
    verify_download_token,
)

SECRET = "s3cret"
NOW = 1_700_000_000.0


class TestParseRange:
    def test_closed_range(self):
        rng = parse_range_header("bytes=0-99", 1000)
        assert (rng.start, rng.end, rng.length) == (0, 99, 100)
        assert rng.content_range == "bytes 0-99/1000"

    def test_open_ended(self):
        rng = parse_range_header("bytes=500-", 1000)
        assert (rng.start, rng.end) == (500, 999)

    def test_suffix(self):
        rng = parse_range_header("bytes=-100", 1000)
        assert (rng.start, rng.end) == (900, 999)

    def test_suffix_longer_than_file(self):
        rng = parse_range_header("bytes=-5000", 1000)
        assert rng.start == 0

    def test_end_is_clamped(self):
        assert parse_range_header("bytes=900-5000", 1000).end == 999

    @pytest.mark.parametrize("header", [None, "", "items=0-1", "bytes=a-b", "bytes=-", "bytes=0-1,5-6"])
    def test_ignored_headers(self, header):
        assert parse_range_header(header, 1000) is None

    @pytest.mark.parametrize("header", ["bytes=1000-", "bytes=50-10", "bytes=-0"])
    def test_unsatisfiable(self, header):
        with pytest.raises(DownloadError) as info:
            parse_range_header(header, 1000)
        assert info.value.code == "RANGE_NOT_SATISFIABLE"
        assert info.value.details["content_range"] == "bytes */1000"


class TestIterFileRange:
    def test_chunks_and_bounds(self, tmp_path):
        path = tmp_path / "f.bin"
        path.write_bytes(bytes(range(256)) * 4)
        chunks = list(iter_file_range(path, 10, 109, chunk_size=32))
        assert [len(c) for c in chunks] == [32, 32, 32, 4]
        assert b"".join(chunks) == path.read_bytes()[10:110]

    def test_whole_file(self, tmp_path):
        path = tmp_path / "f.bin"
        path.write_bytes(b"abc")
        assert b"".join(iter_file_range(path)) == b"abc"


class TestHeaders:
    def test_content_disposition_is_ascii_safe(self):
        value = content_disposition('reporte "año".pdf')
        assert value.startswith('attachment; filename="reporte ao.pdf"')
        assert "filename*=UTF-8''reporte%20%22a%C3%B1o%22.pdf" in value
        assert content_disposition("x.pdf", inline=True).startswith("inline;")

    def test_full_download(self):
        headers = build_download_headers(file_name="r.pdf", mime_type="application/pdf", size=1000, checksum="abc")
        assert headers["Content-Length"] == "1000"
        assert headers["Accept-Ranges"] == "bytes"
        assert headers["ETag"] == '"abc"'
        assert headers["X-Content-Type-Options"] == "nosniff"
        assert "Content-Range" not in headers

    def test_partial_download(self):
        rng = parse_range_header("bytes=0-9", 1000)
        headers = build_download_headers(file_name="r.csv", mime_type="text/csv", size=1000, byte_range=rng)
        assert headers["Content-Length"] == "10"
        assert headers["Content-Range"] == "bytes 0-9/1000"

    def test_no_cache_for_preview(self):
        headers = build_download_headers(
            file_name="r.pdf", mime_type="application/pdf", size=1, checksum="abc", cache=False,
        )
        assert headers["Cache-Control"].startswith("no-cache")
        assert "ETag" not in headers

    @pytest.mark.parametrize(
        ("header", "expected"),
        [('"abc"', True), ('W/"abc"', True), ('"x", "abc"', True), ("*", True), ('"x"', False), (None, False)],
    )
    def test_etag_matches(self, header, expected):
        assert etag_matches(header, "abc") is expected


class TestTokens:
    def test_roundtrip(self):
        token = generate_download_token("job_1", "ana", SECRET, 10, now=NOW)
        assert token.split(".")[0] == str(int(NOW + 600))
        assert verify_download_token(token, "job_1", "ana", SECRET, now=NOW + 599)

    def test_expired(self):
        token = generate_download_token("job_1", "ana", SECRET, 10, now=NOW)
        assert not verify_download_token(token, "job_1", "ana", SECRET, now=NOW + 601)

    @pytest.mark.parametrize(
        ("job", "user", "secret"),
        [("job_2", "ana", SECRET), ("job_1", "luis", SECRET), ("job_1", "ana", "otro")],
    )
    def test_bound_to_job_user_and_secret(self, job, user, secret):
        token = generate_download_token("job_1", "ana", SECRET, 10, now=NOW)
        assert not verify_download_token(token, job, user, secret, now=NOW)

    def test_tampered_expiry(self):
        token = generate_download_token("job_1", "ana", SECRET, 10, now=NOW)
        _expires, signature = token.split(".")
        forged = f"{int(NOW) + 999999}.{signature}"
        assert not verify_download_token(forged, "job_1", "ana", SECRET, now=NOW)

    @pytest.mark.parametrize("token", ["", "abc", "123.", ".deadbeef"])
    def test_malformed(self, token):
        assert not verify_download_token(token, "job_1", "ana", SECRET, now=NOW)
