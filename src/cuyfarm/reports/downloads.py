"""
Download helpers: HTTP ``Range`` parsing, chunked file streaming,
response headers and signed download tokens.

Token format::

    <expires_epoch>.<hex HMAC-SHA256(secret, "job:user:expires")>

The expiry travels inside the token, so verification needs nothing but
the secret.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from cuyfarm.core.errors import DownloadError

CHUNK_SIZE = 64 * 1024

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'",
}


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte range ``[start, end]`` of a file of ``size`` bytes."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def parse_range_header(header: str | None, size: int) -> ByteRange | None:
    """Parse a single ``bytes=`` range against a file of *size* bytes.

    Supports ``start-end``, ``start-`` and the suffix form ``-N``.  Returns
    ``None`` for a missing or malformed header (serve the whole file) and
    raises ``DownloadError(code="RANGE_NOT_SATISFIABLE")`` when the range
    lies outside the file.

    >>> parse_range_header("bytes=0-99", 1000).length
    100
    >>> parse_range_header("bytes=-100", 1000).start
    900
    """
    if not header:
        return None
    match = _RANGE_RE.match(header.strip())
    if not match:
        return None
    first, last = match.groups()
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise _unsatisfiable(size)
        return ByteRange(max(size - suffix, 0), size - 1, size)

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or start > end:
        raise _unsatisfiable(size)
    return ByteRange(start, min(end, size - 1), size)


def _unsatisfiable(size: int) -> DownloadError:
    return DownloadError(
        "Range not satisfiable",
        code="RANGE_NOT_SATISFIABLE",
        details={"content_range": f"bytes */{size}"},
    )


def iter_file_range(
    path: str | Path,
    start: int = 0,
    end: int | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield ``path[start:end]`` (inclusive *end*) in chunks of *chunk_size*."""
    with open(path, "rb") as fh:
        fh.seek(start)
        remaining = None if end is None else end - start + 1
        while remaining is None or remaining > 0:
            to_read = chunk_size if remaining is None else min(chunk_size, remaining)
            chunk = fh.read(to_read)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk


def content_disposition(file_name: str, *, inline: bool = False) -> str:
    """``Content-Disposition`` with an ASCII fallback and an RFC 5987 name."""
    disposition = "inline" if inline else "attachment"
    ascii_name = file_name.encode("ascii", "ignore").decode() or "download"
    ascii_name = ascii_name.replace('"', "")
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name)}"


def build_download_headers(
    *,
    file_name: str,
    mime_type: str,
    size: int,
    byte_range: ByteRange | None = None,
    inline: bool = False,
    checksum: str | None = None,
    cache: bool = True,
) -> dict[str, str]:
    headers = dict(SECURITY_HEADERS)
    headers.update({
        "Content-Type": mime_type,
        "Content-Disposition": content_disposition(file_name, inline=inline),
        "Accept-Ranges": "bytes",
        "Content-Length": str(byte_range.length if byte_range else size),
    })
    if byte_range is not None:
        headers["Content-Range"] = byte_range.content_range
    if cache:
        headers["Cache-Control"] = "private, max-age=3600"
        if checksum:
            headers["ETag"] = f'"{checksum}"'
    else:
        headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return headers


def etag_matches(if_none_match: str | None, checksum: str | None) -> bool:
    if not if_none_match or not checksum:
        return False
    tags = {t.strip().removeprefix("W/").strip('"') for t in if_none_match.split(",")}
    return checksum in tags or "*" in tags


# ── Tokens ───────────────────────────────────────────────────────────────


def _sign(secret: str, job_id: str, user_id: str, expires: int) -> str:
    message = f"{job_id}:{user_id}:{expires}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def generate_download_token(
    job_id: str,
    user_id: str,
    secret: str,
    minutes: int = 60,
    *,
    now: float | None = None,
) -> str:
    expires = int((now if now is not None else time.time()) + minutes * 60)
    return f"{expires}.{_sign(secret, job_id, user_id, expires)}"


def verify_download_token(
    token: str,
    job_id: str,
    user_id: str,
    secret: str,
    *,
    now: float | None = None,
) -> bool:
    """Check signature (constant time) and expiry of a download token."""
    expires_str, _, signature = (token or "").partition(".")
    if not expires_str.isdigit() or not signature:
        return False
    expires = int(expires_str)
    if expires < (now if now is not None else time.time()):
        return False
    return hmac.compare_digest(signature, _sign(secret, job_id, user_id, expires))
