"""
Blob Storage Gateway — file transport for templates, uploads and drafts.

All outbound blob calls go through this module.  Services hand over a
pathname and the file bytes and get back a publicly fetchable URL, which
they store verbatim; the URL is never re-validated or re-fetched.

Backends:
  - ``vercel``: Vercel Blob HTTP API (PUT /<pathname>, POST /delete,
    GET /?prefix=).  Requires BLOB_READ_WRITE_TOKEN.
  - ``local``:  files written under BLOB_LOCAL_DIR and served from
    BLOB_PUBLIC_BASE_URL.  Used in development and tests.

Failures fail fast: no retries, a ``BlobStorageError`` is raised and the
calling service aborts before touching the database.

Testability: pass a mock ``session`` to VercelBlobGateway() in tests
instead of letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

import requests
from flask import current_app

logger = logging.getLogger(__name__)

_DEFAULT_API_URL = "https://blob.vercel-storage.com"
_API_VERSION = "7"
_DEFAULT_TIMEOUT = 30


class BlobStorageError(Exception):
    """Raised when the blob backend rejects or fails a call.

    Callers should surface this as a 502 response.
    """


class BlobResult:
    """Structured return value from ``put``.

    Attributes:
        url:           Public URL of the stored blob.
        pathname:      Pathname inside the store (may carry a random suffix).
        size:          Stored size in bytes.
        content_type:  Content type recorded for the blob.
    """

    def __init__(self, url: str, pathname: str, size: int, content_type: str | None = None) -> None:
        self.url = url
        self.pathname = pathname
        self.size = size
        self.content_type = content_type

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "pathname": self.pathname,
            "size": self.size,
            "content_type": self.content_type,
        }


def _read_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    stream = getattr(data, "stream", data)
    return stream.read()


class VercelBlobGateway:
    """Vercel Blob REST gateway.

    Usage:
        gateway = VercelBlobGateway(token="vercel_blob_rw_...")
        result = gateway.put("templates/2024/esg.xlsx", file_bytes)
    """

    def __init__(
        self,
        token: str,
        api_url: str = _DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        if not token:
            raise BlobStorageError("BLOB_READ_WRITE_TOKEN is not configured")
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._session: requests.Session | None = session
        self._timeout = timeout

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self, extra: dict | None = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "x-api-version": _API_VERSION,
        }
        if extra:
            headers.update(extra)
        return headers

    def _call(self, method: str, url: str, **kwargs) -> requests.Response:
        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Blob %s %s failed: %s", method, url, exc)
            raise BlobStorageError(f"Blob storage unreachable: {exc}") from exc
        duration_ms = (time.perf_counter() - t0) * 1000
        if resp.status_code >= 400:
            logger.error(
                "Blob %s %s returned %d", method, url, resp.status_code,
                extra={"status": resp.status_code, "duration_ms": duration_ms},
            )
            raise BlobStorageError(f"Blob storage returned HTTP {resp.status_code}: {resp.text[:200]}")
        logger.debug("Blob %s %s ok", method, url, extra={"duration_ms": duration_ms})
        return resp

    def put(self, pathname: str, data, content_type: str | None = None) -> BlobResult:
        body = _read_bytes(data)
        # Never overwrite: same-named files get distinct pathnames
        extra = {"x-add-random-suffix": "1"}
        if content_type:
            extra["x-content-type"] = content_type
        resp = self._call(
            "PUT", f"{self._api_url}/{pathname.lstrip('/')}",
            data=body, headers=self._headers(extra),
        )
        payload = resp.json()
        url = payload.get("url")
        if not url:
            raise BlobStorageError(f"Blob put response missing url: {payload}")
        return BlobResult(
            url=url,
            pathname=payload.get("pathname", pathname),
            size=len(body),
            content_type=payload.get("contentType", content_type),
        )

    def delete(self, url: str) -> None:
        self._call(
            "POST", f"{self._api_url}/delete",
            json={"urls": [url]}, headers=self._headers({"Content-Type": "application/json"}),
        )

    def list(self, prefix: str | None = None) -> list[dict]:
        params = {"prefix": prefix} if prefix else None
        resp = self._call("GET", self._api_url, params=params, headers=self._headers())
        return resp.json().get("blobs", [])


class LocalBlobStorage:
    """Filesystem-backed blob store with the same interface as the gateway."""

    def __init__(self, root_dir: str, public_base_url: str = "/blobs") -> None:
        self._root = Path(root_dir)
        self._base_url = public_base_url.rstrip("/")

    @property
    def root_dir(self) -> str:
        return str(self._root.resolve())

    def _path_for(self, pathname: str) -> Path:
        target = (self._root / pathname.lstrip("/")).resolve()
        if self._root.resolve() not in target.parents:
            raise BlobStorageError(f"Invalid blob pathname: {pathname!r}")
        return target

    def _free_path(self, pathname: str) -> Path:
        """``pathname`` itself, or a ``<stem>-<hex8><suffix>`` sibling when taken."""
        base = target = self._path_for(pathname)
        while target.exists():
            target = base.with_name(f"{base.stem}-{uuid.uuid4().hex[:8]}{base.suffix}")
        return target

    def put(self, pathname: str, data, content_type: str | None = None) -> BlobResult:
        body = _read_bytes(data)
        target = self._free_path(pathname)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as fh:
                fh.write(body)
        except FileExistsError as exc:
            raise BlobStorageError(f"Blob {pathname!r} was written concurrently") from exc
        except OSError as exc:
            raise BlobStorageError(f"Could not write blob {pathname!r}: {exc}") from exc
        clean = target.relative_to(self._root.resolve()).as_posix()
        return BlobResult(
            url=f"{self._base_url}/{clean}",
            pathname=clean,
            size=len(body),
            content_type=content_type,
        )

    def delete(self, url: str) -> None:
        prefix = f"{self._base_url}/"
        if not url.startswith(prefix):
            raise BlobStorageError(f"URL {url!r} is not served by this store")
        target = self._path_for(url[len(prefix):])
        if target.exists():
            target.unlink()

    def list(self, prefix: str | None = None) -> list[dict]:
        if not self._root.exists():
            return []
        blobs = []
        for path in sorted(p for p in self._root.rglob("*") if p.is_file()):
            pathname = path.relative_to(self._root).as_posix()
            if prefix and not pathname.startswith(prefix):
                continue
            blobs.append({
                "url": f"{self._base_url}/{pathname}",
                "pathname": pathname,
                "size": path.stat().st_size,
            })
        return blobs


# ── App wiring ────────────────────────────────────────────────────────────────


def init_blob_storage(app) -> None:
    """Build the configured backend and attach it to ``app.extensions``."""
    backend = (app.config.get("BLOB_BACKEND") or "local").lower()
    if backend == "vercel":
        storage = VercelBlobGateway(
            token=app.config.get("BLOB_READ_WRITE_TOKEN"),
            api_url=app.config.get("BLOB_API_URL") or _DEFAULT_API_URL,
        )
    elif backend == "local":
        root = app.config.get("BLOB_LOCAL_DIR") or os.path.join(app.instance_path, "blobs")
        storage = LocalBlobStorage(root, app.config.get("BLOB_PUBLIC_BASE_URL", "/blobs"))
    else:
        raise RuntimeError(f"Unknown BLOB_BACKEND {backend!r} (expected 'vercel' or 'local')")
    app.extensions["blob_storage"] = storage
    app.logger.info("Blob storage configured: backend=%s", backend)


def get_blob_storage():
    """Return the blob backend of the current app."""
    return current_app.extensions["blob_storage"]
