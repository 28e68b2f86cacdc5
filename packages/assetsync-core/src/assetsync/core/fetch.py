from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import httpx

from assetsync.core.exception import EntryFetchFailed
from assetsync.core.runtime.settings import DEFAULT_RESOURCE_BASE_URL, Settings

log = logging.getLogger("assetsync.core.fetch")

_CHUNK = 64 * 1024


def resource_url(content_hash: str, base_url: str = DEFAULT_RESOURCE_BASE_URL) -> str:
    """Remote location of an object: <base_url>/<hash[0:2]>/<hash>."""
    return f"{base_url.rstrip('/')}/{content_hash[0:2]}/{content_hash}"


class HttpFetcher:
    """
    Fetch primitive backed by httpx.

    MUST-HAVE:
      - lazy client() + lifecycle (close / context manager)
      - fetch(url, dest) writing through a temp sibling so a failed download
        never leaves a truncated object at dest
      - transport injection (httpx.MockTransport in tests)
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        headers: Optional[dict] = None,
        transport: Any | None = None,
    ):
        self._timeout = float(timeout)
        self._verify_ssl = bool(verify_ssl)
        self._headers = dict(headers or {})
        self._transport = transport
        self._client: httpx.Client | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **kw) -> "HttpFetcher":
        return cls(timeout=settings.http_timeout, verify_ssl=settings.verify_ssl, **kw)

    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                headers=self._headers,
                timeout=self._timeout,
                verify=self._verify_ssl,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.close()
        except Exception:
            log.warning("non-critical fetcher close failed; continuing", exc_info=True)

    def fetch(self, url: str, dest: Path) -> int:
        """Download url into dest. Returns the number of bytes written."""
        dest = Path(dest)
        tmp: Path | None = None
        written = 0
        try:
            # One temp file per call: concurrent fetches of the same hash never share it.
            fd, name = tempfile.mkstemp(dir=dest.parent, prefix=dest.name + ".", suffix=".part")
            tmp = Path(name)
            with os.fdopen(fd, "wb") as f, self.client().stream("GET", url) as r:
                r.raise_for_status()
                for chunk in r.iter_bytes(_CHUNK):
                    f.write(chunk)
                    written += len(chunk)
            os.replace(tmp, dest)
        except httpx.HTTPError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise EntryFetchFailed(f"Download failed: {url}: {e}", url=url) from e
        except OSError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise EntryFetchFailed(f"Cannot write download {url} to {dest}: {e}", url=url) from e
        log.debug(f"Fetched url={url} dest={dest} bytes={written}")
        return written

    def read_bytes(self, url: str) -> bytes:
        try:
            r = self.client().get(url)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise EntryFetchFailed(f"Download failed: {url}: {e}", url=url) from e
        return r.content
