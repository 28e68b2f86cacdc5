from __future__ import annotations

import threading
import time

import httpx
import pytest

from assetsync.core.exception import EntryFetchFailed
from assetsync.core.fetch import HttpFetcher, resource_url


def test_resource_url_rule():
    assert resource_url("ab12") == "https://resources.download.minecraft.net/ab/ab12"
    assert resource_url("ab12", "http://mirror/base/") == "http://mirror/base/ab/ab12"


def test_fetch_writes_dest_atomically(tmp_path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=b"payload")

    dest = tmp_path / "obj"
    with HttpFetcher(transport=httpx.MockTransport(handler)) as f:
        n = f.fetch("http://example.test/ab/ab12", dest)

    assert n == 7
    assert dest.read_bytes() == b"payload"
    assert list(tmp_path.glob("*.part")) == []
    assert seen == ["http://example.test/ab/ab12"]


def test_fetch_http_error_leaves_nothing(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    dest = tmp_path / "obj"
    f = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(EntryFetchFailed) as ei:
            f.fetch("http://example.test/x", dest)
    finally:
        f.close()

    assert ei.value.url == "http://example.test/x"
    assert not dest.exists()
    assert list(tmp_path.glob("*.part")) == []


def test_fetch_keeps_existing_dest_on_failure(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    dest = tmp_path / "obj"
    dest.write_bytes(b"old")
    with HttpFetcher(transport=httpx.MockTransport(handler)) as f:
        with pytest.raises(EntryFetchFailed):
            f.fetch("http://example.test/x", dest)
    assert dest.read_bytes() == b"old"


def test_read_bytes():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"objects": {}})

    with HttpFetcher(transport=httpx.MockTransport(handler)) as f:
        assert b"objects" in f.read_bytes("http://example.test/index.json")


def test_close_is_idempotent():
    f = HttpFetcher()
    f.client()
    f.close()
    f.close()


def test_concurrent_fetches_to_one_dest_do_not_collide(tmp_path):
    body = b"shared-object" * 100

    def handler(request: httpx.Request) -> httpx.Response:
        time.sleep(0.05)
        return httpx.Response(200, content=body)

    dest = tmp_path / "obj"
    errors = []

    with HttpFetcher(transport=httpx.MockTransport(handler)) as f:
        def _go():
            try:
                f.fetch("http://example.test/ab/ab00", dest)
            except EntryFetchFailed as e:
                errors.append(e)

        threads = [threading.Thread(target=_go) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert errors == []
    assert dest.read_bytes() == body
    assert list(tmp_path.glob("*.part")) == []
