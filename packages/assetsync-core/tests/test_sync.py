from __future__ import annotations

import hashlib
import json
from pathlib import Path

import httpx
import pytest

from assetsync.core.exception import ManifestInvalid, SpecError
from assetsync.core.fetch import HttpFetcher
from assetsync.core.runtime.settings import load_settings
from assetsync.core.sync import load_manifest, load_sync_config, plan_assets, sync_assets

BLOBS = {
    "click": b"click-sound-bytes",
    "lang": b'{"hello": "world"}',
}


def _sha1(b: bytes) -> str:
    return hashlib.sha1(b).hexdigest()


def _objects():
    return {
        "sound/click.ogg": {"hash": _sha1(BLOBS["click"]), "size": len(BLOBS["click"])},
        "lang/en_us.json": {"hash": _sha1(BLOBS["lang"]), "size": len(BLOBS["lang"])},
    }


def _write_index(tmp_path: Path, **flags) -> Path:
    p = tmp_path / "index.json"
    p.write_text(json.dumps({**flags, "objects": _objects()}), encoding="utf-8")
    return p


def _mock_fetcher(requests: list[str] | None = None) -> HttpFetcher:
    by_hash = {_sha1(b): b for b in BLOBS.values()}

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request.url.path)
        h = request.url.path.rsplit("/", 1)[-1]
        if h not in by_hash:
            return httpx.Response(404)
        return httpx.Response(200, content=by_hash[h])

    return HttpFetcher(transport=httpx.MockTransport(handler))


def test_virtual_sync_end_to_end(tmp_path: Path, settings):
    index = _write_index(tmp_path, virtual=True)
    store = tmp_path / "assets"
    requests: list[str] = []

    with _mock_fetcher(requests) as f:
        report = sync_assets(index, store_root=store, release_key="1.12", settings=settings, fetcher=f)

    assert report.ok, report.as_dict()
    assert report.mode == "virtual"
    assert report.release_key == "1.12"
    assert report.entries == 2
    assert report.status_counts == {"fetch:FETCHED": 2, "copy:COPIED": 2}
    h = _sha1(BLOBS["click"])
    assert requests and f"/{h[:2]}/{h}" in requests
    assert (store / "objects" / h[:2] / h).read_bytes() == BLOBS["click"]
    assert (store / "virtual" / "1.12" / "sound" / "click.ogg").read_bytes() == BLOBS["click"]

    # Second pass: everything is verified in place and no target is copied again.
    requests.clear()
    with _mock_fetcher(requests) as f:
        again = sync_assets(index, store_root=store, release_key="1.12", settings=settings, fetcher=f)
    assert again.ok
    assert again.status_counts == {"fetch:VERIFIED": 2}
    assert requests == []


def test_flat_sync_has_no_copies(tmp_path: Path, settings):
    index = _write_index(tmp_path)
    with _mock_fetcher() as f:
        report = sync_assets(index, store_root=tmp_path / "assets", settings=settings, fetcher=f)
    assert report.mode == "flat"
    assert report.release_key is None
    assert report.status_counts == {"fetch:FETCHED": 2}
    assert not (tmp_path / "assets" / "virtual").exists()


def test_resource_mapped_sync(tmp_path: Path, settings):
    index = _write_index(tmp_path, map_to_resources=True)
    res = tmp_path / "resources"
    with _mock_fetcher() as f:
        report = sync_assets(index, store_root=tmp_path / "assets", resources_root=res, settings=settings, fetcher=f)
    assert report.ok
    assert (res / "lang" / "en_us.json").read_bytes() == BLOBS["lang"]


def test_missing_remote_object_fails_only_that_entry(tmp_path: Path, settings):
    objects = _objects()
    objects["gone.ogg"] = {"hash": "ee" * 20, "size": 4}
    index = tmp_path / "index.json"
    index.write_text(json.dumps({"virtual": True, "objects": objects}), encoding="utf-8")

    with _mock_fetcher() as f:
        report = sync_assets(index, store_root=tmp_path / "assets", settings=settings, fetcher=f)

    assert not report.ok
    assert report.failed_entries == ["gone.ogg"]
    assert report.status_counts["copy:BLOCKED"] == 1
    assert report.status_counts["copy:COPIED"] == 2


def test_invalid_index_plans_nothing(tmp_path: Path, settings):
    index = tmp_path / "index.json"
    index.write_text(json.dumps({"virtual": True}), encoding="utf-8")
    with pytest.raises(ManifestInvalid):
        sync_assets(index, store_root=tmp_path / "assets", settings=settings, fetcher=_mock_fetcher())
    assert not (tmp_path / "assets").exists()


def test_index_from_url(tmp_path: Path, settings):
    body = json.dumps({"objects": _objects()}).encode("utf-8")
    by_hash = {_sha1(b): b for b in BLOBS.values()}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/indexes/1.12.json":
            return httpx.Response(200, content=body)
        return httpx.Response(200, content=by_hash[request.url.path.rsplit("/", 1)[-1]])

    with HttpFetcher(transport=httpx.MockTransport(handler)) as f:
        plan = plan_assets("https://meta.test/indexes/1.12.json", store_root=tmp_path / "assets", settings=settings, fetcher=f)
        assert len(plan.fetch_items) == 2
        report = sync_assets("https://meta.test/indexes/1.12.json", store_root=tmp_path / "assets", settings=settings, fetcher=f)
    assert report.ok


def test_sync_summary_emitted_in_json_logs(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    index = _write_index(tmp_path, virtual=True)
    settings = load_settings(
        {"log_format": "json", "retry_backoff": 0, "store_root": str(tmp_path / "assets")},
        env={},
    )
    caplog.set_level("INFO")
    with _mock_fetcher() as f:
        sync_assets(index, settings=settings, fetcher=f, run_id="r1")

    summaries = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.getMessage())
        except ValueError:
            continue
        if data.get("event") == "sync_summary":
            summaries.append(data)

    assert summaries, "Expected a sync_summary event in JSON logs"
    s = summaries[-1]
    assert s["run_id"] == "r1"
    assert s["mode"] == "virtual"
    assert s["entries"] == 2
    assert s["status_counts"]["copy:COPIED"] == 2
    assert s["failed_entries"] == []


def test_load_sync_config_resolves_relative_paths(tmp_path: Path):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    (cfg_dir / "sync.yaml").write_text(
        """
version: 1
index: index.json
store_root: ../assets
release_key: "1.12"
settings:
  workers: 3
""",
        encoding="utf-8",
    )
    cfg = load_sync_config(cfg_dir / "sync.yaml")
    assert cfg.index == str((cfg_dir / "index.json").resolve())
    assert cfg.store_root == str((tmp_path / "assets").resolve())
    assert cfg.release_key == "1.12"
    assert cfg.settings == {"workers": 3}


def test_load_manifest_local_path(tmp_path: Path):
    m = load_manifest(_write_index(tmp_path, map_to_resources=True))
    assert m.map_to_resources is True
    assert len(m) == 2
    with pytest.raises(ManifestInvalid):
        load_manifest(tmp_path / "missing.json")


def test_load_sync_config_errors_are_spec_errors(tmp_path: Path):
    with pytest.raises(SpecError):
        load_sync_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("index: [unclosed\n", encoding="utf-8")
    with pytest.raises(SpecError) as ei:
        load_sync_config(bad)
    assert "not valid YAML" in str(ei.value)
