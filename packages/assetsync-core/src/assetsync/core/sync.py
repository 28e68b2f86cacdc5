from __future__ import annotations

import functools
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from assetsync.core.exception import EntryFetchFailed, ManifestInvalid, SpecError
from assetsync.core.fetch import HttpFetcher, resource_url
from assetsync.core.layout import LayoutMode, VirtualLayout, layout_mode_for
from assetsync.core.manifest import read_manifest, read_manifest_file
from assetsync.core.observability import SyncObserver
from assetsync.core.planner import PlanFailure, SyncPlan, plan_sync
from assetsync.core.runtime.settings import Settings, load_settings
from assetsync.core.spec import AssetManifest, SyncConfigSpec
from assetsync.core.taskqueue import ItemOutcome, execute_plan
from assetsync.core.tasks import Fetcher, Verifier
from assetsync.core.verify import FileVerifier

log = logging.getLogger("assetsync.core.sync")

IndexSource = Union[str, Path]


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def _is_url(source: IndexSource) -> bool:
    return str(source).startswith(("http://", "https://"))


@dataclass
class SyncReport:
    run_id: str
    mode: str
    virtual: bool
    map_to_resources: bool
    release_key: Optional[str]
    store_root: Path
    resources_root: Optional[Path]
    entries: int
    outcomes: List[ItemOutcome] = field(default_factory=list)
    plan_failures: List[PlanFailure] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return not self.plan_failures and all(o.ok for o in self.outcomes)

    @property
    def failed_entries(self) -> List[str]:
        names = {f.friendly_name for f in self.plan_failures}
        names.update(o.friendly_name for o in self.outcomes if not o.ok)
        return sorted(names)

    @property
    def status_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for o in self.outcomes:
            key = f"{o.kind}:{o.status}"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def as_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "ok": self.ok,
            "mode": self.mode,
            "virtual": self.virtual,
            "map_to_resources": self.map_to_resources,
            "release_key": self.release_key,
            "store_root": str(self.store_root),
            "resources_root": str(self.resources_root) if self.resources_root else None,
            "entries": self.entries,
            "duration_ms": self.duration_ms,
            "status_counts": self.status_counts,
            "failed_entries": self.failed_entries,
            "plan_failures": [
                {"friendly_name": f.friendly_name, "stage": f.stage, "error": f.error} for f in self.plan_failures
            ],
            "outcomes": [o.as_dict() for o in self.outcomes],
        }


def load_manifest(source: IndexSource, *, fetcher: Optional[HttpFetcher] = None) -> AssetManifest:
    """Read the asset index from a local path or an http(s) URL."""
    if not _is_url(source):
        return read_manifest_file(source)
    if fetcher is None:
        raise ValueError("A fetcher is required to download a remote asset index")
    try:
        data = fetcher.read_bytes(str(source))
    except EntryFetchFailed as e:
        raise ManifestInvalid(f"Cannot download asset index {source}: {e}") from e
    return read_manifest(data)


def _roots(
    settings: Settings,
    store_root: Union[str, Path, None],
    resources_root: Union[str, Path, None],
) -> Tuple[Path, Optional[Path]]:
    store = Path(store_root or settings.store_root).expanduser().resolve()
    res = resources_root or settings.resources_root
    return store, (Path(res).expanduser().resolve() if res else None)


def _prepare(
    index: IndexSource,
    *,
    settings: Settings,
    store_root: Union[str, Path, None],
    resources_root: Union[str, Path, None],
    release_key: Optional[str],
    fetcher: Optional[HttpFetcher],
) -> Tuple[AssetManifest, LayoutMode, SyncPlan, Path, Optional[Path]]:
    manifest = load_manifest(index, fetcher=fetcher)
    mode = layout_mode_for(manifest.virtual, manifest.map_to_resources, release_key or settings.release_key)
    store, res = _roots(settings, store_root, resources_root)
    plan = plan_sync(
        manifest.entries,
        mode,
        store_root=store,
        resources_root=res,
        url_for=functools.partial(resource_url, base_url=settings.resource_base_url),
    )
    return manifest, mode, plan, store, res


def plan_assets(
    index: IndexSource,
    *,
    store_root: Union[str, Path, None] = None,
    resources_root: Union[str, Path, None] = None,
    release_key: Optional[str] = None,
    settings: Settings | None = None,
    env_snapshot: Dict[str, str] | None = None,
    fetcher: Optional[HttpFetcher] = None,
) -> SyncPlan:
    """Read the index and plan the work items without executing them.

    Creates the store/target parent directories like a real pass does.
    """
    env_snapshot = dict(os.environ) if env_snapshot is None else dict(env_snapshot)
    settings = settings or load_settings(env=env_snapshot)
    own_fetcher = fetcher is None and _is_url(index)
    fetcher = fetcher or (HttpFetcher.from_settings(settings) if own_fetcher else None)
    try:
        _manifest, _mode, plan, _store, _res = _prepare(
            index,
            settings=settings,
            store_root=store_root,
            resources_root=resources_root,
            release_key=release_key,
            fetcher=fetcher,
        )
    finally:
        if own_fetcher and fetcher is not None:
            fetcher.close()
    return plan


def sync_assets(
    index: IndexSource,
    *,
    store_root: Union[str, Path, None] = None,
    resources_root: Union[str, Path, None] = None,
    release_key: Optional[str] = None,
    settings: Settings | None = None,
    env_snapshot: Dict[str, str] | None = None,
    fetcher: Optional[Fetcher] = None,
    verifier: Optional[Verifier] = None,
    run_id: str | None = None,
) -> SyncReport:
    """Synchronize the content-addressed store against an asset index.

    One pass:
      1. read the index (ManifestInvalid is fatal: nothing is planned)
      2. derive the layout mode (virtual > map_to_resources > flat)
      3. plan FetchOrVerify/Copy items
      4. execute them (fetch pool, then copies once their fetch succeeded)

    Per-entry failures are reported in SyncReport.failed_entries; they never
    abort sibling entries.

    Writes into:
      <store_root>/objects/<hash[0:2]>/<hash>
      <store_root>/virtual/<release_key>/<name>     (virtual indexes)
      <resources_root>/<name>                       (map_to_resources indexes)
    """
    env_snapshot = dict(os.environ) if env_snapshot is None else dict(env_snapshot)
    settings = settings or load_settings(env=env_snapshot)
    run_id = run_id or new_run_id()

    own_fetcher = fetcher is None
    http = HttpFetcher.from_settings(settings) if own_fetcher else None
    fetcher = fetcher or http
    verifier = verifier or FileVerifier.from_settings(settings)

    try:
        manifest, mode, plan, store, res = _prepare(
            index,
            settings=settings,
            store_root=store_root,
            resources_root=resources_root,
            release_key=release_key,
            fetcher=fetcher if isinstance(fetcher, HttpFetcher) else http,
        )

        obs = SyncObserver(settings=settings, logger=logging.getLogger("assetsync.sync"), run_id=run_id)
        obs.sync_start(index=str(index), mode=mode.name, entries=len(manifest))

        outcomes = execute_plan(
            plan,
            verifier=verifier,
            fetcher=fetcher,
            workers=settings.workers,
            copy_workers=settings.copy_workers,
            retries=settings.fetch_retries,
            retry_backoff=settings.retry_backoff,
            observer=obs,
        )
    finally:
        if http is not None:
            http.close()

    report = SyncReport(
        run_id=run_id,
        mode=mode.name,
        virtual=manifest.virtual,
        map_to_resources=manifest.map_to_resources,
        release_key=mode.release_key if isinstance(mode, VirtualLayout) else None,
        store_root=store,
        resources_root=res,
        entries=len(manifest),
        outcomes=outcomes,
        plan_failures=list(plan.failures),
    )
    summary = obs.sync_end(
        mode=mode.name,
        entries=len(manifest),
        status_counts=report.status_counts,
        failed_entries=report.failed_entries,
    )
    report.duration_ms = summary.duration_ms
    return report


def load_sync_config(path: Union[str, Path]) -> SyncConfigSpec:
    """Load a sync YAML file; relative paths resolve against its directory."""
    p = Path(path).expanduser().resolve()
    try:
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise SpecError(f"Cannot read sync config {p}: {e}") from e
    except yaml.YAMLError as e:
        raise SpecError(f"Sync config {p} is not valid YAML: {e}") from e
    try:
        cfg = SyncConfigSpec.model_validate(raw)
    except ValidationError as e:
        raise SpecError(f"Invalid sync config {p}: {e}") from e

    def _abs(v: Optional[str]) -> Optional[str]:
        if v is None or _is_url(v):
            return v
        q = Path(v).expanduser()
        return str(q if q.is_absolute() else (p.parent / q).resolve())

    log.debug(f"Loaded sync config {p} index={cfg.index}")
    return cfg.model_copy(
        update={
            "index": _abs(cfg.index),
            "store_root": _abs(cfg.store_root),
            "resources_root": _abs(cfg.resources_root),
        }
    )


def config_settings(cfg: SyncConfigSpec, *, env_snapshot: Dict[str, str] | None = None) -> Settings:
    """Settings for a sync config: env snapshot, then the config's own overrides."""
    env_snapshot = dict(os.environ) if env_snapshot is None else dict(env_snapshot)
    overrides = dict(cfg.settings)
    if cfg.resource_base_url:
        overrides["resource_base_url"] = cfg.resource_base_url
    return load_settings(overrides, env=env_snapshot)
