from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

from assetsync.core.exception import LayoutError
from assetsync.core.fetch import resource_url
from assetsync.core.layout import LayoutMode, ResourceMappedLayout, materialized_target, object_path
from assetsync.core.spec import ManifestEntry

log = logging.getLogger("assetsync.core.planner")

STAGE_STORE_DIR = "store_dir"
STAGE_TARGET_DIR = "target_dir"
STAGE_LAYOUT = "layout"


@dataclass(frozen=True)
class FetchOrVerify:
    item_id: str
    friendly_name: str
    store_path: Path
    size_bytes: int
    url: str
    content_hash: str

    kind = "fetch"


@dataclass(frozen=True)
class CopyItem:
    item_id: str
    friendly_name: str
    store_path: Path
    target: Path
    depends_on: str

    kind = "copy"


WorkItem = Union[FetchOrVerify, CopyItem]


@dataclass(frozen=True)
class PlanFailure:
    """An entry (or part of it) that could not be planned."""

    friendly_name: str
    stage: str
    error: str


@dataclass(frozen=True)
class SyncPlan:
    """Immutable output of one planning pass.

    `items` keeps manifest order; every CopyItem appears after the
    FetchOrVerify it depends on.
    """

    mode: LayoutMode
    items: Tuple[WorkItem, ...] = ()
    failures: Tuple[PlanFailure, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for it in self.items:
            if isinstance(it, CopyItem) and it.depends_on not in seen:
                raise ValueError(f"Copy item {it.item_id} depends on {it.depends_on} which is not planned before it")
            if isinstance(it, FetchOrVerify):
                seen.add(it.item_id)

    @property
    def fetch_items(self) -> Tuple[FetchOrVerify, ...]:
        return tuple(it for it in self.items if isinstance(it, FetchOrVerify))

    @property
    def copy_items(self) -> Tuple[CopyItem, ...]:
        return tuple(it for it in self.items if isinstance(it, CopyItem))

    def __iter__(self) -> Iterator[WorkItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def fetch_item_id(friendly_name: str) -> str:
    return f"fetch:{friendly_name}"


def copy_item_id(friendly_name: str) -> str:
    return f"copy:{friendly_name}"


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def plan_sync(
    entries: Iterable[ManifestEntry],
    mode: LayoutMode,
    *,
    store_root: Union[str, Path],
    resources_root: Union[str, Path, None] = None,
    url_for: Optional[Callable[[str], str]] = None,
) -> SyncPlan:
    """Build the work items for one sync pass.

    Per entry, in manifest order:
      1. store path from the content hash (parent directory created)
      2. FetchOrVerify for the store path
      3. CopyItem to the friendly-named target when the layout has one and the
         target is not on disk yet

    Directory-creation failures and unsafe names are recorded as PlanFailure
    for the affected entry; planning continues with the next entry. Empty
    hashes and non-positive sizes are planned as-is.
    """
    if isinstance(mode, ResourceMappedLayout) and (resources_root is None or not str(resources_root).strip()):
        raise LayoutError("resources_root is required for the resource-mapped layout")

    url_for = url_for or resource_url
    store_root = Path(store_root)
    items: List[WorkItem] = []
    failures: List[PlanFailure] = []

    for entry in entries:
        name = entry.friendly_name
        store_path = object_path(store_root, entry.content_hash)
        try:
            _ensure_dir(store_path.parent)
        except OSError as e:
            log.warning(f"Cannot create store directory entry={name} dir={store_path.parent}: {e}")
            failures.append(PlanFailure(friendly_name=name, stage=STAGE_STORE_DIR, error=str(e)))
            continue

        fetch = FetchOrVerify(
            item_id=fetch_item_id(name),
            friendly_name=name,
            store_path=store_path,
            size_bytes=entry.size_bytes,
            url=url_for(entry.content_hash),
            content_hash=entry.content_hash,
        )
        items.append(fetch)

        try:
            target = materialized_target(entry, mode, store_root, resources_root)
        except LayoutError as e:
            log.warning(f"Skipping materialization entry={name}: {e}")
            failures.append(PlanFailure(friendly_name=name, stage=STAGE_LAYOUT, error=str(e)))
            continue

        if target is None or target.exists():
            continue

        try:
            _ensure_dir(target.parent)
        except OSError as e:
            log.warning(f"Cannot create target directory entry={name} dir={target.parent}: {e}")
            failures.append(PlanFailure(friendly_name=name, stage=STAGE_TARGET_DIR, error=str(e)))
            continue

        items.append(
            CopyItem(
                item_id=copy_item_id(name),
                friendly_name=name,
                store_path=store_path,
                target=target,
                depends_on=fetch.item_id,
            )
        )

    plan = SyncPlan(mode=mode, items=tuple(items), failures=tuple(failures))
    log.info(
        f"Planned sync mode={mode.name} fetch_items={len(plan.fetch_items)} "
        f"copy_items={len(plan.copy_items)} failures={len(plan.failures)}"
    )
    return plan
