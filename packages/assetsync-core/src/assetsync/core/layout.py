"""Store layout policy.

Maps a content hash to its canonical location in the content-addressed store
and a manifest entry to its optional friendly-named copy. Everything here is
pure path arithmetic: no directory is created and nothing is stat'ed, so the
rules can be checked without a filesystem fixture.

    <store_root>/objects/<hash[0:2]>/<hash>           every entry
    <store_root>/virtual/<release_key>/<name>          VirtualLayout
    <resources_root>/<name>                            ResourceMappedLayout
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from assetsync.core.exception import LayoutError
from assetsync.core.spec import ManifestEntry

DEFAULT_RELEASE_KEY = "legacy"

OBJECTS_DIR = "objects"
VIRTUAL_DIR = "virtual"


@dataclass(frozen=True)
class FlatLayout:
    """Objects only; no friendly-named copies."""

    name = "flat"


@dataclass(frozen=True)
class VirtualLayout:
    """Friendly-named copies under <store_root>/virtual/<release_key>."""

    release_key: str = DEFAULT_RELEASE_KEY
    name = "virtual"


@dataclass(frozen=True)
class ResourceMappedLayout:
    """Friendly-named copies under the consumer's resources directory."""

    name = "resource_mapped"


LayoutMode = Union[FlatLayout, VirtualLayout, ResourceMappedLayout]


@dataclass(frozen=True)
class ResolvedPaths:
    store_path: Path
    target: Optional[Path] = None


def normalize_release_key(release_key: Optional[str]) -> str:
    key = (release_key or "").strip()
    return key or DEFAULT_RELEASE_KEY


def layout_mode_for(virtual: bool, map_to_resources: bool, release_key: Optional[str] = None) -> LayoutMode:
    """Derive the layout mode from the index flags.

    `virtual` wins over `map_to_resources` when both are set.
    """
    if virtual:
        return VirtualLayout(release_key=normalize_release_key(release_key))
    if map_to_resources:
        return ResourceMappedLayout()
    return FlatLayout()


def object_path(store_root: Union[str, Path], content_hash: str) -> Path:
    return Path(store_root) / OBJECTS_DIR / content_hash[0:2] / content_hash


def _friendly_path(root: Path, friendly_name: str) -> Path:
    rel = PurePosixPath(friendly_name.replace("\\", "/"))
    if not rel.parts or rel.is_absolute() or ".." in rel.parts:
        raise LayoutError(f"Unsafe friendly name for materialization: {friendly_name!r}")
    return root.joinpath(*rel.parts)


def materialized_target(
    entry: ManifestEntry,
    mode: LayoutMode,
    store_root: Union[str, Path],
    resources_root: Union[str, Path, None] = None,
) -> Optional[Path]:
    if isinstance(mode, VirtualLayout):
        root = Path(store_root) / VIRTUAL_DIR / normalize_release_key(mode.release_key)
        return _friendly_path(root, entry.friendly_name)
    if isinstance(mode, ResourceMappedLayout):
        if resources_root is None or not str(resources_root).strip():
            raise LayoutError("resources_root is required for the resource-mapped layout")
        return _friendly_path(Path(resources_root), entry.friendly_name)
    return None


def resolve(
    entry: ManifestEntry,
    mode: LayoutMode,
    store_root: Union[str, Path],
    resources_root: Union[str, Path, None] = None,
) -> ResolvedPaths:
    return ResolvedPaths(
        store_path=object_path(store_root, entry.content_hash),
        target=materialized_target(entry, mode, store_root, resources_root),
    )
