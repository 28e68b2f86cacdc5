from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

# ---------------------------------------------------------------------------
# Asset index (remote manifest)
# ---------------------------------------------------------------------------


class AssetObjectSpec(BaseModel):
    """One entry of the `objects` mapping.

    Only the fields the sync uses are modelled; hash format and size
    positivity are left to the verifier.
    """

    model_config = ConfigDict(extra="ignore")

    hash: str
    size: int


class AssetIndexSpec(BaseModel):
    """Asset index root schema.

    `virtual` and `map_to_resources` are tri-state on the wire (absent, null,
    bool); the reader collapses absent/null to False.
    """

    model_config = ConfigDict(extra="ignore")

    virtual: Optional[bool] = None
    map_to_resources: Optional[bool] = None
    objects: Dict[str, AssetObjectSpec]


@dataclass(frozen=True)
class ManifestEntry:
    friendly_name: str
    content_hash: str
    size_bytes: int


@dataclass(frozen=True)
class AssetManifest:
    """Parsed asset index. Entries keep document order."""

    virtual: bool
    map_to_resources: bool
    entries: Tuple[ManifestEntry, ...] = ()

    def names(self) -> list[str]:
        return [e.friendly_name for e in self.entries]

    def get(self, friendly_name: str) -> Optional[ManifestEntry]:
        for e in self.entries:
            if e.friendly_name == friendly_name:
                return e
        return None

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# ---------------------------------------------------------------------------
# Sync config file (YAML)
# ---------------------------------------------------------------------------


class SyncConfigSpec(BaseModel):
    """sync.yaml root schema.

    Relative paths are resolved against the directory holding the YAML file.
    `settings` is passed through as Settings overrides.
    """

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    index: str
    store_root: str
    resources_root: Optional[str] = None
    release_key: Optional[str] = None
    resource_base_url: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    # asset index
    "AssetObjectSpec",
    "AssetIndexSpec",
    "ManifestEntry",
    "AssetManifest",
    # sync config
    "SyncConfigSpec",
]
