from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Union

from assetsync.core.exception import ManifestInvalid
from assetsync.core.spec import AssetIndexSpec, AssetManifest, ManifestEntry
from pydantic import ValidationError

log = logging.getLogger("assetsync.core.manifest")


def _describe_errors(exc: ValidationError) -> str:
    parts: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc or '<root>'}: {err.get('msg')}")
    return "; ".join(parts)


def read_manifest(data: Union[bytes, str]) -> AssetManifest:
    """Parse an asset index document into an AssetManifest.

    Structure is validated (root object, `objects` mapping, per-entry `hash`
    string and `size` integer); hash format and size positivity are not.
    """
    try:
        raw: Any = json.loads(data)
    except (ValueError, TypeError) as e:
        raise ManifestInvalid(f"Asset index is not valid JSON: {e}") from e

    if raw is None:
        raise ManifestInvalid("Asset index is empty (no root object)")
    if not isinstance(raw, dict):
        raise ManifestInvalid(f"Asset index root must be an object, got {type(raw).__name__}")
    if "objects" not in raw or raw.get("objects") is None:
        raise ManifestInvalid("Asset index is missing the 'objects' field")
    if not isinstance(raw.get("objects"), dict):
        raise ManifestInvalid("Asset index field 'objects' must be an object")

    try:
        spec = AssetIndexSpec.model_validate(raw)
    except ValidationError as e:
        raise ManifestInvalid(f"Asset index is invalid: {_describe_errors(e)}") from e

    entries = tuple(
        ManifestEntry(friendly_name=name, content_hash=obj.hash, size_bytes=obj.size)
        for name, obj in spec.objects.items()
    )
    manifest = AssetManifest(
        virtual=bool(spec.virtual),
        map_to_resources=bool(spec.map_to_resources),
        entries=entries,
    )
    log.debug(
        f"Read asset index entries={len(entries)} virtual={manifest.virtual} "
        f"map_to_resources={manifest.map_to_resources}"
    )
    return manifest


def read_manifest_file(path: Union[str, Path]) -> AssetManifest:
    p = Path(path).expanduser()
    try:
        data = p.read_bytes()
    except OSError as e:
        raise ManifestInvalid(f"Cannot read asset index {p}: {e}") from e
    return read_manifest(data)
