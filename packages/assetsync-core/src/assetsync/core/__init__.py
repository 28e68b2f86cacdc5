"""assetsync core package.

Public entrypoints:
- assetsync.core.api: stable API surface for integrations
- assetsync.core.sync.sync_assets: run one sync pass programmatically

Internal modules may change without notice.
"""

from __future__ import annotations

# Strict architecture enforcement (default ON; set ASSETSYNC_STRICT_ARCH=0 to disable).
from assetsync.core._architecture_guard import assert_architecture as _assert_architecture

_assert_architecture()

from assetsync.core.sync import plan_assets, sync_assets

__all__ = ["plan_assets", "sync_assets"]
