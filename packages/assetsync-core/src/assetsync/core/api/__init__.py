"""Public, stable API surface for assetsync.

If you're embedding the asset sync into a launcher or another tool, import
from **`assetsync.core.api`**.

Everything outside this package is considered internal and may change without
notice, even in minor releases.
"""

from __future__ import annotations

# Common exceptions
from assetsync.core.exception import (
    AssetSyncError,
    CopyFailed,
    EntryFetchFailed,
    EntryVerifyFailed,
    LayoutError,
    ManifestInvalid,
    SpecError,
)
# Fetch + verify primitives
from assetsync.core.fetch import HttpFetcher, resource_url
# Layout policy
from assetsync.core.layout import (
    DEFAULT_RELEASE_KEY,
    FlatLayout,
    LayoutMode,
    ResourceMappedLayout,
    VirtualLayout,
    layout_mode_for,
    object_path,
)
# Index reader
from assetsync.core.manifest import read_manifest, read_manifest_file
from assetsync.core.observability import MetricsSink
# Planning
from assetsync.core.planner import CopyItem, FetchOrVerify, PlanFailure, SyncPlan, WorkItem, plan_sync
# Settings
from assetsync.core.runtime.settings import Settings, load_settings
from assetsync.core.spec import AssetManifest, ManifestEntry, SyncConfigSpec
# Sync entrypoints
from assetsync.core.sync import SyncReport, load_manifest, load_sync_config, new_run_id, plan_assets, sync_assets
# Execution
from assetsync.core.taskqueue import ItemOutcome, execute_plan
from assetsync.core.tasks import (
    ITEM_BLOCKED,
    ITEM_COPIED,
    ITEM_FAILED,
    ITEM_FETCHED,
    ITEM_VERIFIED,
    CopyFileTask,
    EnsureFileTask,
    InstallTask,
)
from assetsync.core.verify import VERIFY_CORRUPT, VERIFY_MISSING, VERIFY_OK, FileVerifier

__all__ = [
    # settings
    "Settings",
    "load_settings",
    # index
    "read_manifest",
    "read_manifest_file",
    "AssetManifest",
    "ManifestEntry",
    "SyncConfigSpec",
    # layout
    "LayoutMode",
    "FlatLayout",
    "VirtualLayout",
    "ResourceMappedLayout",
    "DEFAULT_RELEASE_KEY",
    "layout_mode_for",
    "object_path",
    # planning
    "plan_sync",
    "SyncPlan",
    "WorkItem",
    "FetchOrVerify",
    "CopyItem",
    "PlanFailure",
    # execution
    "execute_plan",
    "ItemOutcome",
    "InstallTask",
    "EnsureFileTask",
    "CopyFileTask",
    "ITEM_VERIFIED",
    "ITEM_FETCHED",
    "ITEM_COPIED",
    "ITEM_FAILED",
    "ITEM_BLOCKED",
    # primitives
    "FileVerifier",
    "VERIFY_OK",
    "VERIFY_MISSING",
    "VERIFY_CORRUPT",
    "HttpFetcher",
    "resource_url",
    "MetricsSink",
    # sync
    "sync_assets",
    "plan_assets",
    "load_manifest",
    "load_sync_config",
    "new_run_id",
    "SyncReport",
    # exceptions
    "SpecError",
    "ManifestInvalid",
    "LayoutError",
    "AssetSyncError",
    "EntryFetchFailed",
    "EntryVerifyFailed",
    "CopyFailed",
]
