def test_api_exports_exist():
    from assetsync.core.api import (
        CopyItem,
        FetchOrVerify,
        FileVerifier,
        HttpFetcher,
        ITEM_BLOCKED,
        ManifestInvalid,
        Settings,
        SyncPlan,
        SyncReport,
        VirtualLayout,
        execute_plan,
        plan_assets,
        plan_sync,
        read_manifest,
        sync_assets,
    )

    assert ITEM_BLOCKED == "BLOCKED"
    assert issubclass(ManifestInvalid, ValueError)
    for obj in (CopyItem, FetchOrVerify, FileVerifier, HttpFetcher, Settings, SyncPlan, SyncReport, VirtualLayout):
        assert obj is not None
    for fn in (execute_plan, plan_assets, plan_sync, read_manifest, sync_assets):
        assert callable(fn)


def test_package_root_exports_sync():
    import assetsync.core as core

    assert callable(core.sync_assets)
    assert callable(core.plan_assets)


def test_no_ambiguous_top_level_modules_exist():
    import importlib.util

    assert importlib.util.find_spec("assetsync.api") is None
    assert importlib.util.find_spec("assetsync.sync") is None
