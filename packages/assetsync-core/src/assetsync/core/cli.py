import argparse
import json
import sys

from assetsync.core.exception import SpecError
from assetsync.core.observability import configure_logging
from assetsync.core.planner import CopyItem
from assetsync.core.runtime.settings import load_settings
from assetsync.core.sync import config_settings, load_sync_config, plan_assets, sync_assets


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--index", default=None, help="Asset index JSON (path or http(s) URL)")
    p.add_argument("--config", default=None, help="Sync config YAML (index, store_root, resources_root, release_key)")
    p.add_argument("--store-root", default=None, help="Store root (defaults to ASSETSYNC_STORE_ROOT or settings)")
    p.add_argument("--resources-root", default=None, help="Resources root for map_to_resources indexes")
    p.add_argument("--release-key", default=None, help="Release key for virtual indexes (default: legacy)")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")


def _resolve_args(args):
    """Merge --config with explicit flags; flags win."""
    if args.config:
        cfg = load_sync_config(args.config)
        settings = config_settings(cfg)
        return (
            args.index or cfg.index,
            args.store_root or cfg.store_root,
            args.resources_root or cfg.resources_root,
            args.release_key or cfg.release_key,
            settings,
        )
    return args.index, args.store_root, args.resources_root, args.release_key, load_settings()


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = argparse.ArgumentParser(prog="assetsync", description="assetsync-core CLI")
    sp = parser.add_subparsers(dest="cmd", required=True)

    planp = sp.add_parser("plan", help="Read an asset index and print the work items (no download/copy)")
    _add_common(planp)

    syncp = sp.add_parser("sync", help="Synchronize the asset store against an asset index")
    _add_common(syncp)

    args = parser.parse_args(argv)

    try:
        index, store_root, resources_root, release_key, settings = _resolve_args(args)
        if not index:
            parser.error("--index or --config is required")
        configure_logging(settings)

        if args.cmd == "plan":
            plan = plan_assets(
                index,
                store_root=store_root,
                resources_root=resources_root,
                release_key=release_key,
                settings=settings,
            )
            items = []
            for it in plan.items:
                row = {"item_id": it.item_id, "kind": it.kind, "store_path": str(it.store_path)}
                if isinstance(it, CopyItem):
                    row["target"] = str(it.target)
                    row["depends_on"] = it.depends_on
                else:
                    row["url"] = it.url
                    row["size"] = it.size_bytes
                items.append(row)
            failures = [{"friendly_name": f.friendly_name, "stage": f.stage, "error": f.error} for f in plan.failures]
            if args.json:
                print(json.dumps({"mode": plan.mode.name, "items": items, "failures": failures}, ensure_ascii=False))
            else:
                print(f"mode={plan.mode.name} fetch_items={len(plan.fetch_items)} copy_items={len(plan.copy_items)}")
                for row in items:
                    if row["kind"] == "copy":
                        print(f"- copy {row['store_path']} -> {row['target']} (after {row['depends_on']})")
                    else:
                        print(f"- fetch {row['url']} -> {row['store_path']}")
                for f in failures:
                    print(f"! {f['friendly_name']}: {f['stage']} - {f['error']}")
            return 0 if not failures else 2

        if args.cmd == "sync":
            report = sync_assets(
                index,
                store_root=store_root,
                resources_root=resources_root,
                release_key=release_key,
                settings=settings,
            )
            if args.json:
                print(json.dumps(report.as_dict(), ensure_ascii=False))
            else:
                status = "OK" if report.ok else "FAILED"
                print(f"{status}: mode={report.mode} entries={report.entries} store_root={report.store_root}")
                for k, v in sorted(report.status_counts.items()):
                    print(f"  {k}={v}")
                for name in report.failed_entries:
                    print(f"- failed: {name}")
            return 0 if report.ok else 2
    except SpecError as e:
        if args.json:
            print(json.dumps({"ok": False, "error": str(e)}, ensure_ascii=False))
        else:
            print(f"INVALID: {e}")
        return 2

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
