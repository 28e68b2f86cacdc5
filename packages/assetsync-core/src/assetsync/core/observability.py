from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any, Dict, Optional

from assetsync.core.runtime.settings import Settings

log = logging.getLogger("assetsync.core.observability")


class MetricsSink:
    """Optional metrics sink.

    Users can provide a module via ASSETSYNC_METRICS_MODULE exposing METRICS: MetricsSink.
    Every hook is a no-op by default.
    """

    def on_sync_start(self, *, run_id: str, entries: int) -> None:  # pragma: no cover
        return None

    def on_sync_end(self, *, run_id: str, summary: dict) -> None:  # pragma: no cover
        return None

    def on_item_start(self, *, run_id: str, item_id: str, kind: str) -> None:  # pragma: no cover
        return None

    def on_item_end(self, *, run_id: str, item_id: str, kind: str, status: str, duration_ms: int) -> None:  # pragma: no cover
        return None


def load_metrics_sink(settings: Settings) -> MetricsSink:
    mod = settings.metrics_module
    if not mod:
        return MetricsSink()
    m = import_module(mod)
    sink = getattr(m, "METRICS", None)
    if sink is None:
        raise AttributeError(f"{mod} must expose METRICS")
    return sink


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dur_ms(t0: float, t1: float) -> int:
    return int((t1 - t0) * 1000)


def log_event(logger: logging.Logger, *, settings: Settings, level: int, event: str, **fields: Any) -> None:
    """Emit an event log.

    - text format: one-liner `event key=value ...`
    - json format: one JSON object per line
    """
    if settings.log_format.lower() == "json":
        payload = {"ts_ms": _now_ms(), "event": event, **fields}
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
        return

    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))


def configure_logging(settings: Settings) -> None:
    fmt = "%(asctime)s - (%(threadName)-10s) - %(name)s - %(levelname)s - %(message)s"
    if (settings.log_format or "text").lower() == "json":
        # JSON payload already includes timestamp; keep formatter minimal.
        fmt = "%(message)s"
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=fmt,
    )


@dataclass
class SyncSummary:
    run_id: str
    mode: str
    entries: int
    status_counts: Dict[str, int]
    duration_ms: int
    failed_entries: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "mode": self.mode,
            "entries": self.entries,
            "duration_ms": self.duration_ms,
            "status_counts": dict(self.status_counts),
            "failed_entries": list(self.failed_entries),
        }


class SyncObserver:
    """Collects per-item timings and emits an end-of-sync summary.

    item_start/item_end are called from queue worker threads.
    """

    def __init__(self, *, settings: Settings, logger: logging.Logger, run_id: str):
        self.settings = settings
        self.logger = logger
        self.run_id = run_id
        self._t0: float | None = None
        self._item_t0: dict[str, float] = {}
        self._durations: dict[str, int] = {}
        self._lock = threading.Lock()
        self.metrics = load_metrics_sink(settings)

    def sync_start(self, *, index: str, mode: str, entries: int) -> None:
        self._t0 = time.perf_counter()
        log_event(self.logger, settings=self.settings, level=logging.INFO, event="sync_start", run_id=self.run_id, index=index, mode=mode, entries=entries)
        try:
            self.metrics.on_sync_start(run_id=self.run_id, entries=entries)
        except Exception:
            # Metrics must never break the sync.
            log.warning("SyncObserver.sync_start metrics hook failed", exc_info=True)

    def item_start(self, *, item_id: str, kind: str) -> None:
        with self._lock:
            self._item_t0[item_id] = time.perf_counter()
        log_event(self.logger, settings=self.settings, level=logging.DEBUG, event="item_start", run_id=self.run_id, item_id=item_id, kind=kind)
        try:
            self.metrics.on_item_start(run_id=self.run_id, item_id=item_id, kind=kind)
        except Exception:
            log.warning("SyncObserver.item_start metrics hook failed", exc_info=True)

    def item_end(self, *, item_id: str, kind: str, status: str, error: Optional[str] = None) -> int:
        with self._lock:
            t0 = self._item_t0.pop(item_id, None)
            dur = _dur_ms(t0, time.perf_counter()) if t0 is not None else 0
            self._durations[item_id] = dur
        level = logging.WARNING if error else logging.DEBUG
        log_event(self.logger, settings=self.settings, level=level, event="item_end", run_id=self.run_id, item_id=item_id, kind=kind, status=status, duration_ms=dur, error=error)
        try:
            self.metrics.on_item_end(run_id=self.run_id, item_id=item_id, kind=kind, status=status, duration_ms=dur)
        except Exception:
            log.warning("SyncObserver.item_end metrics hook failed", exc_info=True)
        return dur

    def sync_end(self, *, mode: str, entries: int, status_counts: Dict[str, int], failed_entries: list[str]) -> SyncSummary:
        t0 = self._t0
        dur = _dur_ms(t0, time.perf_counter()) if t0 is not None else 0
        summary = SyncSummary(
            run_id=self.run_id,
            mode=mode,
            entries=entries,
            status_counts=status_counts,
            duration_ms=dur,
            failed_entries=failed_entries,
        )
        level = logging.WARNING if failed_entries else logging.INFO
        log_event(self.logger, settings=self.settings, level=level, event="sync_summary", **summary.as_dict())
        try:
            self.metrics.on_sync_end(run_id=self.run_id, summary=summary.as_dict())
        except Exception:
            log.warning("SyncObserver.sync_end metrics hook failed", exc_info=True)
        return summary
