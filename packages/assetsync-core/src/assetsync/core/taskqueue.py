from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from assetsync.core.exception import EntryFetchFailed, EntryVerifyFailed
from assetsync.core.observability import SyncObserver
from assetsync.core.planner import CopyItem, FetchOrVerify, SyncPlan
from assetsync.core.tasks import (
    ITEM_BLOCKED,
    ITEM_FAILED,
    SUCCESS_STATUSES,
    CopyFileTask,
    EnsureFileTask,
    Fetcher,
    InstallTask,
    Verifier,
)

log = logging.getLogger("assetsync.core.taskqueue")


@dataclass
class ItemOutcome:
    item_id: str
    friendly_name: str
    kind: str
    status: str
    error: Optional[str] = None
    attempts: int = 0
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUSES

    def as_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "friendly_name": self.friendly_name,
            "kind": self.kind,
            "status": self.status,
            "error": self.error,
            "attempts": self.attempts,
            "duration_ms": self.duration_ms,
        }


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (EntryFetchFailed, EntryVerifyFailed)) and bool(getattr(exc, "retryable", True))


def fetch_retrying(retries: int, backoff: float) -> Retrying:
    """Retry policy for fetch items: transient fetch/verify failures only."""
    return Retrying(
        stop=stop_after_attempt(max(1, 1 + int(retries))),
        wait=wait_exponential(multiplier=max(0.0, float(backoff)), min=0, max=5),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


def _run_task(
    task: InstallTask,
    *,
    kind: str,
    friendly_name: str,
    retrying: Optional[Retrying],
    observer: Optional[SyncObserver],
) -> ItemOutcome:
    attempts = 0

    def _once() -> str:
        nonlocal attempts
        attempts += 1
        return task.run()

    if observer is not None:
        observer.item_start(item_id=task.item_id, kind=kind)
    t0 = time.perf_counter()
    error: Optional[str] = None
    try:
        status = retrying(_once) if retrying is not None else _once()
    except Exception as e:
        # Per-item failure: recorded in the outcome, siblings keep running.
        log.debug(f"Item failed item_id={task.item_id}", exc_info=True)
        status = ITEM_FAILED
        error = str(e)

    if observer is not None:
        dur = observer.item_end(item_id=task.item_id, kind=kind, status=status, error=error)
    else:
        dur = int((time.perf_counter() - t0) * 1000)
    return ItemOutcome(
        item_id=task.item_id,
        friendly_name=friendly_name,
        kind=kind,
        status=status,
        error=error,
        attempts=attempts,
        duration_ms=dur,
    )


def execute_plan(
    plan: SyncPlan,
    *,
    verifier: Verifier,
    fetcher: Fetcher,
    workers: int = 8,
    copy_workers: int = 2,
    retries: int = 2,
    retry_backoff: float = 1.0,
    observer: Optional[SyncObserver] = None,
    copy_task: Callable[[CopyItem], InstallTask] = CopyFileTask,
) -> List[ItemOutcome]:
    """Run a plan on two pools: fetch/verify items first, copies after their fetch.

    A copy is submitted to the copy pool only once the fetch item it depends on
    has reported VERIFIED or FETCHED; otherwise it is reported BLOCKED and never
    started. Outcomes are returned in plan order.
    """
    if not plan.items:
        return []

    copies_by_dep: Dict[str, List[CopyItem]] = {}
    for c in plan.copy_items:
        copies_by_dep.setdefault(c.depends_on, []).append(c)

    # Fetch items for entries sharing a content hash run one at a time.
    store_locks: Dict[Path, threading.Lock] = {it.store_path: threading.Lock() for it in plan.fetch_items}

    outcomes: Dict[str, ItemOutcome] = {}

    with ThreadPoolExecutor(max_workers=max(1, int(workers)), thread_name_prefix="assetsync-fetch") as fetch_pool, \
            ThreadPoolExecutor(max_workers=max(1, int(copy_workers)), thread_name_prefix="assetsync-copy") as copy_pool:

        def _submit_fetch(it: FetchOrVerify) -> Future:
            task = EnsureFileTask(it, verifier=verifier, fetcher=fetcher, lock=store_locks[it.store_path])
            return fetch_pool.submit(
                _run_task,
                task,
                kind=it.kind,
                friendly_name=it.friendly_name,
                retrying=fetch_retrying(retries, retry_backoff),
                observer=observer,
            )

        fetch_futs: Dict[Future, FetchOrVerify] = {_submit_fetch(it): it for it in plan.fetch_items}
        copy_futs: Dict[Future, CopyItem] = {}

        for fut in as_completed(fetch_futs):
            item = fetch_futs[fut]
            res = fut.result()
            outcomes[item.item_id] = res
            for c in copies_by_dep.get(item.item_id, ()):
                if res.ok:
                    copy_futs[
                        copy_pool.submit(
                            _run_task,
                            copy_task(c),
                            kind=c.kind,
                            friendly_name=c.friendly_name,
                            retrying=None,
                            observer=observer,
                        )
                    ] = c
                else:
                    outcomes[c.item_id] = ItemOutcome(
                        item_id=c.item_id,
                        friendly_name=c.friendly_name,
                        kind=c.kind,
                        status=ITEM_BLOCKED,
                        error=f"{item.item_id} {res.status}",
                    )

        for fut in as_completed(copy_futs):
            c = copy_futs[fut]
            outcomes[c.item_id] = fut.result()

    return [outcomes[it.item_id] for it in plan.items]
