from __future__ import annotations

import abc
import contextlib
import logging
import os
import shutil
from pathlib import Path
from typing import ContextManager, Optional, Protocol, Union

from assetsync.core.exception import CopyFailed, EntryFetchFailed, EntryVerifyFailed
from assetsync.core.planner import CopyItem, FetchOrVerify
from assetsync.core.verify import VERIFY_OK

log = logging.getLogger("assetsync.core.tasks")

# Item statuses used by the queue and the sync report.
ITEM_VERIFIED = "VERIFIED"
ITEM_FETCHED = "FETCHED"
ITEM_COPIED = "COPIED"
ITEM_FAILED = "FAILED"
ITEM_BLOCKED = "BLOCKED"

SUCCESS_STATUSES = frozenset({ITEM_VERIFIED, ITEM_FETCHED, ITEM_COPIED})


class Verifier(Protocol):
    def verify(self, path: Union[str, Path], expected_size: int, expected_hash: str | None = None) -> str:
        ...


class Fetcher(Protocol):
    def fetch(self, url: str, dest: Path) -> int:
        ...


class InstallTask(abc.ABC):
    """Executes a single work item and returns its status."""

    @property
    @abc.abstractmethod
    def item_id(self) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def run(self) -> str:
        raise NotImplementedError


class EnsureFileTask(InstallTask):
    """Verify the store object; download it when missing or corrupt, then verify again.

    Entries sharing a content hash share a store path. Passing the same `lock`
    to their tasks makes the first one fetch while the others wait and then
    find the object already in place.
    """

    def __init__(
        self,
        item: FetchOrVerify,
        *,
        verifier: Verifier,
        fetcher: Fetcher,
        lock: Optional[ContextManager] = None,
    ):
        self.item = item
        self.verifier = verifier
        self.fetcher = fetcher
        self.lock = lock if lock is not None else contextlib.nullcontext()

    @property
    def item_id(self) -> str:
        return self.item.item_id

    def run(self) -> str:
        it = self.item
        if not it.content_hash:
            raise EntryVerifyFailed("empty content hash", friendly_name=it.friendly_name, retryable=False)
        if it.size_bytes <= 0:
            raise EntryVerifyFailed(f"invalid size {it.size_bytes}", friendly_name=it.friendly_name, retryable=False)

        with self.lock:
            status = self.verifier.verify(it.store_path, it.size_bytes, it.content_hash)
            if status == VERIFY_OK:
                return ITEM_VERIFIED

            log.debug(f"Fetching entry={it.friendly_name} status={status} url={it.url}")
            try:
                self.fetcher.fetch(it.url, it.store_path)
            except EntryFetchFailed as e:
                e.friendly_name = it.friendly_name
                raise

            status = self.verifier.verify(it.store_path, it.size_bytes, it.content_hash)
            if status != VERIFY_OK:
                # Only the object this task just wrote is removed.
                it.store_path.unlink(missing_ok=True)
                raise EntryVerifyFailed(
                    f"downloaded object is {status}: {it.store_path}",
                    friendly_name=it.friendly_name,
                    status=status,
                )
        return ITEM_FETCHED


class CopyFileTask(InstallTask):
    """Copy a verified store object to its friendly-named target.

    The target is replaced through a temp sibling; whatever exists at copy time
    is overwritten.
    """

    def __init__(self, item: CopyItem):
        self.item = item

    @property
    def item_id(self) -> str:
        return self.item.item_id

    def run(self) -> str:
        it = self.item
        tmp = it.target.with_name(it.target.name + ".tmp")
        try:
            it.target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(it.store_path, tmp)
            os.replace(tmp, it.target)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise CopyFailed(f"copy {it.store_path} -> {it.target} failed: {e}", friendly_name=it.friendly_name) from e
        return ITEM_COPIED
