"""Centralized customized exceptions for assetsync.

All project-specific exceptions live in this module so that every layer
(reader, planner, queue, CLI) raises and catches the same classes.

Internal code should prefer explicit imports:

    from assetsync.core.exception import ManifestInvalid
"""

from __future__ import annotations

__all__ = [
    "SpecError",
    "ManifestInvalid",
    "LayoutError",
    "AssetSyncError",
    "EntryFetchFailed",
    "EntryVerifyFailed",
    "CopyFailed",
]


class SpecError(ValueError):
    """Raised when an asset index or sync config is invalid (schema or semantic)."""


class ManifestInvalid(SpecError):
    """Raised when the asset index is malformed or structurally incomplete.

    Fatal to the whole sync pass: nothing is planned or executed.
    """


class LayoutError(SpecError):
    """Raised when a layout mode cannot place an entry (missing root, unsafe name)."""


class AssetSyncError(RuntimeError):
    """Base error for per-entry failures reported by the work-item executors.

    `retryable=False` tells the queue that another attempt cannot help
    (e.g. an entry with an empty hash).
    """

    def __init__(self, message: str, *, friendly_name: str | None = None, retryable: bool = True):
        super().__init__(message)
        self.friendly_name = friendly_name
        self.retryable = retryable


class EntryFetchFailed(AssetSyncError):
    """Raised when the bytes for an entry cannot be downloaded."""

    def __init__(self, message: str, *, friendly_name: str | None = None, url: str | None = None, retryable: bool = True):
        super().__init__(message, friendly_name=friendly_name, retryable=retryable)
        self.url = url


class EntryVerifyFailed(AssetSyncError):
    """Raised when a stored object is missing or corrupt after a fetch attempt."""

    def __init__(
        self,
        message: str,
        *,
        friendly_name: str | None = None,
        status: str | None = None,
        retryable: bool = True,
    ):
        super().__init__(message, friendly_name=friendly_name, retryable=retryable)
        self.status = status


class CopyFailed(AssetSyncError):
    """Raised when a verified object cannot be copied to its friendly-named target."""
