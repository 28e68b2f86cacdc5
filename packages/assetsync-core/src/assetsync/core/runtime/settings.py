from __future__ import annotations

import os
from importlib import import_module

from pydantic import BaseModel

DEFAULT_RESOURCE_BASE_URL = "https://resources.download.minecraft.net"


class Settings(BaseModel):
    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    store_root: str = "assets"
    resources_root: str | None = None
    release_key: str | None = None
    resource_base_url: str = DEFAULT_RESOURCE_BASE_URL

    # Execution
    # - workers: fetch/verify pool size
    # - copy_workers: copy pool size (copies are local disk work, keep it small)
    # - fetch_retries: extra attempts per fetch item after the first one
    # - retry_backoff: exponential backoff multiplier in seconds (0 disables waiting)
    workers: int = 8
    copy_workers: int = 2
    fetch_retries: int = 2
    retry_backoff: float = 1.0

    # HTTP
    http_timeout: float = 30.0
    verify_ssl: bool = True

    # Verification: size is always checked, the digest only when verify_hash is set.
    verify_hash: bool = False
    hash_algorithm: str = "sha1"

    log_level: str = "INFO"

    # Observability
    # - log_format: "text" (default) or "json". When json, assetsync logs emit a single JSON
    #   object per line, suitable for log aggregation.
    log_format: str = "text"

    # Optional metrics sink module (exposes METRICS: MetricsSink)
    metrics_module: str | None = None

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        data = {
            "store_root": g("ASSETSYNC_STORE_ROOT", "assets"),
            "resources_root": g("ASSETSYNC_RESOURCES_ROOT") or None,
            "release_key": g("ASSETSYNC_RELEASE_KEY") or None,
            "resource_base_url": g("ASSETSYNC_RESOURCE_BASE_URL", DEFAULT_RESOURCE_BASE_URL),
            "workers": int(g("ASSETSYNC_WORKERS", "8") or 8),
            "copy_workers": int(g("ASSETSYNC_COPY_WORKERS", "2") or 2),
            "fetch_retries": int(g("ASSETSYNC_FETCH_RETRIES", "2") or 0),
            "retry_backoff": float(g("ASSETSYNC_RETRY_BACKOFF", "1.0") or 0),
            "http_timeout": float(g("ASSETSYNC_HTTP_TIMEOUT", "30") or 30),
            "verify_ssl": (g("ASSETSYNC_VERIFY_SSL", "true") or "true").lower() == "true",
            "verify_hash": (g("ASSETSYNC_VERIFY_HASH", "false") or "false").lower() == "true",
            "hash_algorithm": g("ASSETSYNC_HASH_ALGORITHM", "sha1"),
            "log_level": g("ASSETSYNC_LOG_LEVEL", "INFO"),
            "log_format": g("ASSETSYNC_LOG_FORMAT", "text"),
            "metrics_module": g("ASSETSYNC_METRICS_MODULE") or None,
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional settings module, (3) explicit overrides.

    If env is not provided, we build a snapshot from os.environ.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    s = Settings.from_env(env2)
    mod = env2.get("ASSETSYNC_SETTINGS_MODULE")
    if mod:
        m = import_module(mod)
        data = getattr(m, "SETTINGS", {})
        if not isinstance(data, dict):
            raise TypeError("ASSETSYNC_SETTINGS_MODULE must expose SETTINGS: dict")
        s = s.model_copy(update=data)
    if overrides:
        s = s.model_copy(update=overrides)
    return s
