from __future__ import annotations

from assetsync.core.runtime.settings import DEFAULT_RESOURCE_BASE_URL, Settings, load_settings


def test_defaults_from_empty_env():
    s = load_settings(env={})
    assert s.store_root == "assets"
    assert s.resource_base_url == DEFAULT_RESOURCE_BASE_URL
    assert s.workers == 8
    assert s.fetch_retries == 2
    assert s.verify_hash is False


def test_env_snapshot_and_overrides():
    env = {
        "ASSETSYNC_STORE_ROOT": "/data/assets",
        "ASSETSYNC_WORKERS": "3",
        "ASSETSYNC_VERIFY_HASH": "TRUE",
        "ASSETSYNC_RELEASE_KEY": "1.12",
        "ASSETSYNC_LOG_FORMAT": "json",
    }
    s = load_settings({"workers": 5}, env=env)
    assert s.store_root == "/data/assets"
    assert s.workers == 5
    assert s.verify_hash is True
    assert s.release_key == "1.12"
    assert s.log_format == "json"


def test_settings_module(tmp_path, monkeypatch):
    (tmp_path / "my_assetsync_settings.py").write_text("SETTINGS = {'copy_workers': 7}\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    s = load_settings(env={"ASSETSYNC_SETTINGS_MODULE": "my_assetsync_settings"})
    assert s.copy_workers == 7


def test_from_env_does_not_read_os_environ(monkeypatch):
    monkeypatch.setenv("ASSETSYNC_WORKERS", "99")
    assert Settings.from_env({}).workers == 8
