from __future__ import annotations

import pytest

from assetsync.core._architecture_guard import assert_architecture


def _pkg(tmp_path, files: dict[str, str]):
    root = tmp_path / "pkg"
    root.mkdir()
    for name, src in files.items():
        (root / name).write_text(src, encoding="utf-8")
    return root


def test_shipped_package_is_clean():
    assert_architecture()


def test_exception_outside_exception_module(tmp_path):
    root = _pkg(tmp_path, {"exception.py": "", "spec.py": "", "tasks.py": "class Oops(RuntimeError):\n    pass\n"})
    with pytest.raises(RuntimeError) as ei:
        assert_architecture(root)
    assert "Oops" in str(ei.value)
    assert "[exception]" in str(ei.value)


def test_spec_outside_spec_module(tmp_path):
    root = _pkg(tmp_path, {"exception.py": "", "spec.py": "", "cli.py": "class CliSpec:\n    pass\n"})
    with pytest.raises(RuntimeError) as ei:
        assert_architecture(root)
    assert "CliSpec" in str(ei.value)


def test_guard_can_be_disabled(tmp_path, monkeypatch):
    root = _pkg(tmp_path, {"tasks.py": "class Oops(Exception):\n    pass\n"})
    monkeypatch.setenv("ASSETSYNC_STRICT_ARCH", "0")
    assert_architecture(root)
