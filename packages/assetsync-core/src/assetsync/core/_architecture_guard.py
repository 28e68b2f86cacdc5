"""assetsync strict architecture guard.

Two rules are enforced when `assetsync.core` is imported:

1) Custom exceptions live only in `assetsync/core/exception.py`.
2) Classes named `*Spec` live only in `assetsync/core/spec.py`.

A violation raises RuntimeError naming each offending class and file.
Set ASSETSYNC_STRICT_ARCH=0 to skip the scan.
"""

from __future__ import annotations

import ast
import os
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple

_SKIP_PARTS = {"__pycache__", ".venv", "venv", "build", "dist", ".eggs", ".git", "tests", "test"}

_EXCEPTION_ROOTS = {"BaseException", "Exception"}


class Violation(NamedTuple):
    rule: str
    cls: str
    path: Path


def _source_files(package_root: Path) -> Iterable[Path]:
    for path in sorted(package_root.rglob("*.py")):
        if _SKIP_PARTS & set(path.relative_to(package_root).parts):
            continue
        yield path


def _dotted(node: ast.expr) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_dotted(node.value)}.{node.attr}"
    if isinstance(node, ast.Subscript):
        return _dotted(node.value)
    return ""


def _looks_like_exception(cls: ast.ClassDef) -> bool:
    for base in cls.bases:
        last = _dotted(base).rsplit(".", 1)[-1]
        if last in _EXCEPTION_ROOTS or last.endswith(("Error", "Exception")):
            return True
    return False


def _violations(package_root: Path) -> Iterator[Violation]:
    homes = {
        "exception": (package_root / "exception.py").resolve(),
        "spec": (package_root / "spec.py").resolve(),
    }
    for path in _source_files(package_root):
        resolved = path.resolve()
        try:
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        except (OSError, UnicodeDecodeError, SyntaxError) as e:
            raise RuntimeError(f"[assetsync strict-arch] Cannot parse source file: {path}") from e

        for node in ast.walk(tree):
            if not isinstance(node, ast.ClassDef):
                continue
            if resolved != homes["exception"] and _looks_like_exception(node):
                yield Violation("exception", node.name, path)
            if resolved != homes["spec"] and node.name.endswith("Spec"):
                yield Violation("spec", node.name, path)


def assert_architecture(package_root: Path | None = None) -> None:
    if os.getenv("ASSETSYNC_STRICT_ARCH", "1") == "0":
        return

    root = package_root or Path(__file__).resolve().parent
    found = sorted(_violations(root), key=lambda v: (v.rule, str(v.path), v.cls))
    if not found:
        return

    fixes = {
        "exception": "move it into assetsync/core/exception.py",
        "spec": "move it into assetsync/core/spec.py",
    }
    lines = ["assetsync strict architecture check failed:"]
    for v in found:
        lines.append(f"  - [{v.rule}] {v.cls} defined in {v.path}: {fixes[v.rule]}")
    raise RuntimeError("\n".join(lines))
