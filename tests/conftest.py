"""
Shared pytest fixtures for the buildcache test suite.

Provides fixtures for:
- Isolated working and cache roots
- A clean environment without BUILDCACHE_* variables
- Helpers to build and snapshot directory trees
"""

from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove cache-related variables and run from an empty directory."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("BUILDCACHE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("NODE_MODULES_CACHE", raising=False)
    monkeypatch.delenv("STACK", raising=False)

    run_dir = tmp_path / "run"
    run_dir.mkdir()
    monkeypatch.chdir(run_dir)


@pytest.fixture
def working_root(tmp_path: Path) -> Path:
    """Build working directory."""
    root = tmp_path / "build"
    root.mkdir()
    return root


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """Persistent cache directory, outside the working tree."""
    root = tmp_path / "cache"
    root.mkdir()
    return root


def _write_tree(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _snapshot(root: Path) -> dict[str, bytes]:
    if not root.exists():
        return {}
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str]], None]:
    """Write {relative_path: content} files under a root."""
    return _write_tree


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, bytes]]:
    """Map every file under a root to its bytes."""
    return _snapshot
