"""Directory archiver for the build cache.

Copies a set of directories between the working tree and the cache root,
one whole subtree at a time. The destination is always removed before the
copy, so a restored tree never carries files from an older dependency graph.

The first failure aborts the call with an ArchiveError naming the directory.
Nothing is retried.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from buildcache.errors import ArchiveError
from buildcache.storage.paths import resolve_within

logger = logging.getLogger(__name__)


def _remove(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def _same_device(a: Path, b: Path) -> bool:
    try:
        return os.stat(a).st_dev == os.stat(b).st_dev
    except OSError:
        return False


def _link_or_copy(src: str, dst: str) -> str:
    try:
        os.link(src, dst)
    except OSError:
        shutil.copy2(src, dst)
    return dst


class DirectoryArchiver:
    """Whole-subtree copier between two roots."""

    def __init__(self, hardlink: bool = False) -> None:
        """Initialize archiver.

        Args:
            hardlink: Hard-link files instead of copying when both roots are
                on the same device. Linked files share content with the
                source, so only enable this when neither side is edited in
                place.
        """
        self.hardlink = hardlink

    def restore(self, cache_root: Path, working_root: Path, directory_set: list[str]) -> list[str]:
        """Copy cached directories into the working tree.

        Args:
            cache_root: Cache root to copy from
            working_root: Build working directory to copy into
            directory_set: Relative directory paths

        Returns:
            Paths restored, in directory_set order. Paths missing from the
            cache are skipped silently.

        Raises:
            ArchiveError: On the first directory that fails to copy
        """
        return self._transfer(Path(cache_root), Path(working_root), directory_set, "restore")

    def save(self, working_root: Path, cache_root: Path, directory_set: list[str]) -> list[str]:
        """Copy working-tree directories into the cache.

        Returns:
            Paths saved, in directory_set order. Paths missing from the
            working tree are skipped silently.

        Raises:
            ArchiveError: On the first directory that fails to copy
        """
        return self._transfer(Path(working_root), Path(cache_root), directory_set, "save")

    def clear(self, cache_root: Path) -> None:
        """Remove everything inside the cache root, keeping the root itself.

        Raises:
            ArchiveError: If an entry cannot be removed
        """
        cache_root = Path(cache_root)
        if not cache_root.exists():
            cache_root.mkdir(parents=True, exist_ok=True)
            return

        for entry in sorted(cache_root.iterdir()):
            try:
                _remove(entry)
            except OSError as e:
                raise ArchiveError(entry.name, "clear", str(e)) from e
        logger.debug(f"Cleared cache root {cache_root}")

    def _transfer(self, source_root: Path, dest_root: Path, directory_set: list[str], operation: str) -> list[str]:
        # Validate every path before touching the filesystem
        pairs = []
        for relative in directory_set:
            try:
                pairs.append((relative, resolve_within(source_root, relative), resolve_within(dest_root, relative)))
            except ValueError as e:
                raise ArchiveError(relative, operation, str(e)) from e

        transferred = []
        for relative, source, dest in pairs:
            if not source.exists():
                logger.debug(f"{operation}: {relative} not present in {source_root}, skipping")
                continue
            try:
                self._replace_tree(source, dest)
            except (OSError, shutil.Error) as e:
                raise ArchiveError(relative, operation, str(e)) from e
            transferred.append(relative)
            logger.debug(f"{operation}: copied {source} -> {dest}")
        return transferred

    def _replace_tree(self, source: Path, dest: Path) -> None:
        if dest.exists() or dest.is_symlink():
            _remove(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        if source.is_file():
            shutil.copy2(source, dest)
            return

        copy_function = shutil.copy2
        if self.hardlink and _same_device(source, dest.parent):
            copy_function = _link_or_copy
        shutil.copytree(source, dest, symlinks=True, copy_function=copy_function)


_default_archiver = DirectoryArchiver()


def restore(cache_root: Path, working_root: Path, directory_set: list[str]) -> int:
    """Restore cached directories into the working tree.

    Returns:
        Number of directories restored
    """
    return len(_default_archiver.restore(cache_root, working_root, directory_set))


def save(working_root: Path, cache_root: Path, directory_set: list[str]) -> int:
    """Save working-tree directories into the cache.

    Returns:
        Number of directories saved
    """
    return len(_default_archiver.save(working_root, cache_root, directory_set))


def clear(cache_root: Path) -> None:
    """Remove everything inside the cache root."""
    _default_archiver.clear(cache_root)
