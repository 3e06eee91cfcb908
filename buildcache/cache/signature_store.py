"""Signature store for the build cache.

Persists the fingerprint of the last successful save, plus the directory set
that save covered, as plain text files inside the cache root.

Reads never fail: a missing, empty or unreadable record is reported as
absent so a corrupt cache degrades to a cache miss. Writes raise, since a
failed save should be visible.
"""

from __future__ import annotations

import logging
from pathlib import Path

from buildcache.errors import SignatureWriteError
from buildcache.storage.paths import get_directory_set_path
from buildcache.storage.paths import get_signature_path

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str | None:
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read cache record {path}: {e}")
        return None


def _write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise SignatureWriteError(f"Failed to write cache record {path}: {e}") from e
    logger.debug(f"Wrote cache record {path}")


def read_signature(cache_root: Path) -> str | None:
    """Read the stored fingerprint.

    Args:
        cache_root: Cache root directory

    Returns:
        Stored fingerprint, or None if absent or unreadable
    """
    content = _read_text(get_signature_path(cache_root))
    if content is None:
        return None
    signature = content.removesuffix("\n")
    return signature or None


def write_signature(cache_root: Path, fingerprint: str) -> None:
    """Overwrite the stored fingerprint.

    Raises:
        SignatureWriteError: If the record cannot be written
    """
    _write_text(get_signature_path(cache_root), f"{fingerprint}\n")


def read_directory_set(cache_root: Path) -> list[str] | None:
    """Read the directory set recorded by the last save.

    Returns:
        Ordered list of relative paths, or None if absent or unreadable
    """
    content = _read_text(get_directory_set_path(cache_root))
    if content is None:
        return None
    return [line for line in content.splitlines() if line.strip()]


def write_directory_set(cache_root: Path, directories: list[str]) -> None:
    """Overwrite the recorded directory set, one path per line."""
    _write_text(get_directory_set_path(cache_root), "".join(f"{d}\n" for d in directories))


class SignatureStore:
    """Signature and directory-set records for one cache root."""

    def __init__(self, cache_root: Path) -> None:
        """Initialize signature store.

        Args:
            cache_root: Cache root holding the records
        """
        self.cache_root = Path(cache_root)

    @property
    def signature_path(self) -> Path:
        return get_signature_path(self.cache_root)

    def read(self) -> str | None:
        return read_signature(self.cache_root)

    def write(self, fingerprint: str) -> None:
        write_signature(self.cache_root, fingerprint)

    def read_directories(self) -> list[str] | None:
        return read_directory_set(self.cache_root)

    def write_directories(self, directories: list[str]) -> None:
        write_directory_set(self.cache_root, directories)

    def exists(self) -> bool:
        """Whether a readable signature record is present."""
        return self.read() is not None
