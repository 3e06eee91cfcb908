"""Path resolution for the cache root layout.

A cache root holds one versioned record directory plus one subtree per
cached directory, mirroring the relative path it was copied from:

    <cache_root>/.buildcache/v1/signature
    <cache_root>/.buildcache/v1/directories
    <cache_root>/node_modules/...

Bumping RECORD_LAYOUT_VERSION moves the records to a new path, so a cache
written by an older layout reads as absent instead of colliding.

Contract:
- Inputs: Cache root and working root paths
- Outputs: Resolved Path objects
- Side Effects: None
"""

from pathlib import Path

RECORD_DIR_NAME = ".buildcache"
RECORD_LAYOUT_VERSION = "v1"


def get_record_dir(cache_root: Path) -> Path:
    """Get the versioned record directory.

    Returns:
        Path to $cache_root/.buildcache/v1
    """
    return Path(cache_root) / RECORD_DIR_NAME / RECORD_LAYOUT_VERSION


def get_signature_path(cache_root: Path) -> Path:
    """Get the signature record file.

    Example:
        >>> get_signature_path(Path("/cache")).as_posix()
        '/cache/.buildcache/v1/signature'
    """
    return get_record_dir(cache_root) / "signature"


def get_directory_set_path(cache_root: Path) -> Path:
    """Get the directory-set record file."""
    return get_record_dir(cache_root) / "directories"


def resolve_within(root: Path, relative_path: str) -> Path:
    """Join a relative path onto root, refusing anything that leaves it.

    Args:
        root: Directory the path must stay inside
        relative_path: Path relative to root (e.g. "vendor/deps")

    Returns:
        The joined path (not resolved through symlinks)

    Raises:
        ValueError: If the path is empty, absolute, or escapes root
    """
    if not relative_path or not relative_path.strip():
        raise ValueError("Empty cache directory path")

    candidate = Path(relative_path)
    if candidate.is_absolute():
        raise ValueError(f"Cache directory must be relative: {relative_path}")
    if ".." in candidate.parts:
        raise ValueError(f"Cache directory escapes its root: {relative_path}")
    if candidate.parts and candidate.parts[0] == RECORD_DIR_NAME:
        raise ValueError(f"Cache directory collides with the record directory: {relative_path}")
    if candidate == Path("."):
        raise ValueError("Cache directory cannot be the root itself")

    return Path(root) / candidate
