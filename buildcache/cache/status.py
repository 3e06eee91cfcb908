"""Status resolution for the build cache.

Compares the live fingerprint against the stored signature record and
classifies the cache. Read-only: nothing here modifies the cache root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .models import CacheStatus
from .signature_store import SignatureStore

logger = logging.getLogger(__name__)


def resolve(
    cache_root: Path,
    computed_fingerprint: str,
    cache_enabled: bool,
    directory_set: list[str] | None = None,
) -> CacheStatus:
    """Resolve the cache status for this build.

    First match wins:
    1. caching disabled -> DISABLED
    2. no stored signature -> NO_CACHE
    3. stored signature differs -> NEW_SIGNATURE
    4. directory set given and differs from the recorded one -> NEW_SIGNATURE
    5. otherwise -> VALID

    Args:
        cache_root: Cache root holding the signature record
        computed_fingerprint: Fingerprint of the live toolchain
        cache_enabled: Whether caching is enabled
        directory_set: Directory set for this build, compared when recorded

    Returns:
        Resolved cache status. Never raises; unexpected errors yield NO_CACHE.
    """
    if not cache_enabled:
        return CacheStatus.DISABLED

    try:
        store = SignatureStore(cache_root)
        stored = store.read()
        if stored is None:
            return CacheStatus.NO_CACHE

        if stored != computed_fingerprint:
            logger.debug(f"Signature changed: {stored!r} -> {computed_fingerprint!r}")
            return CacheStatus.NEW_SIGNATURE

        if directory_set is not None:
            recorded = store.read_directories()
            if recorded is not None and recorded != list(directory_set):
                logger.debug(f"Directory set changed: {recorded} -> {list(directory_set)}")
                return CacheStatus.NEW_SIGNATURE

        return CacheStatus.VALID
    except Exception as e:
        logger.warning(f"Could not resolve cache status for {cache_root}, treating as empty: {e}")
        return CacheStatus.NO_CACHE
