"""Persistent build-cache manager.

Decides on every build whether stored dependency directories are still
valid, restores them when they are, and re-saves them after a successful
build.

Public Interface:
    Modules:
    - cache: Fingerprints, status resolution, archiving, coordination
    - config: Settings loading
    - storage: Cache root layout
    - telemetry: Metric sinks
"""

# Re-export key types for convenience
from .cache import CacheContext
from .cache import CacheCoordinator
from .cache import CacheStatus
from .config import CacheSettings
from .config import load_config
from .errors import ArchiveError
from .errors import BuildCacheError

__all__ = [
    "ArchiveError",
    "BuildCacheError",
    "CacheContext",
    "CacheCoordinator",
    "CacheSettings",
    "CacheStatus",
    "load_config",
]
