"""Configuration module for buildcache.

Provides cache configuration loading from YAML and environment variables.

Public Interface:
    - CacheSettings: Settings model
    - load_config: Load configuration
    - get_config_path: Get config file path
    - read_manifest_directories: Directory override from package.json
"""

from .loader import get_config_path
from .loader import load_config
from .loader import read_manifest_directories
from .settings import CacheSettings

__all__ = [
    "CacheSettings",
    "load_config",
    "get_config_path",
    "read_manifest_directories",
]
