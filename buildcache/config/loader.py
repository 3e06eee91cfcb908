"""Configuration loading for the build cache.

This module handles loading cache configuration from YAML files, environment
variables and the project's package manifest.

Contract:
- Inputs: Config file paths, environment variables, package.json
- Outputs: CacheSettings objects, directory overrides
- Side Effects: None
"""

import json
import logging
import os
from pathlib import Path

import yaml

from .settings import CacheSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "BUILDCACHE_"
LEGACY_ENABLE_VAR = "NODE_MODULES_CACHE"
MANIFEST_NAME = "package.json"
MANIFEST_DIRECTORY_KEYS = ("cacheDirectories", "cache_directories")


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        $BUILDCACHE_CONFIG if set, otherwise buildcache.yaml in the current directory

    Example:
        >>> config_path = get_config_path()
        >>> assert config_path.suffix == ".yaml" or "BUILDCACHE_CONFIG" in os.environ
    """
    env_override = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if env_override:
        return Path(env_override).expanduser().resolve()
    return Path("buildcache.yaml").resolve()


def load_config(config_path: Path | None = None) -> CacheSettings:
    """Load cache configuration from YAML and environment.

    Environment variables take precedence over YAML settings.
    Variables should be prefixed with BUILDCACHE_ (e.g., BUILDCACHE_CACHE_ENABLED).
    NODE_MODULES_CACHE is honoured for cache_enabled when the prefixed
    variable is not set.

    Args:
        config_path: Optional config file path (default: get_config_path())

    Returns:
        Validated cache settings
    """
    if config_path is None:
        config_path = get_config_path()

    yaml_settings = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            if not isinstance(yaml_settings, dict):
                logger.warning(f"Ignoring config {config_path}: expected a mapping")
                yaml_settings = {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"{ENV_PREFIX}{str(key).upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    if f"{ENV_PREFIX}CACHE_ENABLED" not in os.environ and LEGACY_ENABLE_VAR in os.environ:
        filtered_yaml["cache_enabled"] = os.environ[LEGACY_ENABLE_VAR]

    # Env vars are loaded by pydantic-settings
    settings = CacheSettings(**filtered_yaml)

    logger.info(
        f"Cache configuration loaded: enabled={settings.cache_enabled}, "
        f"cache_root={settings.cache_root}, working_root={settings.working_root}"
    )

    return settings


def read_manifest_directories(working_root: Path) -> list[str] | None:
    """Read a directory override from the project's package.json.

    Looks for "cacheDirectories" first, then "cache_directories".

    Args:
        working_root: Build working directory

    Returns:
        Directories listed in the manifest, or None if there is no usable override
    """
    manifest_path = Path(working_root) / MANIFEST_NAME
    if not manifest_path.exists():
        return None

    try:
        with open(manifest_path, encoding="utf-8") as f:
            manifest = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read {manifest_path}: {e}")
        return None

    if not isinstance(manifest, dict):
        return None

    for key in MANIFEST_DIRECTORY_KEYS:
        value = manifest.get(key)
        if value is None:
            continue
        if isinstance(value, list) and all(isinstance(v, str) for v in value) and value:
            logger.info(f"Using {key} from {MANIFEST_NAME}: {', '.join(value)}")
            return list(value)
        logger.warning(f"Ignoring {key} in {MANIFEST_NAME}: expected a non-empty list of paths")
    return None
