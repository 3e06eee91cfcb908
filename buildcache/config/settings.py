"""Settings models for the build cache.

This module defines the configuration a build hands to the cache
coordinator: where the working tree and cache root live, which directories
to cache, whether caching is on, and how to detect tool versions.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

import logging
import shlex
from pathlib import Path
from typing import Annotated
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import NoDecode
from pydantic_settings import SettingsConfigDict

from ..cache.fingerprint import detect_toolchain
from ..cache.models import DEFAULT_CACHE_DIRECTORIES
from ..cache.models import CacheContext
from ..cache.models import Toolchain

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on", "enabled"}
_FALSE_VALUES = {"false", "0", "no", "off", "disabled"}


class CacheSettings(BaseSettings):
    """Configuration for the build cache.

    Attributes:
        cache_enabled: Restore and save the cache (default: True)
        directories: Directories to cache, relative to working_root
            (default: None, meaning manifest override or node_modules)
        working_root: Build working directory (default: .)
        cache_root: Persistent cache directory (default: ~/.cache/buildcache)
        hardlink: Hard-link files instead of copying when possible
        runtime_command: Command printing the runtime version
        package_manager_command: Command printing the package manager version
        package_manager_name: Package manager name recorded in the fingerprint
        platform_image: Platform image identifier (default: $STACK)

    Example:
        >>> settings = CacheSettings(cache_enabled="false")
        >>> assert settings.cache_enabled is False
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cache_enabled: bool = True
    directories: Annotated[list[str] | None, NoDecode] = None

    working_root: str = "."
    cache_root: str = "~/.cache/buildcache"
    hardlink: bool = False

    runtime_command: str = "node --version"
    package_manager_command: str = "npm --version"
    package_manager_name: str = "npm"
    platform_image: str | None = None

    @field_validator("cache_enabled", mode="before")
    @classmethod
    def parse_cache_enabled(cls, v: Any) -> bool:
        """Parse the enable flag, failing open.

        Disabling is the explicit, unusual case, so anything that is not
        clearly a "false" value leaves caching on.
        """
        if isinstance(v, bool):
            return v
        if v is None:
            return True
        text = str(v).strip().lower()
        if text in _FALSE_VALUES:
            return False
        if text not in _TRUE_VALUES:
            logger.warning(f"Unrecognized cache_enabled value {v!r}, leaving caching enabled")
        return True

    @field_validator("directories", mode="before")
    @classmethod
    def split_directories(cls, v: Any) -> list[str] | None:
        """Accept a list or a comma/whitespace separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            parts = [p for p in v.replace(",", " ").split() if p]
            return parts or None
        return v

    @field_validator("working_root", "cache_root")
    @classmethod
    def expand_and_resolve_path(cls, v: str) -> str:
        """Expand ~ and resolve to absolute path.

        Args:
            v: Path string (may contain ~ or be relative)

        Returns:
            Absolute path as string
        """
        return str(Path(v).expanduser().resolve())

    def resolve_directories(self, manifest_directories: list[str] | None = None) -> list[str]:
        """Pick the directory set.

        Precedence: explicit setting > project manifest > default.
        """
        if self.directories:
            return list(self.directories)
        if manifest_directories:
            return list(manifest_directories)
        return list(DEFAULT_CACHE_DIRECTORIES)

    def to_context(self, manifest_directories: list[str] | None = None) -> CacheContext:
        """Build the coordinator context from these settings."""
        return CacheContext(
            working_root=Path(self.working_root),
            cache_root=Path(self.cache_root),
            directories=self.resolve_directories(manifest_directories),
            enabled=self.cache_enabled,
            hardlink=self.hardlink,
        )

    def detect_toolchain(self) -> Toolchain:
        """Run the configured version commands."""
        return detect_toolchain(
            runtime_command=shlex.split(self.runtime_command),
            package_manager_command=shlex.split(self.package_manager_command),
            package_manager_name=self.package_manager_name,
            platform_image=self.platform_image,
        )
