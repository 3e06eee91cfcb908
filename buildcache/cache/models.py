"""Cache models for the build cache.

This module contains all data models for cache management including:
- Status and coordinator state enums
- The toolchain identity a fingerprint is derived from
- The explicit context object handed to the coordinator
- Restore and save result models
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic import computed_field

from buildcache.models.base import CamelCaseModel

DEFAULT_CACHE_DIRECTORIES = ["node_modules"]
UNKNOWN_VERSION = "unknown"


# =============================================================================
# Status Models
# =============================================================================


class CacheStatus(str, Enum):
    """Whether, and why, the cache can be reused this build.

    Resolution order (first match wins):
    - DISABLED: Caching explicitly turned off
    - NO_CACHE: No signature record, nothing was ever saved
    - NEW_SIGNATURE: A record exists but the toolchain or directory set changed
    - VALID: Stored signature matches, restore is safe
    """

    DISABLED = "disabled"
    NO_CACHE = "no-cache"
    NEW_SIGNATURE = "new-signature"
    VALID = "valid"


class CoordinatorState(str, Enum):
    """Coordinator lifecycle state.

    State transitions:
    - IDLE -> RESOLVING: restore phase starts
    - RESOLVING -> RESTORING: status is valid
    - RESOLVING -> SKIPPING_RESTORE: any other status
    - RESTORING / SKIPPING_RESTORE -> SAVING: after a successful build
    - SAVING -> IDLE: records written
    - RESTORING / SAVING -> FAILED: archive error, build aborts
    """

    IDLE = "idle"
    RESOLVING = "resolving"
    RESTORING = "restoring"
    SKIPPING_RESTORE = "skipping-restore"
    SAVING = "saving"
    FAILED = "failed"


# =============================================================================
# Identity and Context
# =============================================================================


@dataclass
class Toolchain:
    """Identity of the toolchain and platform a build ran with."""

    platform_image: str
    runtime_version: str
    package_manager_version: str
    package_manager_name: str = "npm"

    def fingerprint(self) -> str:
        """Derive the fingerprint for this toolchain."""
        from .fingerprint import compute_fingerprint

        return compute_fingerprint(
            runtime_version=self.runtime_version,
            package_manager_version=self.package_manager_version,
            platform_image=self.platform_image,
            package_manager_name=self.package_manager_name,
        )


@dataclass
class CacheContext:
    """Everything the coordinator needs for one build.

    Replaces process-wide environment state with an explicit object.
    """

    working_root: Path
    cache_root: Path
    directories: list[str] = field(default_factory=lambda: list(DEFAULT_CACHE_DIRECTORIES))
    enabled: bool = True
    hardlink: bool = False

    def __post_init__(self) -> None:
        self.working_root = Path(self.working_root)
        self.cache_root = Path(self.cache_root)
        self.directories = list(self.directories)


# =============================================================================
# Result Models
# =============================================================================


class RestoreResult(CamelCaseModel):
    """Outcome of the restore phase."""

    status: CacheStatus = Field(
        ...,
        description="Resolved cache status",
    )
    fingerprint: str = Field(
        ...,
        description="Fingerprint computed for this build",
    )
    restored: list[str] = Field(
        default_factory=list,
        description="Directories copied from the cache into the working tree",
    )
    skipped: list[str] = Field(
        default_factory=list,
        description="Directories not restored (missing from cache or restore skipped)",
    )

    @computed_field
    @property
    def restored_count(self) -> int:
        """Number of directories restored."""
        return len(self.restored)


class SaveResult(CamelCaseModel):
    """Outcome of the save phase."""

    status: CacheStatus | None = Field(
        None,
        description="Status resolved during restore, if restore ran",
    )
    fingerprint: str | None = Field(
        None,
        description="Fingerprint written to the signature record",
    )
    saved: list[str] = Field(
        default_factory=list,
        description="Directories copied into the cache",
    )
    skipped: list[str] = Field(
        default_factory=list,
        description="Directories absent from the working tree",
    )
    cleared: bool = Field(
        False,
        description="Whether previous cache contents were removed",
    )

    @computed_field
    @property
    def saved_count(self) -> int:
        """Number of directories saved."""
        return len(self.saved)
