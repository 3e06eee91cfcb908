"""Build cache management.

This module provides the fingerprint-addressed directory cache:
- Fingerprint derivation and toolchain version detection
- Signature record storage
- Cache status resolution
- Whole-subtree directory archiving
- Restore/save coordination around the install step
"""

# Services
from .archiver import DirectoryArchiver
from .coordinator import CacheCoordinator
from .signature_store import SignatureStore

# Operations
from .archiver import clear
from .archiver import restore
from .archiver import save
from .fingerprint import compute_fingerprint
from .fingerprint import detect_tool_version
from .fingerprint import detect_toolchain
from .fingerprint import platform_image_from_env
from .signature_store import read_directory_set
from .signature_store import read_signature
from .signature_store import write_directory_set
from .signature_store import write_signature
from .status import resolve

# Models
from .models import DEFAULT_CACHE_DIRECTORIES
from .models import CacheContext
from .models import CacheStatus
from .models import CoordinatorState
from .models import RestoreResult
from .models import SaveResult
from .models import Toolchain

__all__ = [
    # Services
    "CacheCoordinator",
    "DirectoryArchiver",
    "SignatureStore",
    # Operations
    "compute_fingerprint",
    "detect_tool_version",
    "detect_toolchain",
    "platform_image_from_env",
    "read_signature",
    "write_signature",
    "read_directory_set",
    "write_directory_set",
    "resolve",
    "restore",
    "save",
    "clear",
    # Models
    "DEFAULT_CACHE_DIRECTORIES",
    "CacheContext",
    "CacheStatus",
    "CoordinatorState",
    "RestoreResult",
    "SaveResult",
    "Toolchain",
]
