"""Storage module for buildcache.

Fixed locations inside a cache root.

Public Interface:
    - get_record_dir: Versioned directory holding the cache records
    - get_signature_path: Signature record file
    - get_directory_set_path: Directory-set record file
    - resolve_within: Join a relative path onto a root without escaping it
"""

from .paths import RECORD_DIR_NAME
from .paths import RECORD_LAYOUT_VERSION
from .paths import get_directory_set_path
from .paths import get_record_dir
from .paths import get_signature_path
from .paths import resolve_within

__all__ = [
    "RECORD_DIR_NAME",
    "RECORD_LAYOUT_VERSION",
    "get_record_dir",
    "get_signature_path",
    "get_directory_set_path",
    "resolve_within",
]
