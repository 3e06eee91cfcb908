"""Exception types for the build cache.

Only archive and signature-write failures are fatal for a build. Read and
resolution problems are recovered where they happen and never reach callers.
"""


class BuildCacheError(Exception):
    """Base class for build cache errors."""


class ArchiveError(BuildCacheError):
    """Copying a cached directory failed.

    Attributes:
        path: Relative path of the directory that failed
        operation: One of "restore", "save" or "clear"
    """

    def __init__(self, path: str, operation: str, message: str) -> None:
        self.path = path
        self.operation = operation
        super().__init__(f"Cache {operation} failed for '{path}': {message}")


class SignatureWriteError(BuildCacheError):
    """Writing the signature or directory-set record failed."""


class CoordinatorStateError(BuildCacheError):
    """A coordinator phase was requested out of order."""
