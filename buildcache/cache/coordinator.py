"""Cache coordinator for one build.

Sequences the two cache phases around the externally-run install step:

    restore: resolve status -> restore directories (only when valid)
    save:    clear cache root -> save directories -> write records

Status resolution never fails. Archive failures move the coordinator to
FAILED and propagate, which aborts the build.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager

from buildcache.errors import ArchiveError
from buildcache.errors import CoordinatorStateError
from buildcache.errors import SignatureWriteError
from buildcache.telemetry import CACHE_STATUS_METRIC
from buildcache.telemetry import INSTALL_DURATION_METRIC
from buildcache.telemetry import LoggingTelemetrySink
from buildcache.telemetry import TelemetrySink

from .archiver import DirectoryArchiver
from .models import CacheContext
from .models import CacheStatus
from .models import CoordinatorState
from .models import RestoreResult
from .models import SaveResult
from .signature_store import SignatureStore
from .status import resolve

logger = logging.getLogger(__name__)

_SKIP_NOTICES = {
    CacheStatus.DISABLED: "Caching disabled, skipping cache restore",
    CacheStatus.NO_CACHE: "No cache found, skipping cache restore",
    CacheStatus.NEW_SIGNATURE: "Toolchain or cached directories changed, skipping cache restore",
}


class CacheCoordinator:
    """Runs the restore and save phases for one build."""

    def __init__(
        self,
        context: CacheContext,
        telemetry: TelemetrySink | None = None,
        archiver: DirectoryArchiver | None = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            context: Working root, cache root, directory set and flags
            telemetry: Metrics receiver (default: log at debug level)
            archiver: Directory archiver (default: built from context.hardlink)

        Raises:
            ValueError: If the cache root overlaps the working tree
        """
        working = context.working_root.resolve()
        cache = context.cache_root.resolve()
        if working == cache or cache.is_relative_to(working) or working.is_relative_to(cache):
            raise ValueError(f"Cache root {cache} must not overlap working root {working}")

        self.context = context
        self.telemetry = telemetry or LoggingTelemetrySink()
        self.archiver = archiver or DirectoryArchiver(hardlink=context.hardlink)
        self.signatures = SignatureStore(context.cache_root)
        self.state = CoordinatorState.IDLE
        self.status: CacheStatus | None = None
        self.fingerprint: str | None = None

    def _transition(self, state: CoordinatorState) -> None:
        logger.debug(f"Cache coordinator: {self.state.value} -> {state.value}")
        self.state = state

    def restore(self, fingerprint: str) -> RestoreResult:
        """Resolve the cache status and restore directories when valid.

        Args:
            fingerprint: Fingerprint of the live toolchain

        Returns:
            Restore result with status and restored/skipped directories

        Raises:
            CoordinatorStateError: If called outside the IDLE state
            ArchiveError: If a directory fails to restore
        """
        if self.state != CoordinatorState.IDLE:
            raise CoordinatorStateError(f"Cannot restore from state {self.state.value}")

        directories = self.context.directories
        self._transition(CoordinatorState.RESOLVING)
        status = resolve(self.context.cache_root, fingerprint, self.context.enabled, directories)
        self.status = status
        self.fingerprint = fingerprint
        self.telemetry.increment(CACHE_STATUS_METRIC, {"status": status.value})
        logger.info(f"Cache status: {status.value}")

        if status != CacheStatus.VALID:
            self._transition(CoordinatorState.SKIPPING_RESTORE)
            logger.info(_SKIP_NOTICES[status])
            if status == CacheStatus.NEW_SIGNATURE:
                for directory in directories:
                    logger.info(f"- {directory} (not restored)")
            return RestoreResult(status=status, fingerprint=fingerprint, skipped=list(directories))

        self._transition(CoordinatorState.RESTORING)
        try:
            restored = self.archiver.restore(self.context.cache_root, self.context.working_root, directories)
        except ArchiveError as e:
            self._transition(CoordinatorState.FAILED)
            logger.error(f"Unable to restore cached directory {e.path}: {e}")
            raise

        skipped = [d for d in directories if d not in restored]
        for directory in restored:
            logger.info(f"- {directory} (restored)")
        for directory in skipped:
            logger.info(f"- {directory} (not cached, skipping)")
        return RestoreResult(status=status, fingerprint=fingerprint, restored=restored, skipped=skipped)

    @contextmanager
    def time_install(self) -> Iterator[None]:
        """Time the install phase and report it tagged by cache status.

        Nothing is reported when the block raises.
        """
        started = time.monotonic()
        yield
        elapsed = time.monotonic() - started
        status = self.status.value if self.status else "unknown"
        self.telemetry.timing(INSTALL_DURATION_METRIC, elapsed, {"status": status})
        logger.debug(f"Install phase took {elapsed:.2f}s (cache {status})")

    def save(self, fingerprint: str | None = None) -> SaveResult:
        """Clear the cache root and, unless disabled, save the directory set.

        Args:
            fingerprint: Fingerprint to record (default: the one from restore)

        Returns:
            Save result with saved/skipped directories

        Raises:
            CoordinatorStateError: If called after a failure, or without a
                non-empty fingerprint
            ArchiveError: If clearing or copying fails
            SignatureWriteError: If the records cannot be written
        """
        if self.state in (CoordinatorState.FAILED, CoordinatorState.RESOLVING, CoordinatorState.SAVING):
            raise CoordinatorStateError(f"Cannot save from state {self.state.value}")

        fingerprint = fingerprint if fingerprint is not None else self.fingerprint
        if fingerprint is None:
            raise CoordinatorStateError("No fingerprint to save; run restore first or pass one")
        if not fingerprint:
            raise CoordinatorStateError("Cannot save an empty fingerprint")

        directories = self.context.directories
        self._transition(CoordinatorState.SAVING)
        try:
            self.archiver.clear(self.context.cache_root)

            if not self.context.enabled:
                logger.info("Caching disabled, cache cleared and not saved")
                self._transition(CoordinatorState.IDLE)
                return SaveResult(status=self.status, cleared=True)

            saved = self.archiver.save(self.context.working_root, self.context.cache_root, directories)
            self.signatures.write(fingerprint)
            self.signatures.write_directories(directories)
        except (ArchiveError, SignatureWriteError) as e:
            self._transition(CoordinatorState.FAILED)
            logger.error(f"Unable to save build cache: {e}")
            raise

        skipped = [d for d in directories if d not in saved]
        logger.info("Caching build directories")
        for directory in saved:
            logger.info(f"- {directory}")
        for directory in skipped:
            logger.info(f"- {directory} (nothing to cache)")

        self._transition(CoordinatorState.IDLE)
        return SaveResult(status=self.status, fingerprint=fingerprint, saved=saved, skipped=skipped, cleared=True)

    def run(self, fingerprint: str, install: Callable[[], object]) -> tuple[RestoreResult, SaveResult]:
        """Restore, run the install step, then save.

        Args:
            fingerprint: Fingerprint of the live toolchain
            install: Install/build step; save only happens if it returns

        Returns:
            Restore and save results

        Raises:
            Whatever install raises (the cache is left untouched), or the
            archive errors documented on restore/save
        """
        restored = self.restore(fingerprint)
        try:
            with self.time_install():
                install()
        except Exception:
            self._transition(CoordinatorState.FAILED)
            logger.info("Build step failed, not saving cache")
            raise
        saved = self.save(fingerprint)
        return restored, saved
