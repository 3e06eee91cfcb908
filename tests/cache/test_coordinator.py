"""Tests for the cache coordinator."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from buildcache.cache.coordinator import CacheCoordinator
from buildcache.cache.models import CacheContext
from buildcache.cache.models import CacheStatus
from buildcache.cache.models import CoordinatorState
from buildcache.cache.signature_store import read_directory_set
from buildcache.cache.signature_store import read_signature
from buildcache.cache.signature_store import write_signature
from buildcache.errors import ArchiveError
from buildcache.errors import CoordinatorStateError
from buildcache.errors import SignatureWriteError
from buildcache.telemetry import CACHE_STATUS_METRIC
from buildcache.telemetry import INSTALL_DURATION_METRIC
from buildcache.telemetry import RecordingTelemetrySink


@pytest.fixture
def telemetry() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def context(working_root: Path, cache_root: Path) -> CacheContext:
    return CacheContext(working_root=working_root, cache_root=cache_root, directories=["node_modules"])


@pytest.fixture
def coordinator(context: CacheContext, telemetry: RecordingTelemetrySink) -> CacheCoordinator:
    return CacheCoordinator(context, telemetry=telemetry)


@pytest.mark.unit
class TestConstruction:
    """Test coordinator construction."""

    def test_default_directories(self, working_root: Path, cache_root: Path) -> None:
        """Test the default directory set is node_modules."""
        context = CacheContext(working_root=working_root, cache_root=cache_root)
        assert context.directories == ["node_modules"]

    def test_starts_idle(self, coordinator: CacheCoordinator) -> None:
        """Test a new coordinator is idle."""
        assert coordinator.state == CoordinatorState.IDLE

    @pytest.mark.parametrize("cache_subpath", ["", "nested/cache"])
    def test_rejects_cache_inside_working_tree(self, working_root: Path, cache_subpath: str) -> None:
        """Test a cache root overlapping the working tree is refused."""
        context = CacheContext(working_root=working_root, cache_root=working_root / cache_subpath)
        with pytest.raises(ValueError, match="must not overlap"):
            CacheCoordinator(context)

    def test_rejects_working_tree_inside_cache(self, cache_root: Path) -> None:
        """Test a working tree nested in the cache root is refused."""
        context = CacheContext(working_root=cache_root / "build", cache_root=cache_root)
        with pytest.raises(ValueError, match="must not overlap"):
            CacheCoordinator(context)


@pytest.mark.unit
class TestRestorePhase:
    """Test the restore phase."""

    def test_no_cache_skips_restore(self, coordinator: CacheCoordinator, telemetry: RecordingTelemetrySink) -> None:
        """Test a first build skips restore and counts no-cache."""
        result = coordinator.restore("sig")

        assert result.status == CacheStatus.NO_CACHE
        assert result.restored == []
        assert result.skipped == ["node_modules"]
        assert coordinator.state == CoordinatorState.SKIPPING_RESTORE
        assert telemetry.counters(CACHE_STATUS_METRIC) == [{"status": "no-cache"}]

    def test_valid_restores(
        self, coordinator: CacheCoordinator, cache_root: Path, working_root: Path, write_tree, snapshot
    ) -> None:
        """Test a valid cache is restored into the working tree."""
        write_signature(cache_root, "sig")
        write_tree(cache_root, {"node_modules/a.js": "a"})

        result = coordinator.restore("sig")

        assert result.status == CacheStatus.VALID
        assert result.restored == ["node_modules"]
        assert result.restored_count == 1
        assert coordinator.state == CoordinatorState.RESTORING
        assert snapshot(working_root / "node_modules") == {"a.js": b"a"}

    def test_new_signature_reports_directories(
        self, coordinator: CacheCoordinator, cache_root: Path, working_root: Path, write_tree, caplog
    ) -> None:
        """Test a stale cache is not restored and each directory is reported."""
        write_signature(cache_root, "old")
        write_tree(cache_root, {"node_modules/a.js": "a"})

        with caplog.at_level(logging.INFO, logger="buildcache.cache.coordinator"):
            result = coordinator.restore("new")

        assert result.status == CacheStatus.NEW_SIGNATURE
        assert result.skipped == ["node_modules"]
        assert not (working_root / "node_modules").exists()
        assert "- node_modules (not restored)" in caplog.messages

    def test_disabled_skips_restore(self, working_root: Path, cache_root: Path, write_tree) -> None:
        """Test a disabled cache is never restored, even when valid."""
        write_signature(cache_root, "sig")
        write_tree(cache_root, {"node_modules/a.js": "a"})
        coordinator = CacheCoordinator(CacheContext(working_root=working_root, cache_root=cache_root, enabled=False))

        result = coordinator.restore("sig")

        assert result.status == CacheStatus.DISABLED
        assert not (working_root / "node_modules").exists()

    def test_restore_failure_is_terminal(self, coordinator: CacheCoordinator, cache_root: Path, write_tree) -> None:
        """Test an archive error fails the coordinator and propagates."""
        write_signature(cache_root, "sig")
        write_tree(cache_root, {"node_modules/a.js": "a"})

        with patch.object(coordinator.archiver, "restore", side_effect=ArchiveError("node_modules", "restore", "io")):
            with pytest.raises(ArchiveError, match="node_modules"):
                coordinator.restore("sig")

        assert coordinator.state == CoordinatorState.FAILED
        with pytest.raises(CoordinatorStateError):
            coordinator.save()

    def test_restore_twice_rejected(self, coordinator: CacheCoordinator) -> None:
        """Test restore only runs from idle."""
        coordinator.restore("sig")
        with pytest.raises(CoordinatorStateError):
            coordinator.restore("sig")


@pytest.mark.unit
class TestSavePhase:
    """Test the save phase."""

    def test_save_writes_directories_and_records(
        self, coordinator: CacheCoordinator, cache_root: Path, working_root: Path, write_tree, snapshot
    ) -> None:
        """Test save archives the directory set and writes both records."""
        coordinator.restore("sig")
        write_tree(working_root, {"node_modules/a.js": "a"})

        result = coordinator.save()

        assert result.saved == ["node_modules"]
        assert result.fingerprint == "sig"
        assert result.cleared is True
        assert coordinator.state == CoordinatorState.IDLE
        assert read_signature(cache_root) == "sig"
        assert read_directory_set(cache_root) == ["node_modules"]
        assert snapshot(cache_root / "node_modules") == {"a.js": b"a"}

    def test_save_clears_orphans(self, working_root: Path, cache_root: Path, write_tree) -> None:
        """Test directories dropped from the set do not survive a save."""
        write_tree(cache_root, {"bower_components/old.js": "old", "stray.txt": "x"})
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator = CacheCoordinator(CacheContext(working_root=working_root, cache_root=cache_root))

        coordinator.save("sig")

        top_level = {p.name for p in cache_root.iterdir()}
        assert top_level == {"node_modules", ".buildcache"}

    def test_disabled_save_clears_without_saving(self, working_root: Path, cache_root: Path, write_tree) -> None:
        """Test a disabled cache is cleared and nothing new is written."""
        write_signature(cache_root, "old")
        write_tree(cache_root, {"node_modules/old.js": "old"})
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator = CacheCoordinator(CacheContext(working_root=working_root, cache_root=cache_root, enabled=False))
        coordinator.restore("sig")

        result = coordinator.save()

        assert result.saved == []
        assert result.cleared is True
        assert list(cache_root.iterdir()) == []
        assert read_signature(cache_root) is None

    def test_save_reports_missing_directories(
        self, working_root: Path, cache_root: Path, write_tree
    ) -> None:
        """Test directories absent from the working tree are reported as skipped."""
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator = CacheCoordinator(
            CacheContext(working_root=working_root, cache_root=cache_root, directories=["node_modules", "bower_components"])
        )

        result = coordinator.save("sig")

        assert result.saved == ["node_modules"]
        assert result.skipped == ["bower_components"]
        assert result.saved_count == 1

    def test_save_without_fingerprint_rejected(self, coordinator: CacheCoordinator) -> None:
        """Test save needs a fingerprint from restore or the caller."""
        with pytest.raises(CoordinatorStateError, match="No fingerprint"):
            coordinator.save()

    def test_signature_write_failure_is_terminal(
        self, coordinator: CacheCoordinator, working_root: Path, write_tree
    ) -> None:
        """Test a failed record write fails the coordinator."""
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator.restore("sig")

        with patch.object(coordinator.signatures, "write", side_effect=SignatureWriteError("read-only")):
            with pytest.raises(SignatureWriteError):
                coordinator.save()

        assert coordinator.state == CoordinatorState.FAILED


@pytest.mark.unit
class TestRun:
    """Test the full restore/install/save sequence."""

    def test_run_times_install(self, coordinator: CacheCoordinator, telemetry: RecordingTelemetrySink) -> None:
        """Test the install duration is reported tagged by status."""
        calls = []

        restored, saved = coordinator.run("sig", lambda: calls.append("install"))

        assert calls == ["install"]
        assert restored.status == CacheStatus.NO_CACHE
        timings = telemetry.timings(INSTALL_DURATION_METRIC)
        assert len(timings) == 1
        assert timings[0].tags == {"status": "no-cache"}
        assert timings[0].value >= 0

    def test_install_failure_skips_save(
        self, coordinator: CacheCoordinator, cache_root: Path, telemetry: RecordingTelemetrySink
    ) -> None:
        """Test a failed install propagates and leaves the cache untouched."""
        write_signature(cache_root, "old")

        def install() -> None:
            raise RuntimeError("npm install failed")

        with pytest.raises(RuntimeError, match="npm install failed"):
            coordinator.run("sig", install)

        assert read_signature(cache_root) == "old"
        assert coordinator.state == CoordinatorState.FAILED
        assert telemetry.timings(INSTALL_DURATION_METRIC) == []


@pytest.mark.unit
class TestExplicitFingerprint:
    """Test the fingerprint passed to save."""

    def test_empty_fingerprint_does_not_fall_back(
        self, coordinator: CacheCoordinator, cache_root: Path, working_root: Path, write_tree
    ) -> None:
        """Test an empty fingerprint is rejected instead of replaced by the restore one."""
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator.restore("sig")

        with pytest.raises(CoordinatorStateError, match="empty fingerprint"):
            coordinator.save("")

        assert read_signature(cache_root) is None
        assert not (cache_root / "node_modules").exists()

    def test_explicit_fingerprint_overrides_restore(
        self, coordinator: CacheCoordinator, cache_root: Path, working_root: Path, write_tree
    ) -> None:
        """Test a fingerprint passed to save is recorded instead of the restore one."""
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator.restore("old")

        result = coordinator.save("new")

        assert result.fingerprint == "new"
        assert read_signature(cache_root) == "new"


@pytest.mark.unit
class TestResultSerialization:
    """Test restore and save results dump with camelCase keys."""

    def test_restore_result_camel_case(self, coordinator: CacheCoordinator) -> None:
        """Test the restore result dumps camelCase keys including the count."""
        data = coordinator.restore("sig").model_dump(by_alias=True, mode="json")

        assert data == {
            "status": "no-cache",
            "fingerprint": "sig",
            "restored": [],
            "skipped": ["node_modules"],
            "restoredCount": 0,
        }

    def test_save_result_camel_case(self, coordinator: CacheCoordinator, working_root: Path, write_tree) -> None:
        """Test the save result dumps camelCase keys including the count."""
        write_tree(working_root, {"node_modules/a.js": "a"})
        coordinator.restore("sig")

        data = coordinator.save().model_dump(by_alias=True, mode="json")

        assert data["savedCount"] == 1
        assert data["saved"] == ["node_modules"]
        assert data["cleared"] is True

    def test_default_dump_uses_field_names(self, coordinator: CacheCoordinator) -> None:
        """Test a dump without aliases keeps the snake_case names."""
        data = coordinator.restore("sig").model_dump()

        assert data["restored_count"] == 0
        assert "restoredCount" not in data
