"""
Unit tests for the cached tool installer.

The cargo subprocess is replaced by a fake `cargo install` and the cache
store by a recording double, so the tests observe which keys are computed
and which steps run.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from cargokit.core.exceptions import (
    CacheOtherError,
    CacheReservationConflict,
    CacheValidationError,
    InstallCommandError,
    ResolutionError,
)
from cargokit.core.filesystem import neutral_directory
from cargokit.core.process import ExecResult
from cargokit.cache.local import LocalCacheStore
from cargokit.tools.cargo import Cargo
from cargokit.tools.installer import (
    CacheKeys,
    InstallRequest,
    ToolInstaller,
    compute_cache_keys,
    default_primary_key,
)
from tests.mocks import RecordingCacheStore


@pytest.fixture
def cargo(cargo_bin):
    return Cargo(cargo_bin / "cargo")


@pytest.fixture
def installer(cargo, cache_store, registry):
    return ToolInstaller(cargo, cache_store, registry=registry)


def install_calls(fake_cargo_install):
    return [c for c in fake_cargo_install.calls if "install" in c["args"]]


# =============================================================================
# Cache keys
# =============================================================================


class TestCacheKeys:
    """Test cache key derivation."""

    def test_keys_are_deterministic(self):
        """Identical inputs always give identical keys."""
        first = compute_cache_keys("cross", "0.2.5", "ci", ["a", "b"])
        second = compute_cache_keys("cross", "0.2.5", "ci", ["a", "b"])

        assert first == second

    def test_key_format(self):
        """Keys combine tool, version and caller key."""
        keys = compute_cache_keys("cross", "0.2.5", "ci", ["ci-old", "any"])

        assert keys == CacheKeys(
            primary="cross-0.2.5-ci",
            restore=("cross-0.2.5-ci-old", "cross-0.2.5-any"),
        )

    def test_different_versions_give_different_keys(self):
        """Each concrete version gets its own cache slot."""
        old = compute_cache_keys("cross", "0.2.4", "ci")
        new = compute_cache_keys("cross", "0.2.5", "ci")

        assert old.primary != new.primary

    def test_default_primary_key(self):
        """Default primary key is namespace plus tool name."""
        assert default_primary_key("cross") == "cargokit-cross"
        assert default_primary_key("cross", "my-ci") == "my-ci-cross"


# =============================================================================
# Version resolution
# =============================================================================


class TestVersionResolution:
    """Test when the registry is consulted."""

    @pytest.mark.parametrize("version", [None, "latest"])
    def test_latest_resolves_version(
        self, installer, registry, cache_store, fake_cargo_install, version
    ):
        """Unspecified or 'latest' versions are resolved before keying."""
        installer.install(InstallRequest("cross", version=version, primary_key="ci"))

        registry.resolve_latest_version.assert_called_once_with("cross")
        _, primary_key, _ = cache_store.restore_calls[0]
        assert primary_key == "cross-1.2.3-ci"
        assert "latest" not in primary_key

    def test_explicit_version_skips_registry(
        self, installer, registry, cache_store, fake_cargo_install
    ):
        """An explicit version is used as is."""
        installer.install(InstallRequest("cross", version="0.2.5"))

        registry.resolve_latest_version.assert_not_called()
        assert cache_store.restore_calls[0][1] == "cross-0.2.5-cargokit-cross"

    def test_resolution_failure_aborts(
        self, installer, registry, cache_store, fake_cargo_install
    ):
        """A failed lookup stops before any cache or install step."""
        registry.resolve_latest_version.side_effect = ResolutionError("cross", "down")

        with pytest.raises(ResolutionError):
            installer.install(InstallRequest("cross"))

        assert cache_store.restore_calls == []
        assert install_calls(fake_cargo_install) == []


# =============================================================================
# Cache restore and install
# =============================================================================


class TestInstall:
    """Test the restore / install / save pipeline."""

    def test_cache_hit_skips_install(
        self, cargo, cargo_bin, registry, fake_cargo_install
    ):
        """A restored binary is returned without running cargo install."""
        store = RecordingCacheStore(hit="cross-1.2.3-cargokit-cross")
        installer = ToolInstaller(cargo, store, registry=registry)

        path = installer.install(InstallRequest("cross"))

        assert path == cargo_bin / "cross"
        assert install_calls(fake_cargo_install) == []
        assert store.save_calls == []

    def test_cache_miss_installs_and_saves(
        self, installer, cargo_bin, cache_store, fake_cargo_install
    ):
        """A miss runs exactly one install and one save."""
        path = installer.install(InstallRequest("cross", primary_key="ci"))

        assert path == cargo_bin / "cross"
        assert path.exists()
        assert len(install_calls(fake_cargo_install)) == 1
        assert cache_store.save_calls == [([cargo_bin / "cross"], "cross-1.2.3-ci")]

    def test_restore_uses_artifact_paths_and_restore_keys(
        self, installer, cargo_bin, cache_store, fake_cargo_install
    ):
        """Restore gets the binary path and the derived fallback keys."""
        installer.install(
            InstallRequest("cross", primary_key="ci", restore_keys=("ci-old",))
        )

        assert cache_store.restore_calls == [
            ([cargo_bin / "cross"], "cross-1.2.3-ci", ("cross-1.2.3-ci-old",))
        ]

    def test_no_cache_bypasses_store(self, installer, cache_store, fake_cargo_install):
        """'no-cache' disables both restore and save."""
        installer.install(InstallRequest("cross", primary_key="no-cache"))

        assert cache_store.restore_calls == []
        assert cache_store.save_calls == []
        assert len(install_calls(fake_cargo_install)) == 1

    def test_install_arguments(self, installer, fake_cargo_install):
        """cargo install is called with the resolved version."""
        installer.install(InstallRequest("cross"))

        assert install_calls(fake_cargo_install)[0]["args"] == [
            "install",
            "--version",
            "1.2.3",
            "cross",
        ]

    def test_locked_install(self, cargo, cache_store, registry, fake_cargo_install):
        """--locked is passed when configured."""
        installer = ToolInstaller(cargo, cache_store, registry=registry, locked=True)

        installer.install(InstallRequest("cross"))

        assert "--locked" in install_calls(fake_cargo_install)[0]["args"]

    def test_binary_name_differs_from_crate(
        self, installer, cargo_bin, cache_store, fake_cargo_install
    ):
        """The artifact path follows the binary name."""
        request = InstallRequest("cross", binary_name="cross-util")

        assert installer.artifact_paths(request) == [cargo_bin / "cross-util"]


# =============================================================================
# Working directory
# =============================================================================


class TestNeutralBuildDirectory:
    """Test the working directory used by cargo install."""

    def test_install_runs_in_neutral_directory(self, installer, fake_cargo_install):
        """cargo install runs from the temp dir and cwd is restored."""
        before = os.getcwd()

        installer.install(InstallRequest("cross"))

        call = install_calls(fake_cargo_install)[0]
        assert Path(call["cwd"]).resolve() == neutral_directory().resolve()
        assert os.getcwd() == before

    def test_cwd_restored_when_install_fails(self, installer, cache_store):
        """A failing install still restores the working directory."""
        before = os.getcwd()

        with patch(
            "cargokit.tools.cargo.run_command", return_value=ExecResult(exit_code=101)
        ):
            with pytest.raises(InstallCommandError) as exc_info:
                installer.install(InstallRequest("cross"))

        assert exc_info.value.exit_code == 101
        assert os.getcwd() == before
        assert cache_store.save_calls == []

    def test_cwd_restored_when_install_raises(self, installer):
        """An exception from the subprocess layer also restores cwd."""
        before = os.getcwd()

        with patch("cargokit.tools.cargo.run_command", side_effect=OSError("boom")):
            with pytest.raises(OSError):
                installer.install(InstallRequest("cross"))

        assert os.getcwd() == before

    def test_neutral_directory_can_be_disabled(
        self, cargo, cache_store, registry, fake_cargo_install
    ):
        """Without a neutral build dir cargo runs from the current directory."""
        installer = ToolInstaller(
            cargo, cache_store, registry=registry, neutral_build_dir=False
        )
        before = os.getcwd()

        installer.install(InstallRequest("cross"))

        assert install_calls(fake_cargo_install)[0]["cwd"] == before


# =============================================================================
# Cache save failures
# =============================================================================


class TestSaveFailures:
    """Test classification of cache save failures."""

    @pytest.mark.parametrize(
        "error",
        [
            CacheReservationConflict("cross-1.2.3-cargokit-cross"),
            CacheOtherError("disk full"),
            RuntimeError("backend exploded"),
        ],
    )
    def test_non_fatal_save_errors(
        self, cargo, cargo_bin, registry, fake_cargo_install, error
    ):
        """Reservation conflicts and other failures do not fail the install."""
        store = RecordingCacheStore(save_error=error)
        installer = ToolInstaller(cargo, store, registry=registry)

        path = installer.install(InstallRequest("cross"))

        assert path == cargo_bin / "cross"
        assert path.exists()
        assert len(store.save_calls) == 1

    def test_reservation_conflict_logged_as_info(
        self, cargo, registry, fake_cargo_install, caplog
    ):
        """A reservation conflict is reported, not warned about."""
        store = RecordingCacheStore(save_error=CacheReservationConflict("k"))
        installer = ToolInstaller(cargo, store, registry=registry)

        with caplog.at_level("INFO", logger="cargokit.tools.installer"):
            installer.install(InstallRequest("cross"))

        records = [r for r in caplog.records if "Unable to reserve" in r.getMessage()]
        assert records and records[0].levelname == "INFO"

    def test_other_error_logged_as_warning(
        self, cargo, registry, fake_cargo_install, caplog
    ):
        store = RecordingCacheStore(save_error=CacheOtherError("disk full"))
        installer = ToolInstaller(cargo, store, registry=registry)

        with caplog.at_level("INFO", logger="cargokit.tools.installer"):
            installer.install(InstallRequest("cross"))

        assert any(
            r.levelname == "WARNING" and "disk full" in r.getMessage()
            for r in caplog.records
        )

    def test_validation_error_propagates(self, cargo, registry, fake_cargo_install):
        """Malformed cache requests are programmer errors and propagate."""
        store = RecordingCacheStore(save_error=CacheValidationError("bad key"))
        installer = ToolInstaller(cargo, store, registry=registry)

        with pytest.raises(CacheValidationError):
            installer.install(InstallRequest("cross"))


# =============================================================================
# Cache restore failures
# =============================================================================


class TestRestoreFailures:
    """Test that a failing cache never fails an otherwise good install."""

    def test_store_failure_treated_as_miss(
        self, cargo, cargo_bin, registry, fake_cargo_install
    ):
        """A broken store falls through to cargo install."""
        store = RecordingCacheStore(restore_error=CacheOtherError("lock timeout"))
        installer = ToolInstaller(cargo, store, registry=registry)

        path = installer.install(InstallRequest("cross"))

        assert path == cargo_bin / "cross"
        assert len(install_calls(fake_cargo_install)) == 1
        assert len(store.save_calls) == 1

    def test_store_failure_logged_as_warning(
        self, cargo, registry, fake_cargo_install, caplog
    ):
        store = RecordingCacheStore(restore_error=CacheOtherError("lock timeout"))
        installer = ToolInstaller(cargo, store, registry=registry)

        with caplog.at_level("INFO", logger="cargokit.tools.installer"):
            installer.install(InstallRequest("cross"))

        assert any(
            r.levelname == "WARNING" and "lock timeout" in r.getMessage()
            for r in caplog.records
        )

    def test_restore_validation_error_propagates(
        self, cargo, registry, fake_cargo_install
    ):
        store = RecordingCacheStore(restore_error=CacheValidationError("bad key"))
        installer = ToolInstaller(cargo, store, registry=registry)

        with pytest.raises(CacheValidationError):
            installer.install(InstallRequest("cross"))

        assert install_calls(fake_cargo_install) == []

    def test_corrupt_cache_index(
        self, cargo, cargo_bin, registry, fake_cargo_install, tmp_path
    ):
        """An unreadable local index does not stop the install."""
        store = LocalCacheStore(tmp_path / "cache")
        store.index_path.parent.mkdir(parents=True)
        store.index_path.write_text("{not json")
        installer = ToolInstaller(cargo, store, registry=registry)

        path = installer.install(InstallRequest("cross"))

        assert path == cargo_bin / "cross"
        assert path.exists()

    def test_binary_installed_elsewhere(self, cargo, cargo_bin, registry, tmp_path):
        """cargo may install outside its bin dir; the save is skipped, not fatal."""
        store = LocalCacheStore(tmp_path / "cache")
        installer = ToolInstaller(cargo, store, registry=registry)

        with patch(
            "cargokit.tools.cargo.run_command", return_value=ExecResult(exit_code=0)
        ):
            path = installer.install(InstallRequest("cross"))

        assert path == cargo_bin / "cross"
        assert store.keys() == []
