"""
Pytest configuration and shared fixtures for cargokit tests.
"""

import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from cargokit.core.process import ExecResult
from cargokit.core.registry import CratesRegistry
from tests.mocks import RecordingCacheStore, make_executable


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that need cargo and network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def cargo_bin(tmp_path) -> Path:
    """Directory holding a fake `cargo` executable, like ~/.cargo/bin."""
    bin_dir = tmp_path / "cargo" / "bin"
    make_executable(bin_dir, "cargo")
    return bin_dir


@pytest.fixture
def cache_store() -> RecordingCacheStore:
    """Cache store that always misses."""
    return RecordingCacheStore()


@pytest.fixture
def registry() -> Mock:
    """crates.io client that resolves every crate to 1.2.3."""
    mock = Mock(spec=CratesRegistry)
    mock.resolve_latest_version.return_value = "1.2.3"
    return mock


@pytest.fixture
def fake_cargo_install(cargo_bin):
    """
    Replace the cargo subprocess with a fake `cargo install`.

    The fake writes the requested binary into cargo's bin directory and
    records the arguments and working directory of every call.
    """
    calls = []

    def run(executable, args, options=None):
        args = list(args)
        calls.append({"executable": Path(executable), "args": args, "cwd": os.getcwd()})
        if "install" in args:
            make_executable(cargo_bin, args[-1])
        return ExecResult(exit_code=0)

    with patch("cargokit.tools.cargo.run_command", side_effect=run) as mock_run:
        mock_run.calls = calls
        yield mock_run


@pytest.fixture
def isolated_home(tmp_path, monkeypatch) -> Path:
    """Create isolated home directory and clear CARGOKIT_* variables."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    for name in ("CARGOKIT_CACHE_DIR", "CARGOKIT_NAMESPACE", "CARGOKIT_PRIMARY_KEY"):
        monkeypatch.delenv(name, raising=False)

    return fake_home
