"""
Core functionality for cargokit.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    CargoKitError,
    ConfigurationError,
    ResolutionError,
    ToolError,
    NotInstalledError,
    InstallCommandError,
    ProcessExecutionError,
    CacheError,
    CacheValidationError,
    CacheReservationConflict,
    CacheOtherError,
)

from .process import ExecOptions, ExecResult, run_command

from .registry import CratesRegistry, resolve_latest_version

__all__ = [
    "CargoKitError",
    "ConfigurationError",
    "ResolutionError",
    "ToolError",
    "NotInstalledError",
    "InstallCommandError",
    "ProcessExecutionError",
    "CacheError",
    "CacheValidationError",
    "CacheReservationConflict",
    "CacheOtherError",
    "ExecOptions",
    "ExecResult",
    "run_command",
    "CratesRegistry",
    "resolve_latest_version",
]
