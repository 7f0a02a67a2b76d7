"""
Centralized exception hierarchy for cargokit.

This module defines all custom exceptions used across the codebase
so that every layer raises and catches the same types.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class CargoKitError(Exception):
    """Base exception for all cargokit errors."""

    pass


class ConfigurationError(CargoKitError):
    """Raised when the configuration file or environment is invalid."""

    pass


# ============================================================================
# Registry Exceptions
# ============================================================================


class ResolutionError(CargoKitError):
    """Raised when the latest version of a crate cannot be resolved."""

    def __init__(self, crate: str, reason: str):
        self.crate = crate
        self.reason = reason
        super().__init__(f"Unable to fetch latest version of '{crate}': {reason}")


# ============================================================================
# Tool Exceptions
# ============================================================================


class ToolError(CargoKitError):
    """Base exception for tool lookup and installation errors."""

    pass


class NotInstalledError(ToolError):
    """Raised when a tool cannot be found on the search path."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unable to locate executable file: {tool_name}")


class InstallCommandError(ToolError):
    """Raised when the install command of a tool exits with a non-zero code."""

    def __init__(self, tool_name: str, version: str, exit_code: int):
        self.tool_name = tool_name
        self.version = version
        self.exit_code = exit_code
        super().__init__(
            f"Installing '{tool_name}' version {version} failed "
            f"with exit code {exit_code}"
        )


class ProcessExecutionError(CargoKitError):
    """Raised when a child process fails according to its exec options."""

    def __init__(self, command: str, exit_code: Optional[int], reason: str):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"The process '{command}' failed: {reason}")


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(CargoKitError):
    """Base exception for cache store errors."""

    pass


class CacheValidationError(CacheError):
    """Raised when a cache request is malformed (bad key or paths)."""

    pass


class CacheReservationConflict(CacheError):
    """Raised when another run already reserved the cache key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"Unable to reserve cache with key {key}, "
            "another job may be creating this cache."
        )


class CacheOtherError(CacheError):
    """Raised for any other cache backing store failure."""

    pass
