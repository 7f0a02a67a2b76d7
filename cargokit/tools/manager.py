"""
Tool managers: locate, install or reuse a cargo tool.

A single `ToolManager` class covers every tool; the differences between
tools live in a `ToolConfig`. Two configurations ship with cargokit:

- CARGO_HACK: cargo-hack, a cargo sub-command run as `cargo hack ...`
- CROSS: cross, a standalone cross-compilation helper

Example Usage:
-------------
    from cargokit.tools.manager import ToolManager, InstallOptions, CROSS

    manager = ToolManager(CROSS, cache_store)
    cross = manager.get_or_install(InstallOptions(toolchain='nightly'))
    exit_code = cross.call(['build', '--target', 'aarch64-unknown-linux-gnu'])
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from cargokit.cache.store import CacheStore
from cargokit.core.exceptions import NotInstalledError
from cargokit.core.filesystem import find_executable
from cargokit.core.registry import CratesRegistry
from cargokit.tools.cargo import Cargo
from cargokit.tools.handle import ToolHandle
from cargokit.tools.installer import DEFAULT_NAMESPACE, InstallRequest, ToolInstaller
from cargokit.tools.toolchain import format_toolchain_arg

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class ToolConfig:
    """
    Static description of a managed tool.

    Attributes:
        name: Executable name
        crate: Crate that provides the executable (default: name)
        subcommand: Cargo sub-command implemented by the tool; when set the
            tool is invoked through cargo instead of directly
        neutral_build_dir: Build from a directory without toolchain overrides
    """

    name: str
    crate: Optional[str] = None
    subcommand: Optional[str] = None
    neutral_build_dir: bool = True

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name cannot be empty")

    @property
    def crate_name(self) -> str:
        return self.crate or self.name


CARGO_HACK = ToolConfig(name="cargo-hack", subcommand="hack")
CROSS = ToolConfig(name="cross")

TOOLS: Dict[str, ToolConfig] = {tool.name: tool for tool in (CARGO_HACK, CROSS)}


@dataclass
class InstallOptions:
    """
    Caller-chosen options for installing and running a tool.

    Attributes:
        toolchain: Toolchain used when running the tool (not when building it)
        version: Version to install, or 'latest'
        primary_key: Primary cache key, or 'no-cache' to disable caching
        restore_keys: Fallback cache keys, tried in order
    """

    toolchain: Optional[str] = None
    version: Optional[str] = None
    primary_key: Optional[str] = None
    restore_keys: List[str] = field(default_factory=list)


# =============================================================================
# Lookup results
# =============================================================================


@dataclass(frozen=True)
class Found:
    handle: ToolHandle


@dataclass(frozen=True)
class NotFound:
    reason: str


LookupResult = Union[Found, NotFound]


# =============================================================================
# Manager
# =============================================================================


class ToolManager:
    """
    Locate, install or reuse one cargo tool.

    Attributes:
        config: Tool description
        cache_store: Backing store for installed binaries
        registry: crates.io client used to resolve 'latest'
        namespace: Prefix of default primary cache keys
        locked: Pass --locked to `cargo install`
        search_paths: Directories searched instead of PATH (None: PATH)
    """

    def __init__(
        self,
        config: ToolConfig,
        cache_store: CacheStore,
        registry: Optional[CratesRegistry] = None,
        namespace: str = DEFAULT_NAMESPACE,
        locked: bool = False,
        search_paths: Optional[List[Path]] = None,
    ):
        self.config = config
        self.cache_store = cache_store
        self.registry = registry
        self.namespace = namespace
        self.locked = locked
        self.search_paths = search_paths

    def _cargo_path(self) -> Optional[Path]:
        if not self.config.subcommand:
            return None
        return find_executable("cargo", self.search_paths)

    def _handle(self, path: Path, toolchain: Optional[str]) -> ToolHandle:
        return ToolHandle(
            name=self.config.name,
            path=path,
            toolchain_arg=format_toolchain_arg(toolchain),
            subcommand=self.config.subcommand,
            cargo_path=self._cargo_path(),
        )

    def lookup(self, toolchain: Optional[str] = None) -> LookupResult:
        """
        Look for the tool on the search path. Never installs.

        Args:
            toolchain: Toolchain the returned handle runs the tool with

        Returns:
            Found with a handle, or NotFound with the reason
        """
        path = find_executable(self.config.name, self.search_paths)
        if path is None:
            return NotFound(f"{self.config.name} is not on the search path")

        logger.debug(f"Found {self.config.name} at {path}")
        return Found(self._handle(path, toolchain))

    def get(self, toolchain: Optional[str] = None) -> ToolHandle:
        """
        Get the installed tool.

        Raises:
            NotInstalledError: If the tool is not on the search path
        """
        result = self.lookup(toolchain)
        if isinstance(result, NotFound):
            raise NotInstalledError(self.config.name)
        return result.handle

    def installer(self) -> ToolInstaller:
        """Build an installer around the system cargo (default toolchain)."""
        cargo = Cargo.get(search_paths=self.search_paths)
        return ToolInstaller(
            cargo,
            self.cache_store,
            registry=self.registry,
            namespace=self.namespace,
            locked=self.locked,
            neutral_build_dir=self.config.neutral_build_dir,
        )

    def install(self, options: Optional[InstallOptions] = None) -> ToolHandle:
        """
        Install the tool, ignoring any copy already on the search path.

        Raises:
            NotInstalledError: If cargo itself is missing
            ResolutionError: If the version cannot be resolved
            InstallCommandError: If `cargo install` fails
            CacheValidationError: If the cache request is malformed
        """
        options = options or InstallOptions()
        request = InstallRequest(
            tool_name=self.config.crate_name,
            version=options.version,
            primary_key=options.primary_key,
            restore_keys=tuple(options.restore_keys),
            binary_name=self.config.name,
        )

        path = self.installer().install(request)
        return self._handle(path, options.toolchain)

    def get_or_install(self, options: Optional[InstallOptions] = None) -> ToolHandle:
        """
        Reuse the installed tool, or install it when it is missing.
        """
        options = options or InstallOptions()

        result = self.lookup(options.toolchain)
        if isinstance(result, Found):
            return result.handle

        logger.debug(result.reason)
        return self.install(options)


def get_tool_config(name: str) -> ToolConfig:
    """
    Get the configuration of a known tool.

    Raises:
        KeyError: If the tool is unknown
    """
    try:
        return TOOLS[name]
    except KeyError:
        raise KeyError(
            f"Unknown tool '{name}'. Available: {', '.join(sorted(TOOLS))}"
        ) from None
