"""
Cargo tool acquisition for cargokit.

Available Components:
--------------------
- ToolManager: get / install / get_or_install for one tool
- ToolConfig: Static tool description (CARGO_HACK, CROSS)
- InstallOptions: Caller-chosen toolchain, version and cache keys
- ToolInstaller: Cached `cargo install` pipeline
- ToolHandle: Callable reference to an installed tool
- Cargo: The host build tool
- format_toolchain_arg: '+toolchain' argument formatting

Example Usage:
-------------
    from cargokit.cache import LocalCacheStore
    from cargokit.tools import ToolManager, InstallOptions, CARGO_HACK

    manager = ToolManager(CARGO_HACK, LocalCacheStore(cache_dir))
    cargo_hack = manager.get_or_install(InstallOptions(primary_key='ci'))
    cargo_hack.call(['check', '--feature-powerset'])
"""

from cargokit.tools.toolchain import format_toolchain_arg
from cargokit.tools.cargo import Cargo
from cargokit.tools.handle import ToolHandle, ToolSpec
from cargokit.tools.installer import (
    CacheKeys,
    InstallRequest,
    ToolInstaller,
    compute_cache_keys,
    default_primary_key,
)
from cargokit.tools.manager import (
    CARGO_HACK,
    CROSS,
    TOOLS,
    Found,
    InstallOptions,
    LookupResult,
    NotFound,
    ToolConfig,
    ToolManager,
    get_tool_config,
)

__all__ = [
    "format_toolchain_arg",
    "Cargo",
    "ToolHandle",
    "ToolSpec",
    "CacheKeys",
    "InstallRequest",
    "ToolInstaller",
    "compute_cache_keys",
    "default_primary_key",
    "CARGO_HACK",
    "CROSS",
    "TOOLS",
    "Found",
    "InstallOptions",
    "LookupResult",
    "NotFound",
    "ToolConfig",
    "ToolManager",
    "get_tool_config",
]
