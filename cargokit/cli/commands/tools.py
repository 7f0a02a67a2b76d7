"""
Tool commands: get, install, ensure, run and resolve.

Each handler takes the parsed arguments and returns a process exit code.
"""

import logging

from cargokit.cli.utils import create_manager, options_from_args, settings_from_args
from cargokit.core.registry import CratesRegistry

logger = logging.getLogger(__name__)


def run_get(args) -> int:
    """Print the path of an installed tool; fails if it is missing."""
    settings = settings_from_args(args)
    manager = create_manager(args.tool, settings)
    options = options_from_args(args.tool, settings, args)

    handle = manager.get(options.toolchain)
    print(handle.path)
    return 0


def run_install(args) -> int:
    """Install a tool (through the cache) even if it is already present."""
    settings = settings_from_args(args)
    manager = create_manager(args.tool, settings)

    handle = manager.install(options_from_args(args.tool, settings, args))
    print(handle.path)
    return 0


def run_ensure(args) -> int:
    """Reuse an installed tool or install it."""
    settings = settings_from_args(args)
    manager = create_manager(args.tool, settings)

    handle = manager.get_or_install(options_from_args(args.tool, settings, args))
    print(handle.path)
    return 0


def run_exec(args) -> int:
    """Ensure a tool is present, run it and forward its exit code."""
    settings = settings_from_args(args)
    manager = create_manager(args.tool, settings)

    handle = manager.get_or_install(options_from_args(args.tool, settings, args))

    tool_args = list(args.tool_args or [])
    if tool_args and tool_args[0] == "--":
        tool_args = tool_args[1:]

    return handle.call(tool_args)


def run_resolve(args) -> int:
    """Print the newest published version of a crate."""
    settings = settings_from_args(args)
    registry = CratesRegistry(
        base_url=settings.registry_url, timeout=settings.registry_timeout
    )

    print(registry.resolve_latest_version(args.crate))
    return 0
