"""
Shared utilities for CLI commands.
"""

import logging
from typing import Optional

from cargokit.cache.local import LocalCacheStore
from cargokit.config.settings import Settings, load_settings
from cargokit.core.registry import CratesRegistry
from cargokit.tools.manager import InstallOptions, ToolManager, get_tool_config

logger = logging.getLogger(__name__)


def settings_from_args(args) -> Settings:
    """Load settings using the --config flag when given."""
    return load_settings(getattr(args, "config", None))


def create_manager(tool_name: str, settings: Settings) -> ToolManager:
    """
    Create the manager for a known tool from settings.

    Raises:
        KeyError: If the tool is unknown
    """
    config = get_tool_config(tool_name)
    logger.debug(f"Using cache directory {settings.cache_dir}")

    return ToolManager(
        config,
        LocalCacheStore(settings.cache_dir),
        registry=CratesRegistry(
            base_url=settings.registry_url, timeout=settings.registry_timeout
        ),
        namespace=settings.namespace,
        locked=settings.locked,
    )


def options_from_args(tool_name: str, settings: Settings, args) -> InstallOptions:
    """Merge command-line overrides over the configured tool options."""
    options = settings.options_for(tool_name)

    toolchain: Optional[str] = getattr(args, "toolchain", None)
    if toolchain:
        options.toolchain = toolchain
    if getattr(args, "tool_version", None):
        options.version = args.tool_version
    if getattr(args, "primary_key", None):
        options.primary_key = args.primary_key
    if getattr(args, "restore_key", None):
        options.restore_keys = list(args.restore_key)

    return options
