"""
Configuration loading for cargokit.

Settings come from an optional YAML file (`cargokit.yaml` by default) and
environment variables, environment taking precedence.

Example file:

    namespace: my-project
    cache_dir: ~/.cache/cargokit
    locked: true
    registry:
      url: https://crates.io/api/v1/crates
      timeout: 15
    tools:
      cross:
        version: 0.2.5
        primary_key: ci
        restore_keys: [ci-old]
      cargo-hack:
        toolchain: nightly
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from cargokit.core.exceptions import ConfigurationError
from cargokit.core.locking import get_global_cache_dir
from cargokit.core.registry import DEFAULT_REGISTRY_URL, DEFAULT_TIMEOUT
from cargokit.tools.installer import DEFAULT_NAMESPACE
from cargokit.tools.manager import InstallOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "cargokit.yaml"

ENV_CACHE_DIR = "CARGOKIT_CACHE_DIR"
ENV_PRIMARY_KEY = "CARGOKIT_PRIMARY_KEY"
ENV_NAMESPACE = "CARGOKIT_NAMESPACE"


def default_cache_dir() -> Path:
    return get_global_cache_dir() / "cache"


@dataclass
class Settings:
    """
    Effective cargokit settings.

    Attributes:
        namespace: Prefix of default primary cache keys
        cache_dir: Root of the local cache store
        registry_url: crates.io crate lookup endpoint
        registry_timeout: Registry request timeout in seconds
        locked: Pass --locked to `cargo install`
        tools: Per-tool install options, keyed by tool name
        default_primary_key: Primary key applied to tools without their own
    """

    namespace: str = DEFAULT_NAMESPACE
    cache_dir: Path = field(default_factory=default_cache_dir)
    registry_url: str = DEFAULT_REGISTRY_URL
    registry_timeout: float = DEFAULT_TIMEOUT
    locked: bool = False
    tools: Dict[str, InstallOptions] = field(default_factory=dict)
    default_primary_key: Optional[str] = None

    def options_for(self, tool_name: str) -> InstallOptions:
        """
        Get the install options for a tool.

        Returns a fresh copy so callers can override fields freely.
        """
        configured = self.tools.get(tool_name, InstallOptions())
        return InstallOptions(
            toolchain=configured.toolchain,
            version=configured.version,
            primary_key=configured.primary_key or self.default_primary_key,
            restore_keys=list(configured.restore_keys),
        )


def _expect(value: Any, expected: type, where: str) -> Any:
    if not isinstance(value, expected):
        raise ConfigurationError(
            f"'{where}' must be a {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _optional_str(data: Dict[str, Any], key: str, where: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    # YAML reads bare versions like 0.2 as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return _expect(value, str, f"{where}.{key}")


def _parse_tool_options(name: str, data: Any) -> InstallOptions:
    where = f"tools.{name}"
    if data is None:
        return InstallOptions()
    _expect(data, dict, where)

    restore_keys: List[str] = []
    for key in _expect(data.get("restore_keys") or [], list, f"{where}.restore_keys"):
        restore_keys.append(_expect(key, str, f"{where}.restore_keys[]"))

    return InstallOptions(
        toolchain=_optional_str(data, "toolchain", where),
        version=_optional_str(data, "version", where),
        primary_key=_optional_str(data, "primary_key", where),
        restore_keys=restore_keys,
    )


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigurationError: If the file is required but missing, or YAML
            parsing fails
    """
    if not config_file.exists():
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    return _expect(config, dict, str(config_file))


def settings_from_dict(config: Dict[str, Any]) -> Settings:
    """
    Build Settings from a parsed configuration dictionary.

    Raises:
        ConfigurationError: If a value has the wrong type
    """
    settings = Settings()

    if "namespace" in config:
        settings.namespace = _expect(config["namespace"], str, "namespace")
    if "cache_dir" in config:
        cache_dir = _expect(config["cache_dir"], str, "cache_dir")
        settings.cache_dir = Path(cache_dir).expanduser()
    if "locked" in config:
        settings.locked = _expect(config["locked"], bool, "locked")
    if "primary_key" in config:
        settings.default_primary_key = _expect(
            config["primary_key"], str, "primary_key"
        )

    registry = _expect(config.get("registry") or {}, dict, "registry")
    if "url" in registry:
        settings.registry_url = _expect(registry["url"], str, "registry.url")
    if "timeout" in registry:
        timeout = registry["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigurationError("'registry.timeout' must be a number")
        settings.registry_timeout = float(timeout)

    tools = _expect(config.get("tools") or {}, dict, "tools")
    for name, data in tools.items():
        settings.tools[str(name)] = _parse_tool_options(str(name), data)

    return settings


def apply_environment(settings: Settings, environ: Optional[Dict[str, str]] = None):
    """Override settings from CARGOKIT_* environment variables."""
    environ = os.environ if environ is None else environ

    if environ.get(ENV_CACHE_DIR):
        settings.cache_dir = Path(environ[ENV_CACHE_DIR]).expanduser()
    if environ.get(ENV_NAMESPACE):
        settings.namespace = environ[ENV_NAMESPACE]
    if environ.get(ENV_PRIMARY_KEY):
        settings.default_primary_key = environ[ENV_PRIMARY_KEY]

    return settings


def load_settings(
    config_file: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Load settings from a config file and the environment.

    Args:
        config_file: Explicit config file (must exist); defaults to an
            optional ./cargokit.yaml
        environ: Environment mapping (default: os.environ)

    Returns:
        Effective settings

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if config_file is not None:
        config = load_yaml_config(Path(config_file), required=True)
    else:
        config = load_yaml_config(Path.cwd() / DEFAULT_CONFIG_FILE)

    settings = settings_from_dict(config)
    return apply_environment(settings, environ)
