"""
Configuration for cargokit: YAML file plus CARGOKIT_* environment overrides.
"""

from cargokit.config.settings import (
    Settings,
    load_settings,
    load_yaml_config,
    settings_from_dict,
    apply_environment,
)

__all__ = [
    "Settings",
    "load_settings",
    "load_yaml_config",
    "settings_from_dict",
    "apply_environment",
]
