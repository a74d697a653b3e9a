"""Configuration management for homelab-setup."""

from homelab_setup.foundation.config.loader import (
    SetupConfig,
    default_config_paths,
    get_config,
    load_config,
    reset_config,
    save_default_config,
)

__all__ = [
    "SetupConfig",
    "default_config_paths",
    "get_config",
    "load_config",
    "reset_config",
    "save_default_config",
]
