"""homelab-setup configuration management.

Loads configuration from .homelab-setup/config.yaml with sensible defaults.
All settings can be overridden via environment variables (HOMELAB_SETUP_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .homelab-setup/config.yaml (project-local)
3. ~/.homelab-setup/config.yaml (user-global)
4. Built-in defaults
"""


import logging
import os
import threading
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from homelab_setup.foundation.errors import ErrorCode, SetupError
from homelab_setup.foundation.types.config import (
    GitConfig,
    KeysConfig,
    ShareConfig,
    SmbConfig,
    SshConfig,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "HOMELAB_SETUP_"

_SECTIONS: dict[str, type] = {
    "share": ShareConfig,
    "keys": KeysConfig,
    "smb": SmbConfig,
    "ssh": SshConfig,
    "git": GitConfig,
}

_POLICIES = ("overwrite", "skip")


@dataclass(frozen=True, slots=True)
class SetupConfig:
    """Root configuration for homelab-setup."""

    share: ShareConfig = field(default_factory=ShareConfig)
    """Default share location and username."""

    keys: KeysConfig = field(default_factory=KeysConfig)
    """Key store and install policy."""

    smb: SmbConfig = field(default_factory=SmbConfig)
    """SMB client settings."""

    ssh: SshConfig = field(default_factory=SshConfig)
    """SSH identity test settings."""

    git: GitConfig = field(default_factory=GitConfig)
    """Repository listing/clone settings."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Global config instance (lazy-loaded, thread-safe)
_config: SetupConfig | None = None
_config_lock = threading.Lock()


def default_config_paths() -> list[Path]:
    """Config files searched when no explicit path is given."""
    return [
        Path(".homelab-setup/config.yaml"),
        Path.home() / ".homelab-setup" / "config.yaml",
    ]


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(raw: str, default: Any) -> Any:
    """Convert an env var string to the type of the field's default."""
    if isinstance(default, bool):
        return raw.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float) or default is None:
        if raw.strip().lower() in ("", "none", "null"):
            return None
        return float(raw)
    return raw


def _apply_env_overrides(config_dict: dict) -> dict:
    """Apply environment variable overrides.

    Environment variables follow the pattern HOMELAB_SETUP_<SECTION>_<KEY>.

    Examples:
        HOMELAB_SETUP_SHARE_SERVER=192.168.1.100
        HOMELAB_SETUP_KEYS_POLICY=skip
        HOMELAB_SETUP_SMB_TIMEOUT=30
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        path_str = key[len(ENV_PREFIX):].lower()
        section, _, name = path_str.partition("_")
        section_type = _SECTIONS.get(section)
        if section_type is None:
            continue

        defaults = {f.name: f.default for f in fields(section_type)}
        if name not in defaults:
            continue

        try:
            config_dict.setdefault(section, {})[name] = _coerce(value, defaults[name])
        except ValueError as e:
            raise SetupError(
                code=ErrorCode.CONFIG_INVALID,
                context={"key": f"{section}.{name}", "detail": f"{key}={value!r} ({e})"},
                cause=e,
            ) from e

    return config_dict


def _build_section(section: str, data: Any) -> Any:
    """Build one section dataclass, dropping keys it does not know."""
    section_type = _SECTIONS[section]
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SetupError(
            code=ErrorCode.CONFIG_INVALID,
            context={"key": section, "detail": "expected a mapping"},
        )

    known = {f.name for f in fields(section_type)}
    kwargs = {}
    for key, value in data.items():
        if key in known:
            kwargs[key] = value
        elif section == "share" and key == "password":
            logger.warning("Ignoring share.password in config file: passwords are never read from disk")
        else:
            logger.warning("Ignoring unknown config key: %s.%s", section, key)
    return section_type(**kwargs)


def _dict_to_config(data: dict) -> SetupConfig:
    """Convert a dict to SetupConfig."""
    sections = {name: _build_section(name, data.get(name)) for name in _SECTIONS}

    policy = sections["keys"].policy
    if policy not in _POLICIES:
        raise SetupError(
            code=ErrorCode.CONFIG_INVALID,
            context={"key": "keys.policy", "detail": f"{policy!r} is not one of {', '.join(_POLICIES)}"},
        )

    return SetupConfig(**sections)


def load_config(path: str | Path | None = None) -> SetupConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (HOMELAB_SETUP_*)
    2. Explicit path if provided
    3. .homelab-setup/config.yaml (project-local)
    4. ~/.homelab-setup/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        Merged SetupConfig instance.
    """
    global _config

    config_dict: dict[str, Any] = SetupConfig().to_dict()

    config_paths = []
    if path:
        config_paths.append(Path(path).expanduser())
    config_paths.extend(default_config_paths())

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Skipping unreadable config file %s: %s", config_path, e)
                continue
            if not isinstance(file_config, dict):
                logger.warning("Skipping config file %s: top level is not a mapping", config_path)
                continue
            _deep_update(config_dict, file_config)
            logger.debug("Loaded config from %s", config_path)
            break  # Use first found config

    config_dict = _apply_env_overrides(config_dict)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> SetupConfig:
    """Get the current configuration, loading if needed."""
    global _config

    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None


def save_default_config(path: str | Path = ".homelab-setup/config.yaml") -> Path:
    """Save the default configuration to a file.

    Creates a documented config file with all options.

    Args:
        path: Where to save the config.

    Returns:
        Path to the saved config file.
    """
    config_content = '''# homelab-setup configuration
#
# Every value can be overridden with HOMELAB_SETUP_<SECTION>_<KEY>,
# e.g. HOMELAB_SETUP_SHARE_SERVER=192.168.1.100

# SMB share holding the SSH keys.
# The password is never stored here; pass --smb-pass,
# set HOMELAB_SETUP_SMB_PASS, or answer the prompt.
share:
  server: ""        # e.g. 192.168.1.100
  name: ""          # e.g. Secrets
  path: ""          # e.g. "SSH keys/workstation" (empty = share root)
  username: ""

# Where keys are installed and what happens to existing files
keys:
  directory: "~/.ssh"
  # overwrite: always refetch and rewrite
  # skip:      leave keys that are already installed untouched
  policy: overwrite

# smbclient settings
smb:
  binary: smbclient
  timeout: null     # seconds; null waits forever

# SSH identity test
ssh:
  host: github.com
  user: git
  connect_timeout: 10
  write_config: true  # add a Host block to ~/.ssh/config
  add_to_agent: false  # ssh-add the private keys after a successful test

# Repository listing and cloning
git:
  api_base: "https://api.github.com"
  clone_dir: "~/Git"
  per_page: 100
  request_timeout: 30.0
'''

    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config_content)
    return path
