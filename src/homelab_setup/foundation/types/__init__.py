"""Shared type definitions."""

from homelab_setup.foundation.types.config import (
    GitConfig,
    KeysConfig,
    ShareConfig,
    SmbConfig,
    SshConfig,
)

__all__ = [
    "GitConfig",
    "KeysConfig",
    "ShareConfig",
    "SmbConfig",
    "SshConfig",
]
