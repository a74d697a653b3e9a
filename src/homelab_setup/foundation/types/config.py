"""Configuration type definitions - single source of truth for all config classes."""


from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class ShareConfig:
    """Defaults for the SMB share holding the SSH keys.

    The password is deliberately absent: it is never persisted.
    """

    server: str = ""
    """Hostname or IP of the SMB server."""

    name: str = ""
    """Share name (e.g. "Secrets")."""

    path: str = ""
    """Folder inside the share; empty means the root of the share."""

    username: str = ""
    """SMB username."""


@dataclass(frozen=True, slots=True)
class KeysConfig:
    """Key installation settings."""

    directory: str = "~/.ssh"
    """Key store directory."""

    policy: Literal["overwrite", "skip"] = "overwrite"
    """overwrite: always refetch; skip: leave existing files untouched."""


@dataclass(frozen=True, slots=True)
class SmbConfig:
    """SMB client settings."""

    binary: str = "smbclient"
    """smbclient executable name or path."""

    timeout: float | None = None
    """Seconds before a listing/fetch is abandoned (None = wait forever)."""


@dataclass(frozen=True, slots=True)
class SshConfig:
    """SSH identity test settings."""

    host: str = "github.com"
    """Git host to authenticate against."""

    user: str = "git"
    """Remote SSH user."""

    connect_timeout: int = 10
    """ConnectTimeout passed to ssh."""

    write_config: bool = True
    """Append a Host block for `host` to ~/.ssh/config."""

    add_to_agent: bool = False
    """Load the private keys into ssh-agent after a successful test."""


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Repository listing and cloning settings."""

    api_base: str = "https://api.github.com"
    """GitHub REST API base URL."""

    clone_dir: str = "~/Git"
    """Where repositories are cloned."""

    per_page: int = 100
    """Page size for repository listing (GitHub caps this at 100)."""

    request_timeout: float = 30.0
    """HTTP timeout in seconds."""
