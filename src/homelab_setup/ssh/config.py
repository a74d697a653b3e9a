"""Idempotent ~/.ssh/config host entries."""

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_MODE = 0o600


def has_host_entry(config_path: Path, host: str) -> bool:
    """Whether `config_path` already has a `Host` line naming `host`."""
    if not config_path.exists():
        return False
    pattern = re.compile(rf"^\s*Host\s+(.*\s)?{re.escape(host)}(\s|$)", re.IGNORECASE | re.MULTILINE)
    return bool(pattern.search(config_path.read_text()))


def ensure_host_entry(config_path: Path, host: str, identity_file: Path, user: str = "git") -> bool:
    """Append a Host block for `host` unless one exists.

    Returns:
        True if the file was changed.
    """
    config_path = Path(config_path).expanduser()
    if has_host_entry(config_path, host):
        logger.debug("%s already has an entry for %s", config_path, host)
        return False

    block = (
        f"\nHost {host}\n"
        f"  User {user}\n"
        f"  AddKeysToAgent yes\n"
        f"  IdentityFile \"{identity_file}\"\n"
    )
    config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    with open(config_path, "a") as f:
        f.write(block)
    os.chmod(config_path, CONFIG_MODE)
    logger.info("Added %s to %s", host, config_path)
    return True
