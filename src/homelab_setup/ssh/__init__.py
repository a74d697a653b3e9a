"""SSH identity verification and client configuration."""

from homelab_setup.ssh.agent import AgentLoader, parse_agent_env
from homelab_setup.ssh.config import ensure_host_entry, has_host_entry
from homelab_setup.ssh.identity import (
    IdentityResult,
    IdentityTester,
    choose_key,
    find_private_keys,
    parse_account,
)

__all__ = [
    "AgentLoader",
    "IdentityResult",
    "IdentityTester",
    "choose_key",
    "ensure_host_entry",
    "find_private_keys",
    "has_host_entry",
    "parse_account",
    "parse_agent_env",
]
