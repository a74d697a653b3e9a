"""Best-effort loading of private keys into ssh-agent.

Nothing here raises: a missing agent, a missing binary or a key that
needs a passphrase only produces a warning.
"""

import logging
import os
import re
import subprocess
from collections.abc import Sequence
from pathlib import Path

from homelab_setup.foundation.errors import tool_missing

logger = logging.getLogger(__name__)

# `ssh-agent -s` prints e.g. `SSH_AUTH_SOCK=/tmp/ssh-x/agent.1; export SSH_AUTH_SOCK;`
_AGENT_VAR_RE = re.compile(r"^(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;]+);", re.MULTILINE)

# ssh-add -l: 0 = keys listed, 1 = agent has no keys, 2 = no agent
_NO_AGENT = 2


def parse_agent_env(output: str) -> dict[str, str]:
    """Environment variables from `ssh-agent -s` output."""
    return dict(_AGENT_VAR_RE.findall(output))


class AgentLoader:
    """Adds keys to the running ssh-agent, starting one if none answers."""

    def __init__(self, add_binary: str = "ssh-add", agent_binary: str = "ssh-agent") -> None:
        self.add_binary = add_binary
        self.agent_binary = agent_binary

    def _run(self, argv: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=False,
            stdin=subprocess.DEVNULL,
        )

    def agent_running(self) -> bool:
        return self._run([self.add_binary, "-l"]).returncode != _NO_AGENT

    def start(self) -> bool:
        """Start an agent and export its socket to this process.

        Later `ssh` and `git` child processes inherit the variables.
        """
        result = self._run([self.agent_binary, "-s"])
        env = parse_agent_env(result.stdout)
        if result.returncode != 0 or "SSH_AUTH_SOCK" not in env:
            logger.warning("Could not start ssh-agent: %s", result.stderr.strip() or "no socket reported")
            return False
        os.environ.update(env)
        logger.info("Started ssh-agent (pid %s)", env.get("SSH_AGENT_PID", "?"))
        return True

    def add(self, keys: Sequence[Path]) -> list[Path]:
        """Add `keys` to the agent.

        Returns:
            The keys the agent accepted.
        """
        try:
            if not self.agent_running() and not self.start():
                return []

            added: list[Path] = []
            for key in keys:
                result = self._run([self.add_binary, str(key)])
                if result.returncode == 0:
                    logger.info("Added %s to ssh-agent", key.name)
                    added.append(key)
                else:
                    logger.warning("ssh-add %s failed: %s", key.name, result.stderr.strip())
            return added
        except FileNotFoundError as e:
            logger.warning(tool_missing(e.filename or self.add_binary, cause=e).message)
            return []
