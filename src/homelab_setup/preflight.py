"""Checks made before a run touches the share or the network.

A run refuses to start as root, since keys and repositories would land in
root's home. The commands each enabled phase needs are looked up once,
before any prompt, so a missing tool shows up at the start of the run.
"""

import logging
import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from homelab_setup.foundation.errors import ErrorCode, SetupError

logger = logging.getLogger(__name__)


def running_as_root() -> bool:
    """Whether the effective user is root (never true where uids don't exist)."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def find_tool(binary: str) -> str | None:
    return shutil.which(binary)


@dataclass(frozen=True, slots=True)
class PreflightReport:
    """Result of the checks for one run."""

    missing: dict[str, str] = field(default_factory=dict)
    """Missing command -> the step that needs it."""

    def lacks(self, binary: str) -> bool:
        return binary in self.missing


def check_environment(tools: Mapping[str, str], *, allow_root: bool = False) -> PreflightReport:
    """Refuse root and look up every command the run needs.

    Args:
        tools: Command name -> the step that needs it.
        allow_root: Run as root anyway (containers where root is the only user).

    Returns:
        PreflightReport listing the commands not found on PATH.

    Raises:
        SetupError: RUNTIME_RUNNING_AS_ROOT when running as root without
            `allow_root`.
    """
    if running_as_root():
        if not allow_root:
            raise SetupError(
                code=ErrorCode.RUNTIME_RUNNING_AS_ROOT,
                context={"home": str(Path.home())},
            )
        logger.warning("Running as root; keys and repositories go under %s", Path.home())

    missing = {binary: step for binary, step in tools.items() if find_tool(binary) is None}
    for binary in missing:
        logger.debug("%s not found on PATH", binary)
    return PreflightReport(missing=missing)
