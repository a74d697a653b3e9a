"""Credential resolution and the prompt capability.

Every interactive question in the tool goes through a `PromptSource`:

- `InteractivePrompt` asks on the controlling terminal, even when stdin is
  a pipe (`curl ... | bash` style invocations).
- `ScriptedPrompt` never asks; a question it cannot answer is a
  MissingCredential error.
"""

import logging
import sys
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Protocol, TextIO

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

from homelab_setup.foundation.errors import missing_credential
from homelab_setup.foundation.logging import register_secret
from homelab_setup.smb.types import Credential, ShareLocation

logger = logging.getLogger(__name__)

TTY_DEVICE = "/dev/tty"

console = Console()


class PromptSource(Protocol):
    """Where answers to questions come from."""

    @property
    def interactive(self) -> bool: ...

    def ask(self, label: str, default: str | None = None, *, flag: str = "") -> str:
        """Ask for a value; `flag` names the CLI option that supplies it."""
        ...

    def ask_secret(self, label: str, *, flag: str = "") -> str:
        """Ask for a value without echoing it."""
        ...

    def show(self, heading: str, lines: Sequence[str]) -> None:
        """Show the choices a following question refers to."""
        ...


class InteractivePrompt:
    """Prompts on the controlling terminal with rich.

    When stdin is a terminal, rich reads it directly. Otherwise questions
    are written to and answered from /dev/tty, so the process can still
    talk to the user while its stdin is consumed by a pipe. Secrets are
    read with echo off on the same terminal.
    """

    interactive = True

    def __init__(self, stdin: TextIO | None = None, tty_path: str = TTY_DEVICE) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._tty_path = tty_path

    def _stdin_is_tty(self) -> bool:
        try:
            return self._stdin.isatty()
        except (AttributeError, ValueError):
            return False

    def ask(self, label: str, default: str | None = None, *, flag: str = "") -> str:
        if self._stdin_is_tty():
            answer = Prompt.ask(label, default=default) if default else Prompt.ask(label)
            return (answer or "").strip()

        with ExitStack() as stack:
            tty_in = stack.enter_context(open(self._tty_path))
            tty_out = stack.enter_context(open(self._tty_path, "w"))
            tty_console = Console(file=tty_out)
            if default:
                answer = Prompt.ask(label, default=default, console=tty_console, stream=tty_in)
            else:
                answer = Prompt.ask(label, console=tty_console, stream=tty_in)
        return (answer or "").strip()

    def ask_secret(self, label: str, *, flag: str = "") -> str:
        if self._stdin_is_tty():
            return Prompt.ask(label, password=True) or ""

        with open(self._tty_path, "w") as tty_out:
            tty_console = Console(file=tty_out)
            return Prompt.ask(label, password=True, console=tty_console) or ""

    def show(self, heading: str, lines: Sequence[str]) -> None:
        if self._stdin_is_tty():
            _print_menu(console, heading, lines)
            return

        with open(self._tty_path, "w") as tty_out:
            _print_menu(Console(file=tty_out), heading, lines)


def _print_menu(target: Console, heading: str, lines: Sequence[str]) -> None:
    target.print(Text(heading, style="bold"))
    for line in lines:
        target.print(f"  {line}", markup=False, highlight=False)


class ScriptedPrompt:
    """Non-interactive prompt source: answers come only from flags."""

    interactive = False

    def ask(self, label: str, default: str | None = None, *, flag: str = "") -> str:
        if default:
            return default
        raise missing_credential(label, flag or "no flag")

    def ask_secret(self, label: str, *, flag: str = "") -> str:
        raise missing_credential(label, flag or "no flag")

    def show(self, heading: str, lines: Sequence[str]) -> None:
        logger.info(heading)
        for line in lines:
            logger.info("  %s", line)


def prompt_for(non_interactive: bool) -> PromptSource:
    """Pick the prompt source for a run."""
    return ScriptedPrompt() if non_interactive else InteractivePrompt()


@dataclass(frozen=True, slots=True)
class ShareOptions:
    """Share settings as supplied by flags/environment; any may be empty."""

    server: str | None = None
    share: str | None = None
    share_path: str | None = None
    username: str | None = None
    password: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedShare:
    """A fully populated location and credential for one run."""

    location: ShareLocation
    credential: Credential
    path_given: bool
    """Whether a folder inside the share was supplied (vs. root by default)."""


def resolve_share(options: ShareOptions, prompt: PromptSource) -> ResolvedShare:
    """Fill every required field or fail with MissingCredential.

    Missing fields are asked for through `prompt`; a ScriptedPrompt raises
    on the first one, before any network call is made.
    """
    server = options.server or prompt.ask("SMB server (hostname or IP)", flag="--smb-server")
    share = options.share or prompt.ask("SMB share name", flag="--share")
    username = options.username or prompt.ask("SMB username", flag="--smb-user")
    password = options.password or prompt.ask_secret("SMB password", flag="--smb-pass")

    # A prompt may legitimately come back empty; that is as good as missing
    for label, value, flag in (
        ("SMB server", server, "--smb-server"),
        ("SMB share name", share, "--share"),
        ("SMB username", username, "--smb-user"),
        ("SMB password", password, "--smb-pass"),
    ):
        if not value:
            raise missing_credential(label, flag)

    register_secret(password)

    location = ShareLocation.from_parts(server, share, options.share_path)
    logger.debug("Resolved share %s as %s", location, username)
    return ResolvedShare(
        location=location,
        credential=Credential(username=username, password=password),
        path_given=bool(options.share_path),
    )
