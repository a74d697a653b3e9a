"""CLI Error Handler.

Prints a SetupError with its recovery hints and context-aware suggestions,
then exits non-zero.
"""

import shutil
import sys
from pathlib import Path
from typing import NoReturn

from rich.console import Console
from rich.text import Text

from homelab_setup.foundation.errors import ErrorCode, SetupError


def _get_context_aware_hints(error: SetupError) -> list[str]:
    """Additional hints based on what is installed and configured locally."""
    hints: list[str] = []

    if error.code in (ErrorCode.SHARE_CLIENT_MISSING, ErrorCode.SHARE_UNREACHABLE):
        if shutil.which("smbclient") is None:
            hints.append("Detected: smbclient is not installed")

    elif error.code == ErrorCode.CONFIG_MISSING_CREDENTIAL:
        if not (Path.home() / ".homelab-setup" / "config.yaml").exists():
            hints.append("Detected: No config file found. Run 'homelab-setup config init --global'")

    elif error.code == ErrorCode.TOOL_MISSING:
        binary = error.context.get("binary", "")
        if binary and shutil.which(binary) is None:
            hints.append(f"Detected: '{binary}' is not on PATH")

    return hints


def handle_error(error: SetupError | Exception) -> NoReturn:
    """Print an error to stderr and exit.

    Args:
        error: The error to handle (SetupError or generic Exception)

    Raises:
        SystemExit: Always exits with code 1
    """
    if not isinstance(error, SetupError):
        error = SetupError(
            code=ErrorCode.RUNTIME_UNEXPECTED,
            context={"detail": str(error)},
            cause=error,
        )

    _print_human_error(error)
    sys.exit(1)


def _print_human_error(error: SetupError) -> None:
    """Print error in human-readable format."""
    console = Console(stderr=True)

    header = Text()
    header.append(f"{error.error_id}", style="bold red")
    header.append(f" {error.message}")
    console.print(header)

    # Context hints first: they are more specific
    all_hints = _get_context_aware_hints(error) + list(error.recovery_hints)

    if all_hints:
        console.print("\n[bold]What you can do:[/]")
        for i, hint in enumerate(all_hints, 1):
            if hint.startswith("Detected:"):
                console.print(f"  [dim]{hint}[/]")
            else:
                console.print(f"  {i}. {hint}")

