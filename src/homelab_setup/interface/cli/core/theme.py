"""Terminal theme for homelab-setup output."""

from rich.console import Console
from rich.theme import Theme

HOMELAB_THEME = Theme({
    "ok": "green",
    "warn": "yellow",
    "fail": "bold red",
    "muted": "dim",
    "heading": "bold cyan",
    "path": "cyan",
})

CHECK = "✓"
CROSS = "✗"
DOT = "○"


def create_console(*, stderr: bool = False) -> Console:
    """A rich Console carrying the homelab-setup theme."""
    return Console(theme=HOMELAB_THEME, stderr=stderr)
