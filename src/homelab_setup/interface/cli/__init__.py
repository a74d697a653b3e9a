"""Command-line interface for homelab-setup."""

from homelab_setup.interface.cli.core.main import cli_entrypoint, main

__all__ = ["cli_entrypoint", "main"]
