"""Config command: inspect and create homelab-setup configuration."""

from pathlib import Path

import click
import yaml
from rich.panel import Panel
from rich.syntax import Syntax

from homelab_setup.foundation.config import default_config_paths, save_default_config
from homelab_setup.interface.cli.core.theme import CHECK, CROSS, DOT
from homelab_setup.interface.cli.helpers import console, current_config


def _get_nested(obj: object, key: str) -> object:
    """Get a nested attribute using dot notation.

    Args:
        obj: The object to traverse
        key: Dot-separated path like 'share.server'

    Returns:
        The value at the path, or raises KeyError if not found
    """
    current = obj
    for part in key.split("."):
        if hasattr(current, part):
            current = getattr(current, part)
        elif isinstance(current, dict) and part in current:
            current = current[part]
        else:
            raise KeyError(f"Key not found: {key}")
    return current


@click.group()
def config() -> None:
    """Manage homelab-setup configuration.

    Configuration is loaded from (in priority order):
    1. Environment variables (HOMELAB_SETUP_*)
    2. --config PATH
    3. .homelab-setup/config.yaml (project-local)
    4. ~/.homelab-setup/config.yaml (user-global)
    5. Built-in defaults

    Examples:

        homelab-setup config show
        homelab-setup config init --global
        homelab-setup config get share.server

    Environment overrides:

        HOMELAB_SETUP_SHARE_SERVER=192.168.1.100 homelab-setup run
        HOMELAB_SETUP_KEYS_POLICY=skip homelab-setup fetch-keys
    """


@config.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show the effective configuration and which files exist."""
    cfg = current_config(ctx)

    console.print(Panel("[bold]homelab-setup configuration[/bold]", border_style="cyan"))
    rendered = yaml.safe_dump(cfg.to_dict(), default_flow_style=False, sort_keys=False)
    console.print(Syntax(rendered, "yaml", theme="ansi_dark", background_color="default"))

    console.print("[muted]Config sources:[/]")
    for path in default_config_paths():
        if path.exists():
            console.print(f"  [ok]{CHECK}[/] {path}")
        else:
            console.print(f"  [muted]{DOT} {path} (not found)[/]")


@config.command()
@click.option(
    "--path",
    type=click.Path(dir_okay=False),
    default=".homelab-setup/config.yaml",
    help="Config file path (default: .homelab-setup/config.yaml)",
)
@click.option("--global", "global_config", is_flag=True, help="Create in ~/.homelab-setup/ instead")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init(path: str, global_config: bool, force: bool) -> None:
    """Create a documented default config file.

    Examples:
        homelab-setup config init
        homelab-setup config init --global
    """
    config_path = Path.home() / ".homelab-setup" / "config.yaml" if global_config else Path(path)
    if config_path.exists() and not force:
        console.print(f"[fail]{CROSS}[/] {config_path} already exists (use --force to overwrite)")
        raise SystemExit(1)

    saved_path = save_default_config(config_path)
    console.print(f"[ok]{CHECK}[/] Config file created: {saved_path}")
    console.print("\n[muted]Edit this file to set your share defaults.[/]")


@config.command()
@click.argument("key")
@click.pass_context
def get(ctx: click.Context, key: str) -> None:
    """Get a configuration value.

    Use dot notation to access nested values.

    Examples:
        homelab-setup config get share.server
        homelab-setup config get keys.policy
    """
    cfg = current_config(ctx)

    try:
        value = _get_nested(cfg, key)
    except KeyError:
        console.print(f"[fail]{CROSS}[/] Key not found: {key}")
        console.print("\n[muted]Available top-level keys:[/]")
        console.print("  share, keys, smb, ssh, git")
        raise SystemExit(1) from None

    # Plain output for scripting
    click.echo(value)
