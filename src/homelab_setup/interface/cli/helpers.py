"""Shared helper functions for CLI commands."""

from collections.abc import Callable
from typing import Any

import click
from rich.table import Table

from homelab_setup.foundation.config import SetupConfig, get_config
from homelab_setup.interface.cli.core.theme import CHECK, CROSS, DOT, create_console
from homelab_setup.provision import ProvisionReport
from homelab_setup.smb import InstallReport

console = create_console()
# Warnings and prompts
stderr_console = create_console(stderr=True)


def current_config(ctx: click.Context) -> SetupConfig:
    """The config loaded by the group, or the global one."""
    obj = ctx.find_root().obj or {}
    return obj.get("config") or get_config()


def share_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options that locate the share and choose keys (run, fetch-keys)."""
    options = [
        click.option("--smb-server", help="SMB server hostname or IP"),
        click.option("--share", help="SMB share name"),
        click.option("--share-path", help="Folder inside the share (default: share root)"),
        click.option("--smb-user", help="SMB username"),
        click.option(
            "--smb-pass",
            envvar="HOMELAB_SETUP_SMB_PASS",
            show_envvar=True,
            help="SMB password (prefer the environment variable or the prompt)",
        ),
        click.option("--keys", help="Comma-separated key file names, or 'all'"),
        click.option("--non-interactive", is_flag=True, help="Never prompt; fail if a value is missing"),
        click.option(
            "--policy",
            type=click.Choice(["overwrite", "skip"]),
            help="Existing keys: overwrite (default) or skip",
        ),
        click.option("--key-dir", type=click.Path(file_okay=False), help="Key store (default: ~/.ssh)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def print_install_report(report: InstallReport) -> None:
    for path in report.installed:
        console.print(f"  [ok]{CHECK}[/] {path.name}")
    for path in report.already_present:
        console.print(f"  [muted]{DOT} {path.name} (already present)[/]")
    for error in report.failed:
        stderr_console.print(f"  [fail]{CROSS}[/] {error.message}")


def print_summary(report: ProvisionReport) -> None:
    """Summary table for a full run."""
    table = Table(title="homelab-setup", show_header=True)
    table.add_column("Phase", style="heading")
    table.add_column("Result")

    keys = report.keys
    keys_text = f"{keys.count} installed"
    if keys.already_present:
        keys_text += f", {len(keys.already_present)} already present"
    if keys.failed:
        keys_text += f", [fail]{len(keys.failed)} failed[/]"
    table.add_row("Keys", keys_text)

    if report.identity is None:
        table.add_row("SSH", "[warn]not tested[/]")
    elif report.identity.authenticated:
        table.add_row("SSH", f"[ok]{CHECK}[/] {report.identity.account} ({report.identity.key.name})")
    else:
        table.add_row("SSH", f"[warn]{CROSS} unverified ({report.identity.key.name})[/]")

    if report.cloned:
        outcomes = ", ".join(f"{name}: {outcome.value}" for name, outcome in report.cloned.items())
        table.add_row("Repositories", outcomes)
    else:
        table.add_row("Repositories", "[muted]none[/]")

    console.print(table)
