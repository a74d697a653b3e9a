"""test-ssh command: check which account a private key authenticates as."""

from dataclasses import replace
from pathlib import Path

import click

from homelab_setup.interface.cli.core.theme import CHECK, CROSS
from homelab_setup.interface.cli.helpers import console, current_config
from homelab_setup.provision import Provisioner, RunSettings
from homelab_setup.smb import prompt_for


@click.command("test-ssh")
@click.option("--key", "key_path", type=click.Path(exists=True, dir_okay=False), help="Private key to test")
@click.option("--host", help="Git host (default: github.com)")
@click.option("--key-dir", type=click.Path(file_okay=False), help="Where to look for keys (default: ~/.ssh)")
@click.option("--non-interactive", is_flag=True, help="Pick the first key instead of asking")
@click.option("--add-to-agent", is_flag=True, help="Load the private keys into ssh-agent once verified")
@click.pass_context
def test_ssh(
    ctx: click.Context,
    key_path: str | None,
    host: str | None,
    key_dir: str | None,
    non_interactive: bool,
    add_to_agent: bool,
) -> None:
    """Test SSH authentication against the Git host.

    Exits with status 1 when the host does not confirm an account.
    """
    config = current_config(ctx)
    if host:
        config = replace(config, ssh=replace(config.ssh, host=host))
    if add_to_agent:
        config = replace(config, ssh=replace(config.ssh, add_to_agent=True))

    settings = RunSettings.from_config(config, key_dir=key_dir, non_interactive=non_interactive)
    provisioner = Provisioner(settings, prompt_for(non_interactive))
    result = provisioner.test_identity(Path(key_path) if key_path else None)

    if result is None or not result.authenticated:
        console.print(f"[fail]{CROSS}[/] SSH identity not confirmed")
        raise SystemExit(1)
    console.print(f"[ok]{CHECK}[/] {result.key.name} authenticates as [bold]{result.account}[/]")

