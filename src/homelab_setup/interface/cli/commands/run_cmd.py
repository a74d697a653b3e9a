"""Run command: the whole provisioning flow."""

from dataclasses import replace

import click

from homelab_setup.interface.cli.helpers import (
    current_config,
    print_summary,
    share_options,
)
from homelab_setup.provision import Provisioner, RunSettings
from homelab_setup.smb import prompt_for


@click.command()
@share_options
@click.option("--repos", help="Comma-separated repository names, or 'all'")
@click.option("--clone-dir", type=click.Path(file_okay=False), help="Where to clone (default: ~/Git)")
@click.option("--skip-keys", is_flag=True, help="Do not fetch keys from the share")
@click.option("--skip-repos", is_flag=True, help="Do not clone repositories")
@click.option("--add-to-agent", is_flag=True, help="Load the private keys into ssh-agent once verified")
@click.option("--allow-root", is_flag=True, help="Run even as root (e.g. in a container)")
@click.pass_context
def run(
    ctx: click.Context,
    smb_server: str | None,
    share: str | None,
    share_path: str | None,
    smb_user: str | None,
    smb_pass: str | None,
    keys: str | None,
    non_interactive: bool,
    policy: str | None,
    key_dir: str | None,
    repos: str | None,
    clone_dir: str | None,
    skip_keys: bool,
    skip_repos: bool,
    add_to_agent: bool,
    allow_root: bool,
) -> None:
    """Fetch SSH keys, verify the Git identity, clone repositories.

    Values not given as options come from the config file or a prompt.
    With --non-interactive a missing value is an error instead.

    \b
    Examples:
        homelab-setup run
        homelab-setup run --non-interactive --smb-server nas --share Secrets \\
            --smb-user me --keys id_ed25519,id_ed25519.pub --repos all
    """
    config = current_config(ctx)
    if add_to_agent:
        config = replace(config, ssh=replace(config.ssh, add_to_agent=True))

    settings = RunSettings.from_config(
        config,
        server=smb_server,
        share=share,
        share_path=share_path,
        username=smb_user,
        password=smb_pass,
        keys=keys,
        repos=repos,
        non_interactive=non_interactive,
        policy=policy,
        key_dir=key_dir,
        clone_dir=clone_dir,
        skip_keys=skip_keys,
        skip_repos=skip_repos,
        allow_root=allow_root,
    )
    report = Provisioner(settings, prompt_for(non_interactive)).run()
    print_summary(report)
