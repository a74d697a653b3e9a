"""fetch-keys command: copy SSH keys from the share into the key store."""

import click

from homelab_setup.interface.cli.helpers import (
    console,
    current_config,
    print_install_report,
    share_options,
)
from homelab_setup.provision import Provisioner, RunSettings
from homelab_setup.smb import prompt_for


@click.command("fetch-keys")
@share_options
@click.pass_context
def fetch_keys(
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
) -> None:
    """Fetch SSH keys from the SMB share.

    Private keys are installed with mode 600, *.pub files with 644.

    \b
    Examples:
        homelab-setup fetch-keys
        homelab-setup fetch-keys --share-path "SSH keys" --keys all --policy skip
    """
    settings = RunSettings.from_config(
        current_config(ctx),
        server=smb_server,
        share=share,
        share_path=share_path,
        username=smb_user,
        password=smb_pass,
        keys=keys,
        non_interactive=non_interactive,
        policy=policy,
        key_dir=key_dir,
    )
    report = Provisioner(settings, prompt_for(non_interactive)).fetch_keys()

    console.print(f"\n[heading]Keys[/] [path]{settings.key_dir}[/]")
    print_install_report(report)
    console.print(f"[muted]{report.count} installed[/]")
