"""clone command: clone or update an account's repositories."""

import click

from homelab_setup.git import CloneOutcome
from homelab_setup.interface.cli.core.theme import CHECK, CROSS
from homelab_setup.interface.cli.helpers import console, current_config
from homelab_setup.provision import Provisioner, RunSettings
from homelab_setup.smb import prompt_for


@click.command()
@click.argument("account")
@click.option("--repos", help="Comma-separated repository names, or 'all'")
@click.option("--clone-dir", type=click.Path(file_okay=False), help="Where to clone (default: ~/Git)")
@click.option("--non-interactive", is_flag=True, help="Clone everything without asking")
@click.pass_context
def clone(
    ctx: click.Context,
    account: str,
    repos: str | None,
    clone_dir: str | None,
    non_interactive: bool,
) -> None:
    """Clone (or pull) the repositories of ACCOUNT.

    \b
    Examples:
        homelab-setup clone my-account
        homelab-setup clone my-account --repos dotfiles,homelab
    """
    settings = RunSettings.from_config(
        current_config(ctx),
        repos=repos,
        clone_dir=clone_dir,
        non_interactive=non_interactive,
    )
    outcomes = Provisioner(settings, prompt_for(non_interactive)).clone_repositories(account)

    for name, outcome in outcomes.items():
        if outcome is CloneOutcome.FAILED:
            console.print(f"  [fail]{CROSS}[/] {name}")
        else:
            console.print(f"  [ok]{CHECK}[/] {name} ({outcome.value})")
    if any(outcome is CloneOutcome.FAILED for outcome in outcomes.values()):
        raise SystemExit(1)
