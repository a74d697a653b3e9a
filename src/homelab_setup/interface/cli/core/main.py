"""Main CLI entry point.

    homelab-setup run                 Fetch keys, test SSH, clone repositories
    homelab-setup fetch-keys          Only fetch keys from the share
    homelab-setup test-ssh            Only test the SSH identity
    homelab-setup clone ACCOUNT       Only clone an account's repositories
    homelab-setup config show         Inspect configuration
"""

import sys

import click

from homelab_setup import __version__
from homelab_setup.foundation.config import load_config
from homelab_setup.foundation.logging import configure_logging
from homelab_setup.interface.cli.commands import (
    clone_cmd,
    config_cmd,
    keys_cmd,
    run_cmd,
    ssh_cmd,
)
from homelab_setup.interface.cli.helpers import stderr_console


def cli_entrypoint() -> None:
    """Wrapped entrypoint with global error handling.

    Catches SetupError and displays it nicely instead of a traceback.
    Called from pyproject.toml [project.scripts].
    """
    try:
        main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except (click.Abort, KeyboardInterrupt):
        stderr_console.print("\n  [muted]Interrupted[/]")
        sys.exit(130)
    except Exception as e:
        from homelab_setup.interface.cli.core.error_handler import handle_error

        handle_error(e)


@click.group()
@click.option("--debug", is_flag=True, help="Show debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors")
@click.option("--log-file", is_flag=True, help="Also write a session log to ~/.homelab-setup/logs/")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file to use")
@click.version_option(__version__, prog_name="homelab-setup")
@click.pass_context
def main(ctx: click.Context, debug: bool, quiet: bool, log_file: bool, config_path: str | None) -> None:
    """Bootstrap a workstation from a homelab SMB share.

    \b
    EXAMPLES:
        homelab-setup run
        homelab-setup run --smb-server nas --share Secrets --smb-user me --keys all
        homelab-setup fetch-keys --share-path "SSH keys" --policy skip
        homelab-setup clone my-account --repos dotfiles
    """
    configure_logging(debug=debug, quiet=quiet, persist=log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)


main.add_command(run_cmd.run)
main.add_command(keys_cmd.fetch_keys)
main.add_command(ssh_cmd.test_ssh)
main.add_command(clone_cmd.clone)
main.add_command(config_cmd.config)
