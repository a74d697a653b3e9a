"""Allow `python -m homelab_setup`."""

from homelab_setup.interface.cli.core.main import cli_entrypoint

if __name__ == "__main__":
    cli_entrypoint()
