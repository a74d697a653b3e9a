"""homelab-setup: bootstrap a workstation from a homelab SMB share.

Fetches SSH keys from the share into ~/.ssh with the right permissions,
checks which Git account they authenticate as, and clones that account's
repositories.
"""

__version__ = "0.1.0"

from homelab_setup.foundation.errors import ErrorCode, SetupError
from homelab_setup.provision import ProvisionReport, Provisioner, RunSettings

__all__ = [
    "ErrorCode",
    "ProvisionReport",
    "Provisioner",
    "RunSettings",
    "SetupError",
    "__version__",
]
