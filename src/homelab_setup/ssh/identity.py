"""SSH identity test against a Git host.

GitHub answers `ssh -T git@github.com` with
``Hi <account>! You've successfully authenticated, but GitHub does not
provide shell access.`` and a non-zero exit status, so the exit status is
ignored and the account name is read from the greeting instead.
"""

import logging
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from homelab_setup.foundation.errors import ErrorCode, SetupError, tool_missing
from homelab_setup.smb.credentials import PromptSource

logger = logging.getLogger(__name__)

_GREETING_RE = re.compile(r"^Hi ([A-Za-z0-9-]+)!", re.MULTILINE)

# Files that live in ~/.ssh but are not private keys
_NON_KEY_FILES = frozenset({
    "config",
    "known_hosts",
    "known_hosts.old",
    "authorized_keys",
    "authorized_keys2",
    "environment",
})


@dataclass(frozen=True, slots=True)
class IdentityResult:
    """Outcome of one identity test.

    Attributes:
        key: Private key that was offered.
        account: Account name parsed from the host's greeting, if any.
        output: Combined ssh output, for diagnostics.
    """

    key: Path
    account: str | None
    output: str

    @property
    def authenticated(self) -> bool:
        return self.account is not None


def parse_account(output: str) -> str | None:
    """Extract the account from a `Hi <account>!` greeting on any line."""
    match = _GREETING_RE.search(output)
    return match.group(1) if match else None


def find_private_keys(key_dir: Path) -> list[Path]:
    """Private key candidates in `key_dir`, sorted by name."""
    key_dir = Path(key_dir).expanduser()
    if not key_dir.is_dir():
        return []
    return sorted(
        path
        for path in key_dir.iterdir()
        if path.is_file()
        and not path.name.endswith(".pub")
        and not path.name.startswith(".")
        and path.name not in _NON_KEY_FILES
    )


def choose_key(
    keys: Sequence[Path],
    preferred: Sequence[str],
    prompt: PromptSource,
) -> Path | None:
    """Pick the key to test.

    One key is used as is. Otherwise the first key named in `preferred`
    wins; failing that a non-interactive run takes the first key and an
    interactive run asks for a number.
    """
    if not keys:
        return None
    if len(keys) == 1:
        logger.info("Only one private key found: %s", keys[0].name)
        return keys[0]

    by_name = {key.name: key for key in keys}
    for name in preferred:
        if name in by_name:
            return by_name[name]

    if not prompt.interactive:
        logger.info("Non-interactive: selecting first private key: %s", keys[0].name)
        return keys[0]

    prompt.show(
        "Which private key do you want to test?",
        [f"{number:2d}) {key.name}" for number, key in enumerate(keys, 1)],
    )
    answer = prompt.ask(f"Select (1-{len(keys)})", default="1")
    try:
        index = int(answer) - 1
    except ValueError:
        index = -1
    if not 0 <= index < len(keys):
        logger.warning("Invalid selection %r; using %s", answer, keys[0].name)
        return keys[0]
    return keys[index]


class IdentityTester:
    """Runs `ssh -T` with one key and reports which account it maps to."""

    def __init__(
        self,
        host: str = "github.com",
        user: str = "git",
        connect_timeout: int = 10,
        binary: str = "ssh",
    ) -> None:
        self.host = host
        self.user = user
        self.connect_timeout = connect_timeout
        self.binary = binary

    def command(self, key: Path) -> list[str]:
        return [
            self.binary,
            "-i", str(key),
            "-o", "BatchMode=yes",
            "-o", "IdentitiesOnly=yes",
            "-o", "StrictHostKeyChecking=accept-new",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-T", f"{self.user}@{self.host}",
        ]

    def test(self, key: Path) -> IdentityResult:
        """Offer `key` to the host.

        Raises:
            SetupError: TOOL_MISSING if ssh is not installed.
        """
        logger.info("Testing SSH authentication to %s using key %s...", self.host, key)
        try:
            result = subprocess.run(
                self.command(key),
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise tool_missing(self.binary, cause=e) from e

        output = (result.stdout + result.stderr).strip()
        account = parse_account(output)
        if account:
            logger.info("SSH key authenticated as %s user: %s", self.host, account)
        else:
            warning = SetupError(
                code=ErrorCode.SSH_IDENTITY_UNVERIFIED,
                context={"host": self.host, "key": str(key)},
            )
            logger.warning(warning.message)
            logger.debug("ssh output: %s", output)
        return IdentityResult(key=key, account=account, output=output)
