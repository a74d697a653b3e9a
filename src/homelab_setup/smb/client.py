"""Share transport backed by the `smbclient` binary.

Only two primitives are needed: list a directory and fetch a file by path.
Each call is a separate, blocking `smbclient` process.

The password reaches smbclient through its `PASSWD` environment variable,
so it never appears in the argument vector other users can read from the
process table.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Protocol

from homelab_setup.foundation.errors import ErrorCode, SetupError, key_error, share_unreachable
from homelab_setup.smb.types import Credential, ShareLocation

logger = logging.getLogger(__name__)

# Statuses meaning "the path is not there" rather than "cannot connect"
_MISSING_PATH_STATUSES = (
    "NT_STATUS_OBJECT_NAME_NOT_FOUND",
    "NT_STATUS_OBJECT_PATH_NOT_FOUND",
    "NT_STATUS_NO_SUCH_FILE",
    "NT_STATUS_NOT_A_DIRECTORY",
)

# Characters smbclient's -c parser cannot carry inside a quoted argument
_UNQUOTABLE = ('"', ";")


class ShareTransport(Protocol):
    """The two remote primitives the browser and installer depend on."""

    def list_directory(self, location: ShareLocation) -> str:
        """Return raw `ls` output for `location` ("" when the path is missing)."""
        ...

    def fetch(self, location: ShareLocation, name: str, destination: Path) -> None:
        """Copy `location/name` to the local file `destination`."""
        ...


def _quote(value: str) -> str:
    """Quote a remote or local path for an smbclient -c command."""
    if any(ch in value for ch in _UNQUOTABLE):
        raise ValueError(f"cannot pass {value!r} to smbclient (contains '\"' or ';')")
    return f'"{value}"'


def _status_line(output: str) -> str:
    """Pick the most informative line of smbclient's output for messages."""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    for line in reversed(lines):
        if "NT_STATUS_" in line:
            return line
    return lines[-1] if lines else "no output"


class SmbClientTransport:
    """ShareTransport implementation that shells out to smbclient."""

    def __init__(
        self,
        credential: Credential,
        binary: str = "smbclient",
        timeout: float | None = None,
    ) -> None:
        self._credential = credential
        self._binary = binary
        self._timeout = timeout

    def _run(self, location: ShareLocation, command: str) -> subprocess.CompletedProcess[str]:
        argv = [self._binary, location.unc, "-U", self._credential.username]
        if not location.is_root:
            argv += ["-D", location.remote_path]
        argv += ["-c", command]

        env = {**os.environ, "PASSWD": self._credential.password}
        logger.debug("Running: %s", " ".join(argv))
        try:
            return subprocess.run(
                argv,
                capture_output=True,
                text=True,
                env=env,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise SetupError(
                code=ErrorCode.SHARE_CLIENT_MISSING,
                context={"binary": self._binary},
                cause=e,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise share_unreachable(location.unc, f"timed out after {self._timeout}s", cause=e) from e

    def list_directory(self, location: ShareLocation) -> str:
        result = self._run(location, "ls")
        output = f"{result.stdout}\n{result.stderr}"
        if result.returncode == 0:
            return result.stdout
        if any(status in output for status in _MISSING_PATH_STATUSES):
            logger.debug("Path %s does not exist: %s", location, _status_line(output))
            return ""
        raise share_unreachable(location.unc, _status_line(output))

    def fetch(self, location: ShareLocation, name: str, destination: Path) -> None:
        try:
            command = f"get {_quote(name)} {_quote(str(destination))}"
        except ValueError as e:
            raise key_error(ErrorCode.KEY_FETCH_FAILED, name, str(e), cause=e) from e

        result = self._run(location, command)
        output = f"{result.stdout}\n{result.stderr}"
        if result.returncode == 0 and destination.is_file():
            return
        if result.returncode != 0 and not any(s in output for s in _MISSING_PATH_STATUSES):
            # Connection-level failure: the rest of the batch would fail too
            if "NT_STATUS_LOGON_FAILURE" in output or "Connection to" in output:
                raise share_unreachable(location.unc, _status_line(output))
        raise key_error(ErrorCode.KEY_FETCH_FAILED, name, _status_line(output))
