"""Key installation into the local key store (normally ~/.ssh).

Files are fetched one at a time into a private scratch directory, then
written flat into the key store: any directory part of a remote name is
dropped. Private keys get 0600, public keys (``*.pub``) 0644, and the key
store itself 0700.
"""

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from homelab_setup.foundation.errors import ErrorCode, SetupError
from homelab_setup.smb.client import ShareTransport
from homelab_setup.smb.types import (
    InstallPolicy,
    InstallReport,
    KeyMaterial,
    ShareLocation,
)

logger = logging.getLogger(__name__)

KEY_STORE_MODE = 0o700


class KeyStore:
    """The destination directory for installed key material."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    def ensure(self) -> Path:
        """Create the store if needed and force owner-only access. Idempotent."""
        self.root.mkdir(mode=KEY_STORE_MODE, parents=True, exist_ok=True)
        os.chmod(self.root, KEY_STORE_MODE)
        return self.root

    def destination(self, name: str) -> Path:
        """Where `name` lands: the store root plus its basename."""
        basename = PurePosixPath(name.replace("\\", "/")).name
        if basename in ("", ".", ".."):
            raise ValueError(f"not a file name: {name!r}")
        return self.root / basename

    def contains(self, name: str) -> bool:
        return self.destination(name).exists()

    def write(self, material: KeyMaterial) -> Path:
        """Write `material` atomically with its classification's mode."""
        dest = self.destination(material.filename)
        mode = material.classification.mode
        partial = dest.with_name(f".{dest.name}.partial")

        fd = os.open(partial, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(material.content)
            # os.open honours the umask; set the exact bits
            os.chmod(partial, mode)
            os.replace(partial, dest)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        return dest


class KeyInstaller:
    """Fetches selected files from a share into a KeyStore.

    Example:
        >>> installer = KeyInstaller(transport, KeyStore(Path("~/.ssh")))
        >>> report = installer.install(location, ["id_ed25519", "id_ed25519.pub"])
        >>> report.count
        2
    """

    def __init__(
        self,
        transport: ShareTransport,
        store: KeyStore,
        policy: InstallPolicy = InstallPolicy.OVERWRITE,
        scratch_root: Path | None = None,
    ) -> None:
        self._transport = transport
        self._store = store
        self._policy = policy
        self._scratch_root = scratch_root

    @property
    def policy(self) -> InstallPolicy:
        return self._policy

    def install(self, location: ShareLocation, names: Iterable[str]) -> InstallReport:
        """Install every name in order; one failure never stops the others.

        Raises:
            SetupError: SHARE_UNREACHABLE / SHARE_CLIENT_MISSING when the
                share itself goes away; per-file failures are reported in
                the returned InstallReport instead.
        """
        report = InstallReport()
        self._store.ensure()

        with tempfile.TemporaryDirectory(prefix="keys-", dir=self._scratch_root) as scratch:
            scratch_dir = Path(scratch)
            os.chmod(scratch_dir, KEY_STORE_MODE)

            for index, name in enumerate(names):
                try:
                    dest = self._store.destination(name)
                except ValueError as e:
                    self._record_failure(report, name, str(e), e)
                    continue

                if self._policy is InstallPolicy.SKIP_EXISTING and dest.exists():
                    logger.info("Key already present, skipping: %s", dest.name)
                    report.already_present.append(dest)
                    continue

                # Indexed staging names keep duplicate requests apart
                staged = scratch_dir / f"{index:03d}-{dest.name}"
                logger.info("Fetching %s...", name)
                try:
                    self._transport.fetch(location, name, staged)
                    material = KeyMaterial.from_file(staged, filename=dest.name)
                except SetupError as e:
                    if e.code is not ErrorCode.KEY_FETCH_FAILED:
                        raise
                    logger.warning(e.message)
                    report.failed.append(e)
                    continue
                except OSError as e:
                    self._record_failure(report, name, str(e), e)
                    continue

                try:
                    installed = self._store.write(material)
                except OSError as e:
                    self._record_failure(report, name, str(e), e)
                    continue
                finally:
                    staged.unlink(missing_ok=True)

                logger.info("Installed %s key: %s", material.classification.value, installed)
                report.installed.append(installed)

        if report.nothing_installed:
            warning = SetupError(
                code=ErrorCode.NO_KEYS_INSTALLED,
                context={"key_dir": str(self._store.root)},
            )
            logger.warning(warning.message)

        return report

    def _record_failure(self, report: InstallReport, name: str, detail: str, cause: Exception) -> None:
        error = SetupError(
            code=ErrorCode.KEY_FETCH_FAILED,
            context={"name": name, "detail": detail},
            cause=cause,
        )
        logger.warning(error.message)
        report.failed.append(error)
