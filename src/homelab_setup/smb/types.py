"""Data model for share browsing and key installation."""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from homelab_setup.foundation.errors import SetupError

_SEGMENT_SPLIT_RE = re.compile(r"[/\\]+")


@dataclass(frozen=True, slots=True)
class ShareLocation:
    """A directory tree on a remote share.

    Attributes:
        server: Hostname or IP of the SMB server.
        share: Share name.
        path: Ordered path segments below the share root; empty is the root.
    """

    server: str
    share: str
    path: tuple[str, ...] = ()

    @classmethod
    def from_parts(cls, server: str, share: str, path: str | None = None) -> "ShareLocation":
        """Build a location from a `/`- or `\\`-separated path string."""
        segments = tuple(s for s in _SEGMENT_SPLIT_RE.split(path or "") if s and s != ".")
        return cls(server=server, share=share, path=segments)

    @property
    def is_root(self) -> bool:
        return not self.path

    @property
    def remote_path(self) -> str:
        """Path below the share root joined with `/` ("" for the root)."""
        return "/".join(self.path)

    @property
    def unc(self) -> str:
        return f"//{self.server}/{self.share}"

    def child(self, name: str) -> "ShareLocation":
        return ShareLocation(self.server, self.share, (*self.path, name))

    def __str__(self) -> str:
        return f"{self.unc}/{self.remote_path}" if self.path else self.unc


@dataclass(frozen=True, slots=True)
class Credential:
    """SMB username and password, held in memory for one run only."""

    username: str
    password: str = field(repr=False)

    def __str__(self) -> str:
        return self.username


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class RemoteEntry:
    """One row of a remote directory listing."""

    name: str
    kind: EntryKind

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


class Classification(Enum):
    """Whether a key file is secret or shareable, derived from its name."""

    PRIVATE = "private"
    PUBLIC = "public"

    @classmethod
    def for_name(cls, name: str) -> "Classification":
        return cls.PUBLIC if PurePosixPath(name).name.endswith(".pub") else cls.PRIVATE

    @property
    def mode(self) -> int:
        """Permission bits applied to installed files of this class."""
        return 0o644 if self is Classification.PUBLIC else 0o600


@dataclass(frozen=True, slots=True)
class KeyMaterial:
    """A retrieved key file ready to be written into the key store."""

    filename: str
    classification: Classification
    content: bytes = field(repr=False)

    @classmethod
    def from_file(cls, path: Path, filename: str | None = None) -> "KeyMaterial":
        name = filename or path.name
        return cls(
            filename=name,
            classification=Classification.for_name(name),
            content=path.read_bytes(),
        )


class InstallPolicy(Enum):
    """What the installer does when the destination already exists."""

    OVERWRITE = "overwrite"
    """Always fetch and rewrite the destination."""

    SKIP_EXISTING = "skip"
    """Leave an existing destination alone and do not fetch it."""

    @classmethod
    def from_string(cls, value: str) -> "InstallPolicy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown install policy {value!r} (expected one of: {choices})") from None


@dataclass(slots=True)
class InstallReport:
    """Outcome of one installer run."""

    installed: list[Path] = field(default_factory=list)
    """Destinations written during this run."""

    already_present: list[Path] = field(default_factory=list)
    """Destinations skipped because they existed (skip policy only)."""

    failed: list[SetupError] = field(default_factory=list)
    """Per-item warnings (fetch failures)."""

    @property
    def count(self) -> int:
        """Number of keys installed by this run."""
        return len(self.installed)

    @property
    def nothing_installed(self) -> bool:
        """True when the key store gained nothing and held nothing of the selection."""
        return not self.installed and not self.already_present
