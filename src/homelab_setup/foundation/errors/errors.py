"""homelab-setup Error System.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints
- Severity that decides whether the process stops
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Configuration errors
        2xxx - Share errors
        3xxx - Key errors
        4xxx - SSH errors
        5xxx - Git errors
        6xxx - Runtime errors
    """

    # 1xxx - Configuration Errors
    CONFIG_MISSING_CREDENTIAL = 1001
    CONFIG_INVALID = 1002

    # 2xxx - Share Errors
    SHARE_UNREACHABLE = 2001
    SHARE_CLIENT_MISSING = 2002

    # 3xxx - Key Errors
    KEY_NOT_FOUND = 3001
    KEY_FETCH_FAILED = 3002
    NO_KEYS_INSTALLED = 3003

    # 4xxx - SSH Errors
    SSH_NO_PRIVATE_KEY = 4001
    SSH_IDENTITY_UNVERIFIED = 4002
    TOOL_MISSING = 4003

    # 5xxx - Git Errors
    REPO_LISTING_FAILED = 5001
    REPO_CLONE_FAILED = 5002
    ACCOUNT_UNKNOWN = 5003

    # 6xxx - Runtime Errors
    RUNTIME_UNEXPECTED = 6001
    RUNTIME_RUNNING_AS_ROOT = 6002

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "config",
            2: "share",
            3: "keys",
            4: "ssh",
            5: "git",
            6: "runtime",
        }.get(prefix, "unknown")

    @property
    def is_fatal(self) -> bool:
        """Whether this error terminates the process.

        Everything else aborts at most one phase (or one item) of a run.
        """
        return self in {
            ErrorCode.CONFIG_MISSING_CREDENTIAL,
            ErrorCode.CONFIG_INVALID,
            ErrorCode.RUNTIME_UNEXPECTED,
            ErrorCode.RUNTIME_RUNNING_AS_ROOT,
        }


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Config errors
    ErrorCode.CONFIG_MISSING_CREDENTIAL: "'{field}' is required in non-interactive mode ({flag}).",
    ErrorCode.CONFIG_INVALID: "Invalid configuration for '{key}': {detail}",

    # Share errors
    ErrorCode.SHARE_UNREACHABLE: "Cannot list {unc}: {detail}",
    ErrorCode.SHARE_CLIENT_MISSING: "SMB client '{binary}' not found on PATH.",

    # Key errors
    ErrorCode.KEY_NOT_FOUND: "Requested key '{name}' not found in share; skipping.",
    ErrorCode.KEY_FETCH_FAILED: "Failed to fetch '{name}': {detail}",
    ErrorCode.NO_KEYS_INSTALLED: "No keys installed into {key_dir}.",

    # SSH errors
    ErrorCode.SSH_NO_PRIVATE_KEY: "No private key available in {key_dir}.",
    ErrorCode.SSH_IDENTITY_UNVERIFIED: "SSH did not confirm authentication to {host} with {key}.",
    ErrorCode.TOOL_MISSING: "Required command '{binary}' not found on PATH.",

    # Git errors
    ErrorCode.REPO_LISTING_FAILED: "Could not list repositories for {account}: {detail}",
    ErrorCode.REPO_CLONE_FAILED: "Clone/pull failed for {repo}: {detail}",
    ErrorCode.ACCOUNT_UNKNOWN: "Cannot determine the Git account. Skipping repository cloning.",

    # Runtime errors
    ErrorCode.RUNTIME_UNEXPECTED: "Unexpected error: {detail}",
    ErrorCode.RUNTIME_RUNNING_AS_ROOT: "Refusing to run as root: keys and repositories would be installed under {home}.",
}


# Recovery hints
RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.CONFIG_MISSING_CREDENTIAL: [
        "Pass {flag} on the command line",
        "Set share defaults in ~/.homelab-setup/config.yaml",
        "Run without --non-interactive to be prompted",
    ],
    ErrorCode.SHARE_UNREACHABLE: [
        "Check the server address and share name",
        "Check the SMB username and password",
        "Try it by hand: smbclient {unc} -U <user> -c ls",
    ],
    ErrorCode.SHARE_CLIENT_MISSING: [
        "Install smbclient (apt install smbclient / dnf install samba-client)",
        "On NixOS: nix-shell -p samba",
    ],
    ErrorCode.SSH_NO_PRIVATE_KEY: [
        "Fetch keys first with 'homelab-setup fetch-keys'",
    ],
    ErrorCode.SSH_IDENTITY_UNVERIFIED: [
        "Check that the public key is registered with your {host} account",
        "Load the key into an agent: eval \"$(ssh-agent -s)\" && ssh-add {key}",
    ],
    ErrorCode.TOOL_MISSING: [
        "Install '{binary}' with your package manager and re-run",
    ],
    ErrorCode.REPO_LISTING_FAILED: [
        "Check network access to the GitHub API",
        "Set GITHUB_TOKEN to raise the API rate limit",
    ],
    ErrorCode.RUNTIME_RUNNING_AS_ROOT: [
        "Run homelab-setup as your normal user, without sudo",
        "Pass --allow-root if root really is the account to set up",
    ],
}


class SetupError(Exception):
    """Base error type for all homelab-setup errors.

    Provides structured error information for:
    - Programmatic error handling (code)
    - User-friendly display (message)
    - Recovery suggestions (recovery_hints)
    - Debugging (context, cause)

    Example:
        >>> err = SetupError(
        ...     code=ErrorCode.KEY_NOT_FOUND,
        ...     context={"name": "id_rsa"},
        ... )
        >>> print(err)
        [HS-3001] Requested key 'id_rsa' not found in share; skipping.
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            return template

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        formatted = []
        for hint in RECOVERY_HINTS.get(self.code, []):
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def is_fatal(self) -> bool:
        return self.code.is_fatal

    @property
    def severity(self) -> str:
        return "fatal" if self.is_fatal else "warning"

    @property
    def category(self) -> str:
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'HS-2001')."""
        return f"HS-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"SetupError(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging/JSON output."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "severity": self.severity,
            "message": self.message,
            "recovery_hints": self.recovery_hints,
            "context": self.context,
        }


# Convenience factory functions

def missing_credential(field: str, flag: str) -> SetupError:
    """Create a CONFIG_MISSING_CREDENTIAL error."""
    return SetupError(
        code=ErrorCode.CONFIG_MISSING_CREDENTIAL,
        context={"field": field, "flag": flag},
    )


def share_unreachable(unc: str, detail: str, cause: Exception | None = None) -> SetupError:
    """Create a SHARE_UNREACHABLE error."""
    return SetupError(
        code=ErrorCode.SHARE_UNREACHABLE,
        context={"unc": unc, "detail": detail},
        cause=cause,
    )


def key_error(
    code: ErrorCode,
    name: str,
    detail: str = "",
    cause: Exception | None = None,
) -> SetupError:
    """Create a per-key error (KEY_NOT_FOUND / KEY_FETCH_FAILED)."""
    return SetupError(
        code=code,
        context={"name": name, "detail": detail},
        cause=cause,
    )


def tool_missing(binary: str, cause: Exception | None = None) -> SetupError:
    """Create a TOOL_MISSING error."""
    return SetupError(
        code=ErrorCode.TOOL_MISSING,
        context={"binary": binary},
        cause=cause,
    )
