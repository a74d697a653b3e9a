"""Error system for homelab-setup."""

from homelab_setup.foundation.errors.errors import (
    ERROR_MESSAGES,
    RECOVERY_HINTS,
    ErrorCode,
    SetupError,
    key_error,
    missing_credential,
    share_unreachable,
    tool_missing,
)

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "RECOVERY_HINTS",
    "SetupError",
    "key_error",
    "missing_credential",
    "share_unreachable",
    "tool_missing",
]
