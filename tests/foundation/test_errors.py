"""Tests for the error system."""

import pytest

from homelab_setup.foundation.errors import (
    ERROR_MESSAGES,
    ErrorCode,
    SetupError,
    key_error,
    missing_credential,
    share_unreachable,
    tool_missing,
)


class TestErrorCode:
    def test_every_code_has_a_message(self) -> None:
        assert set(ERROR_MESSAGES) == set(ErrorCode)

    @pytest.mark.parametrize(
        ("code", "category"),
        [
            (ErrorCode.CONFIG_INVALID, "config"),
            (ErrorCode.SHARE_UNREACHABLE, "share"),
            (ErrorCode.KEY_NOT_FOUND, "keys"),
            (ErrorCode.TOOL_MISSING, "ssh"),
            (ErrorCode.REPO_CLONE_FAILED, "git"),
            (ErrorCode.RUNTIME_UNEXPECTED, "runtime"),
        ],
    )
    def test_category(self, code: ErrorCode, category: str) -> None:
        assert code.category == category

    def test_only_config_and_runtime_are_fatal(self) -> None:
        fatal = {code for code in ErrorCode if code.is_fatal}

        assert fatal == {
            ErrorCode.CONFIG_MISSING_CREDENTIAL,
            ErrorCode.CONFIG_INVALID,
            ErrorCode.RUNTIME_UNEXPECTED,
            ErrorCode.RUNTIME_RUNNING_AS_ROOT,
        }


class TestSetupError:
    """Tests for SetupError."""

    def test_str_includes_error_id(self) -> None:
        error = key_error(ErrorCode.KEY_NOT_FOUND, "id_rsa")

        assert error.error_id == "HS-3001"
        assert str(error) == "[HS-3001] Requested key 'id_rsa' not found in share; skipping."

    def test_missing_credential_is_fatal(self) -> None:
        error = missing_credential("SMB password", "--smb-pass")

        assert error.is_fatal
        assert error.severity == "fatal"
        assert "--smb-pass" in error.message
        assert any("--smb-pass" in hint for hint in error.recovery_hints)

    def test_share_unreachable_is_a_warning(self) -> None:
        cause = OSError("boom")
        error = share_unreachable("//nas/Secrets", "NT_STATUS_LOGON_FAILURE", cause=cause)

        assert error.severity == "warning"
        assert error.cause is cause
        assert "//nas/Secrets" in error.message
        assert any("smbclient //nas/Secrets" in hint for hint in error.recovery_hints)

    def test_missing_context_keeps_template(self) -> None:
        error = SetupError(code=ErrorCode.REPO_CLONE_FAILED)

        assert error.message == "Clone/pull failed for {repo}: {detail}"

    def test_to_dict(self) -> None:
        data = tool_missing("git").to_dict()

        assert data["error_id"] == "HS-4003"
        assert data["code"] == 4003
        assert data["category"] == "ssh"
        assert data["severity"] == "warning"
        assert data["context"] == {"binary": "git"}
        assert data["recovery_hints"]
