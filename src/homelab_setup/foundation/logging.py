"""Logging configuration for homelab-setup.

Provides centralized logging setup with sensible defaults:
- Default: INFO level (a provisioning run narrates its progress)
- --quiet flag: WARNING level
- --debug flag: DEBUG level with full context
- HOMELAB_SETUP_DEBUG=true or HOMELAB_SETUP_LOG_LEVEL=DEBUG env vars: Override for scripting
- Persistent logs: Stored in ~/.homelab-setup/logs/ with session rotation

Usage:
    from homelab_setup.foundation.logging import configure_logging
    configure_logging(debug=args.debug)

Priority for level resolution (highest to lowest):
    1. Explicit `level` parameter (programmatic override)
    2. HOMELAB_SETUP_LOG_LEVEL env var (any level: DEBUG, INFO, WARNING, etc.)
    3. HOMELAB_SETUP_DEBUG=true env var (simple boolean)
    4. `debug=True` parameter (--debug flag)
    5. `quiet=True` parameter (--quiet flag)
    6. INFO (default)

Secrets registered with `register_secret()` are masked in every record
before it reaches a handler, console or file.
"""

import logging
import os
import re
import sys
import threading
from datetime import datetime
from pathlib import Path

# Format includes module path for tracing issues
_DEBUG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"
_DEFAULT_FORMAT = "[%(levelname)s] %(message)s"

# Noisy libraries we want to quiet even in debug mode
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
)

# Session log retention
_MAX_LOG_SESSIONS = 10

_MASK = "********"

# CSI + single-character escapes, as emitted by coloured tool output
_ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

_secrets: set[str] = set()
_secrets_lock = threading.Lock()


def register_secret(value: str | None) -> None:
    """Mask `value` in all log output for the rest of the process."""
    if not value:
        return
    with _secrets_lock:
        _secrets.add(value)


def clear_secrets() -> None:
    """Forget all registered secrets (useful for testing)."""
    with _secrets_lock:
        _secrets.clear()


def redact(text: str) -> str:
    """Replace every registered secret in `text` and strip ANSI escapes."""
    text = _ANSI_ESCAPE_RE.sub("", text)
    with _secrets_lock:
        # Longest first so a secret containing another is masked whole
        for secret in sorted(_secrets, key=len, reverse=True):
            text = text.replace(secret, _MASK)
    return text


class SecretFilter(logging.Filter):
    """Render the record message once and mask registered secrets in it."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        record.msg = redact(message)
        record.args = None
        return True


def _get_log_directory() -> Path:
    """Get or create the persistent log directory.

    Returns:
        Path to ~/.homelab-setup/logs/ directory
    """
    log_dir = Path.home() / ".homelab-setup" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _cleanup_old_logs(log_dir: Path, max_sessions: int = _MAX_LOG_SESSIONS) -> None:
    """Remove old session logs, keeping only the most recent N.

    Args:
        log_dir: Directory containing log files
        max_sessions: Maximum number of session logs to retain
    """
    if not log_dir.exists():
        return

    log_files = sorted(
        log_dir.glob("session_*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,  # Newest first
    )

    for old_log in log_files[max_sessions:]:
        try:
            old_log.unlink()
        except OSError:
            pass  # Ignore errors during cleanup


def configure_logging(
    *,
    debug: bool = False,
    quiet: bool = False,
    level: int | str | None = None,
    stream: object = None,
    persist: bool = False,
) -> None:
    """Configure logging for the homelab-setup CLI.

    Args:
        debug: Enable DEBUG level with detailed format
        quiet: Only show warnings and errors
        level: Override log level (int or string like "DEBUG", "INFO")
        stream: Output stream (default: stderr)
        persist: Store logs in ~/.homelab-setup/logs/ with session rotation
    """
    resolved_level: int
    if level is not None:
        resolved_level = _parse_level(level)
    elif env_level := os.environ.get("HOMELAB_SETUP_LOG_LEVEL"):
        resolved_level = _parse_level(env_level)
    elif os.environ.get("HOMELAB_SETUP_DEBUG", "").lower() in ("true", "1", "yes"):
        resolved_level = logging.DEBUG
    elif debug:
        resolved_level = logging.DEBUG
    elif quiet:
        resolved_level = logging.WARNING
    else:
        resolved_level = logging.INFO

    console_format = _DEBUG_FORMAT if resolved_level <= logging.DEBUG else _DEFAULT_FORMAT

    root_logger = logging.getLogger()
    # When persisting to file, root must allow DEBUG through so the file handler can capture it
    root_level = logging.DEBUG if persist else resolved_level
    root_logger.setLevel(root_level)
    root_logger.handlers.clear()

    secret_filter = SecretFilter()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(logging.Formatter(console_format))
    console_handler.addFilter(secret_filter)
    root_logger.addHandler(console_handler)

    if persist:
        try:
            log_dir = _get_log_directory()
            _cleanup_old_logs(log_dir)

            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            log_file = log_dir / f"session_{timestamp}.log"

            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
            file_handler.addFilter(secret_filter)
            root_logger.addHandler(file_handler)
            os.chmod(log_file, 0o600)

        except OSError as e:
            # Non-fatal: log to stderr if file logging fails
            sys.stderr.write(f"Warning: Could not enable persistent logging: {e}\n")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(
        "Logging configured: level=%s, debug=%s, persist=%s",
        logging.getLevelName(resolved_level),
        debug,
        persist,
    )


def _parse_level(level: int | str) -> int:
    """Parse log level from int or string."""
    if isinstance(level, int):
        return level
    numeric = getattr(logging, level.upper(), None)
    if isinstance(numeric, int):
        return numeric
    try:
        return int(level)
    except ValueError:
        return logging.INFO
