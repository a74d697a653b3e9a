"""Key selection: decide which listed files to fetch."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from homelab_setup.foundation.errors import ErrorCode, SetupError, key_error
from homelab_setup.smb.credentials import PromptSource
from homelab_setup.smb.types import RemoteEntry

logger = logging.getLogger(__name__)

ALL_TOKEN = "all"


@dataclass(slots=True)
class Selection:
    """Names to fetch, in request order, plus per-item warnings."""

    names: list[str] = field(default_factory=list)
    missing: list[SetupError] = field(default_factory=list)


def split_csv(value: str) -> list[str]:
    """Split a comma-separated list, trimming items and dropping empty ones."""
    return [item.strip() for item in value.split(",") if item.strip()]


def is_all(value: str) -> bool:
    return value.strip().lower() == ALL_TOKEN


def select_keys(
    entries: Sequence[RemoteEntry],
    request: str | None,
    prompt: PromptSource,
) -> Selection:
    """Resolve the files to fetch from a listing.

    Args:
        entries: The listing of the key folder (directories are ignored).
        request: The --keys value: a CSV of names, "all", or None.
        prompt: Asked when there is no request and the run is interactive.
            A non-interactive run without a request selects everything.

    Returns:
        Selection with the valid names (duplicates kept, order kept) and a
        KEY_NOT_FOUND warning for every requested name not in the listing.
    """
    files = [entry.name for entry in entries if entry.is_file]

    if request is None or not request.strip():
        if not prompt.interactive:
            logger.info("No keys requested; selecting all %d files", len(files))
            return Selection(names=list(files))
        request = prompt.ask("Which keys to copy (comma-separated or 'all')", flag="--keys")

    if is_all(request):
        return Selection(names=list(files))

    available = set(files)
    selection = Selection()
    for name in split_csv(request):
        if name in available:
            selection.names.append(name)
        else:
            warning = key_error(ErrorCode.KEY_NOT_FOUND, name)
            logger.warning(warning.message)
            selection.missing.append(warning)
    return selection
