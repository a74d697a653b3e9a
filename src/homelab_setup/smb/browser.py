"""Share browsing: list what is in a folder of the remote share."""

from __future__ import annotations

import logging

from homelab_setup.smb.client import ShareTransport
from homelab_setup.smb.listing import parse_listing
from homelab_setup.smb.types import RemoteEntry, ShareLocation

logger = logging.getLogger(__name__)


class ShareBrowser:
    """Lists entries of a share through a ShareTransport.

    Nothing is cached: every call goes back to the share, since its
    contents may change between calls.
    """

    def __init__(self, transport: ShareTransport) -> None:
        self._transport = transport

    def list(self, location: ShareLocation) -> list[RemoteEntry]:
        """List `location`.

        Returns an empty list for an empty or nonexistent path.

        Raises:
            SetupError: SHARE_UNREACHABLE if the share cannot be reached or
                the credentials are rejected, SHARE_CLIENT_MISSING if the
                client binary is not installed.
        """
        raw = self._transport.list_directory(location)
        entries = parse_listing(raw)
        logger.debug("Listed %s: %d entries", location, len(entries))
        return entries

    def files(self, location: ShareLocation) -> list[RemoteEntry]:
        return [entry for entry in self.list(location) if entry.is_file]

    def directories(self, location: ShareLocation) -> list[RemoteEntry]:
        return [entry for entry in self.list(location) if entry.is_directory]
