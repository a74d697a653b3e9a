"""Parser for `smbclient ls` output.

A listing looks like::

      .                                   D        0  Mon Jan  1 10:00:00 2024
      ..                                  D        0  Mon Jan  1 10:00:00 2024
      SSH keys                            D        0  Tue Feb  6 18:02:11 2024
      id_ed25519                          A      411  Tue Feb  6 18:02:11 2024
      id_ed25519.pub                     AH      103  Tue Feb  6 18:02:11 2024

    		61202244 blocks of size 1024. 10345080 blocks available

Names may contain spaces, so a row is read from the right: the date and
size columns pin down the attribute column and everything before it is the
name. Rows that do not have that shape are ignored.
"""

import re

from homelab_setup.smb.types import EntryKind, RemoteEntry

_ROW_RE = re.compile(
    r"""
    ^\s+(?P<name>\S(?:.*?\S)?)          # name, may contain inner spaces
    \s+(?P<attrs>[A-Z]*)                # DOS attribute letters (may be empty)
    \s+(?P<size>\d+)                    # size in bytes
    \s+(?P<date>\w{3}\s+\w{3}\s+\d{1,2}\s+\d{1,2}:\d{2}:\d{2}\s+\d{4})
    \s*$
    """,
    re.VERBOSE,
)

_PSEUDO_ENTRIES = frozenset({".", ".."})


def parse_listing(raw: str) -> list[RemoteEntry]:
    """Turn raw `ls` output into entries, listing order preserved.

    `.`/`..`, blank lines and the block summary are dropped. An entry is a
    directory when its attribute column contains `D`.
    """
    entries: list[RemoteEntry] = []
    for line in raw.splitlines():
        match = _ROW_RE.match(line)
        if match is None:
            continue
        name = match.group("name")
        if name in _PSEUDO_ENTRIES:
            continue
        kind = EntryKind.DIRECTORY if "D" in match.group("attrs") else EntryKind.FILE
        entries.append(RemoteEntry(name=name, kind=kind))
    return entries
