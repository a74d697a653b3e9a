"""SMB share browsing and SSH key retrieval.

Flow: resolve_share -> ShareBrowser.list -> select_keys -> KeyInstaller.install
"""

from homelab_setup.smb.browser import ShareBrowser
from homelab_setup.smb.client import ShareTransport, SmbClientTransport
from homelab_setup.smb.credentials import (
    InteractivePrompt,
    PromptSource,
    ResolvedShare,
    ScriptedPrompt,
    ShareOptions,
    prompt_for,
    resolve_share,
)
from homelab_setup.smb.installer import KeyInstaller, KeyStore
from homelab_setup.smb.listing import parse_listing
from homelab_setup.smb.selector import Selection, select_keys, split_csv
from homelab_setup.smb.types import (
    Classification,
    Credential,
    EntryKind,
    InstallPolicy,
    InstallReport,
    KeyMaterial,
    RemoteEntry,
    ShareLocation,
)

__all__ = [
    "Classification",
    "Credential",
    "EntryKind",
    "InstallPolicy",
    "InstallReport",
    "InteractivePrompt",
    "KeyInstaller",
    "KeyMaterial",
    "KeyStore",
    "PromptSource",
    "RemoteEntry",
    "ResolvedShare",
    "ScriptedPrompt",
    "Selection",
    "ShareBrowser",
    "ShareLocation",
    "ShareOptions",
    "ShareTransport",
    "SmbClientTransport",
    "parse_listing",
    "prompt_for",
    "resolve_share",
    "select_keys",
    "split_csv",
]
