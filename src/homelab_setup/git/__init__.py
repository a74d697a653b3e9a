"""Repository listing and cloning for the detected account."""

from homelab_setup.git.repos import (
    CloneOutcome,
    Repository,
    RepositoryLister,
    clone_or_update,
    fallback_account,
    select_repositories,
)

__all__ = [
    "CloneOutcome",
    "Repository",
    "RepositoryLister",
    "clone_or_update",
    "fallback_account",
    "select_repositories",
]
