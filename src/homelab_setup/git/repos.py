"""List an account's GitHub repositories and clone or update them.

Only public repositories are visible without a token. Set GITHUB_TOKEN to
raise the rate limit.
"""

import logging
import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import httpx

from homelab_setup.foundation.errors import ErrorCode, SetupError, tool_missing
from homelab_setup.smb.credentials import PromptSource
from homelab_setup.smb.selector import is_all, split_csv

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class Repository:
    """A repository as returned by the listing API."""

    full_name: str
    """owner/name"""

    ssh_url: str

    @property
    def name(self) -> str:
        return self.full_name.rsplit("/", 1)[-1]


class CloneOutcome(Enum):
    CLONED = "cloned"
    UPDATED = "updated"
    FAILED = "failed"


class RepositoryLister:
    """Lists repositories owned by an account via the GitHub REST API."""

    def __init__(
        self,
        api_base: str = GITHUB_API_BASE,
        token: str | None = None,
        per_page: int = 100,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize with optional GitHub token.

        Args:
            api_base: REST API base URL.
            token: Personal access token; defaults to GITHUB_TOKEN.
            per_page: Page size (GitHub caps this at 100).
            timeout: Request timeout in seconds.
            transport: Custom httpx transport (tests use httpx.MockTransport).
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        token = token or os.environ.get("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._per_page = min(per_page, 100)
        self._client = httpx.Client(
            base_url=api_base,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    def list_for_user(self, account: str) -> list[Repository]:
        """All repositories of `account`, following pagination.

        Raises:
            SetupError: REPO_LISTING_FAILED on HTTP or transport errors.
        """
        repos: list[Repository] = []
        url: str | None = f"/users/{account}/repos"
        params: dict[str, int] | None = {"per_page": self._per_page}

        while url:
            try:
                response = self._client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                detail = f"HTTP {e.response.status_code}"
                if e.response.status_code == 403:
                    detail += " (rate limit exceeded? set GITHUB_TOKEN)"
                raise SetupError(
                    code=ErrorCode.REPO_LISTING_FAILED,
                    context={"account": account, "detail": detail},
                    cause=e,
                ) from e
            except (httpx.RequestError, ValueError) as e:
                raise SetupError(
                    code=ErrorCode.REPO_LISTING_FAILED,
                    context={"account": account, "detail": str(e)},
                    cause=e,
                ) from e

            for item in data:
                try:
                    repos.append(Repository(full_name=item["full_name"], ssh_url=item["ssh_url"]))
                except (KeyError, TypeError) as e:
                    logger.warning("Failed to parse repo entry: %s", e)

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None

        return repos

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RepositoryLister":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def fallback_account() -> str | None:
    """The global git user.name, used when SSH did not reveal the account."""
    try:
        result = subprocess.run(
            ["git", "config", "--global", "user.name"],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        return None
    name = result.stdout.strip()
    return name or None


def select_repositories(
    repos: Sequence[Repository],
    request: str | None,
    prompt: PromptSource,
) -> list[Repository]:
    """Resolve which repositories to clone.

    A request lists full names or bare repository names. Without one, a
    non-interactive run takes everything and an interactive run asks for
    numbers from the printed list (or 'all').
    """
    if request and request.strip():
        if is_all(request):
            return list(repos)
        selected = []
        for wanted in split_csv(request):
            match = next(
                (repo for repo in repos if wanted in (repo.full_name, repo.name)),
                None,
            )
            if match is None:
                logger.warning("Requested repo '%s' not found in the account's repositories", wanted)
            else:
                selected.append(match)
        return selected

    if not prompt.interactive:
        return list(repos)

    answer = prompt.ask("Repositories to clone (comma-separated numbers or 'all')", flag="--repos")
    if is_all(answer):
        return list(repos)

    selected = []
    for part in split_csv(answer):
        if not part.isdigit():
            logger.warning("Invalid selection: %s", part)
            continue
        index = int(part) - 1
        if 0 <= index < len(repos):
            selected.append(repos[index])
        else:
            logger.warning("Index %s out of range; skipping", part)
    return selected


def clone_or_update(repo: Repository, dest_root: Path) -> CloneOutcome:
    """Clone `repo` under `dest_root`, or pull if it is already there.

    Raises:
        SetupError: TOOL_MISSING if git is not installed.
    """
    dest_root = Path(dest_root).expanduser()
    dest_root.mkdir(parents=True, exist_ok=True)
    target = dest_root / repo.name

    if (target / ".git").is_dir():
        logger.info("Repository %s already cloned at %s. Pulling latest...", repo.full_name, target)
        argv = ["git", "-C", str(target), "pull"]
        outcome = CloneOutcome.UPDATED
    else:
        logger.info("Cloning %s into %s...", repo.full_name, target)
        argv = ["git", "clone", repo.ssh_url, str(target)]
        outcome = CloneOutcome.CLONED

    try:
        result = subprocess.run(argv, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise tool_missing("git", cause=e) from e

    if result.returncode != 0:
        error = SetupError(
            code=ErrorCode.REPO_CLONE_FAILED,
            context={"repo": repo.full_name, "detail": result.stderr.strip() or f"exit {result.returncode}"},
        )
        logger.warning(error.message)
        return CloneOutcome.FAILED
    return outcome
