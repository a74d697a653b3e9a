"""Workstation provisioning: fetch keys, verify the identity, clone repos.

Each phase runs with whatever the previous one produced. A phase that
fails logs a warning and the next one still runs. Only fatal errors stop
the run: a missing credential in non-interactive mode, running as root,
or an interrupt.

Example:
    >>> settings = RunSettings.from_config(get_config(), non_interactive=True, ...)
    >>> report = Provisioner(settings, ScriptedPrompt()).run()
    >>> report.keys.count
    2
"""

import logging
import shutil
import signal
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from homelab_setup.foundation.config import SetupConfig
from homelab_setup.foundation.errors import ErrorCode, SetupError
from homelab_setup.foundation.types.config import GitConfig, SmbConfig, SshConfig
from homelab_setup.git import (
    CloneOutcome,
    RepositoryLister,
    clone_or_update,
    fallback_account,
    select_repositories,
)
from homelab_setup.preflight import PreflightReport, check_environment
from homelab_setup.smb import (
    Credential,
    InstallPolicy,
    InstallReport,
    KeyInstaller,
    KeyStore,
    PromptSource,
    ShareBrowser,
    ShareOptions,
    ShareTransport,
    SmbClientTransport,
    resolve_share,
    select_keys,
    split_csv,
)
from homelab_setup.smb.selector import is_all
from homelab_setup.ssh import (
    AgentLoader,
    IdentityResult,
    IdentityTester,
    choose_key,
    ensure_host_entry,
    find_private_keys,
)

logger = logging.getLogger(__name__)

TransportFactory = Callable[[Credential], ShareTransport]
ListerFactory = Callable[[], RepositoryLister]

SSH_BINARY = "ssh"
GIT_BINARY = "git"

# Errors after which the key phase gives up but the run continues
_SHARE_PHASE_ERRORS = frozenset({ErrorCode.SHARE_UNREACHABLE, ErrorCode.SHARE_CLIENT_MISSING})


@dataclass(frozen=True, slots=True)
class RunSettings:
    """Everything one run needs, fixed before the run starts."""

    share: ShareOptions = field(default_factory=ShareOptions)
    keys: str | None = None
    """--keys: CSV of file names or "all"; None asks (or takes all)."""

    repos: str | None = None
    """--repos: CSV of repository names or "all"."""

    non_interactive: bool = False
    policy: InstallPolicy = InstallPolicy.OVERWRITE
    key_dir: Path = Path("~/.ssh")
    clone_dir: Path = Path("~/Git")
    skip_keys: bool = False
    skip_repos: bool = False
    allow_root: bool = False
    """Run even when the effective user is root."""

    smb: SmbConfig = field(default_factory=SmbConfig)
    ssh: SshConfig = field(default_factory=SshConfig)
    git: GitConfig = field(default_factory=GitConfig)

    @classmethod
    def from_config(
        cls,
        config: SetupConfig,
        *,
        server: str | None = None,
        share: str | None = None,
        share_path: str | None = None,
        username: str | None = None,
        password: str | None = None,
        keys: str | None = None,
        repos: str | None = None,
        non_interactive: bool = False,
        policy: str | None = None,
        key_dir: str | Path | None = None,
        clone_dir: str | Path | None = None,
        skip_keys: bool = False,
        skip_repos: bool = False,
        allow_root: bool = False,
    ) -> "RunSettings":
        """Merge command-line values over configuration defaults.

        Raises:
            ValueError: If `policy` is not a known install policy.
        """
        return cls(
            share=ShareOptions(
                server=server or config.share.server or None,
                share=share or config.share.name or None,
                share_path=share_path if share_path is not None else (config.share.path or None),
                username=username or config.share.username or None,
                password=password or None,
            ),
            keys=keys,
            repos=repos,
            non_interactive=non_interactive,
            policy=InstallPolicy.from_string(policy or config.keys.policy),
            key_dir=Path(key_dir or config.keys.directory).expanduser(),
            clone_dir=Path(clone_dir or config.git.clone_dir).expanduser(),
            skip_keys=skip_keys,
            skip_repos=skip_repos,
            allow_root=allow_root,
            smb=config.smb,
            ssh=config.ssh,
            git=config.git,
        )


@dataclass(slots=True)
class ProvisionReport:
    """What a run achieved."""

    keys: InstallReport = field(default_factory=InstallReport)
    identity: IdentityResult | None = None
    account: str | None = None
    cloned: dict[str, CloneOutcome] = field(default_factory=dict)
    """Repository full name -> outcome."""


class Provisioner:
    """Runs the provisioning phases against one RunSettings.

    Collaborators are injectable so the phases can run against fakes:
    `transport_factory` builds the share transport from the resolved
    credential, `lister_factory` builds the repository lister and `agent`
    loads keys into ssh-agent.
    """

    def __init__(
        self,
        settings: RunSettings,
        prompt: PromptSource,
        transport_factory: TransportFactory | None = None,
        tester: IdentityTester | None = None,
        lister_factory: ListerFactory | None = None,
        agent: AgentLoader | None = None,
    ) -> None:
        self.settings = settings
        self.prompt = prompt
        self._transport_factory = transport_factory or self._default_transport
        self._tester = tester or IdentityTester(
            host=settings.ssh.host,
            user=settings.ssh.user,
            connect_timeout=settings.ssh.connect_timeout,
        )
        self._lister_factory = lister_factory or self._default_lister
        self._agent = agent or AgentLoader()
        self._scratch: Path | None = None

    def _default_transport(self, credential: Credential) -> ShareTransport:
        return SmbClientTransport(
            credential,
            binary=self.settings.smb.binary,
            timeout=self.settings.smb.timeout,
        )

    def _default_lister(self) -> RepositoryLister:
        return RepositoryLister(
            api_base=self.settings.git.api_base,
            per_page=self.settings.git.per_page,
            timeout=self.settings.git.request_timeout,
        )

    @property
    def scratch_dir(self) -> Path | None:
        """The run-scoped scratch directory while a run is active."""
        return self._scratch

    # =========================================================================
    # Entry points
    # =========================================================================

    def run(self) -> ProvisionReport:
        """Run every phase.

        A phase whose command is missing is skipped after the preflight
        warning.

        Raises:
            SetupError: Only for fatal errors (CONFIG_MISSING_CREDENTIAL,
                RUNTIME_RUNNING_AS_ROOT).
        """
        checks = self.preflight()
        report = ProvisionReport()
        with self._run_scope():
            if self.settings.skip_keys:
                logger.info("Skipping key fetch")
            elif not checks.lacks(self.settings.smb.binary):
                report.keys = self._fetch_keys()

            if not checks.lacks(SSH_BINARY):
                report.identity = self.test_identity()
            report.account = report.identity.account if report.identity else None

            if self.settings.skip_repos:
                logger.info("Skipping repository cloning")
            elif not checks.lacks(GIT_BINARY):
                report.cloned = self.clone_repositories(report.account)
        return report

    def preflight(self) -> PreflightReport:
        """Refuse root and report the commands the enabled phases lack."""
        tools: dict[str, str] = {}
        if not self.settings.skip_keys:
            tools[self.settings.smb.binary] = "key fetch"
        tools[SSH_BINARY] = "SSH identity test"
        if self.settings.ssh.add_to_agent:
            tools["ssh-add"] = "ssh-agent loading"
        if not self.settings.skip_repos:
            tools[GIT_BINARY] = "repository cloning"

        checks = check_environment(tools, allow_root=self.settings.allow_root)
        for binary, step in checks.missing.items():
            code = ErrorCode.SHARE_CLIENT_MISSING if binary == self.settings.smb.binary else ErrorCode.TOOL_MISSING
            warning = SetupError(code=code, context={"binary": binary})
            logger.warning("%s Skipping %s.", warning.message, step)
            for hint in warning.recovery_hints:
                logger.info("  hint: %s", hint)
        return checks

    def fetch_keys(self) -> InstallReport:
        """Run the key fetch phase on its own."""
        with self._run_scope():
            return self._fetch_keys()

    # =========================================================================
    # Phases
    # =========================================================================

    def _fetch_keys(self) -> InstallReport:
        resolved = resolve_share(self.settings.share, self.prompt)
        transport = self._transport_factory(resolved.credential)
        browser = ShareBrowser(transport)
        location = resolved.location

        try:
            if not resolved.path_given and self.prompt.interactive:
                folders = browser.directories(location)
                if folders:
                    self.prompt.show(f"Folders in {location}:", [folder.name for folder in folders])
                    answer = self.prompt.ask("Folder to fetch keys from (empty for the share root)")
                    if answer:
                        location = location.child(answer)

            files = browser.files(location)
            if not files:
                logger.warning("No files found in %s", location)
                return InstallReport()

            self.prompt.show(f"Files in {location}:", [entry.name for entry in files])

            selection = select_keys(files, self.settings.keys, self.prompt)
            installer = KeyInstaller(
                transport,
                KeyStore(self.settings.key_dir),
                policy=self.settings.policy,
                scratch_root=self._scratch,
            )
            report = installer.install(location, selection.names)
        except SetupError as e:
            if e.code not in _SHARE_PHASE_ERRORS:
                raise
            logger.warning(e.message)
            for hint in e.recovery_hints:
                logger.info("  hint: %s", hint)
            return InstallReport()

        logger.info("Installed %d key(s) into %s", report.count, self.settings.key_dir)
        return report

    def test_identity(self, key: Path | None = None) -> IdentityResult | None:
        """Find a private key and test it against the Git host.

        Returns None when no key is available or ssh is missing.
        """
        if key is None:
            keys = find_private_keys(self.settings.key_dir)
            if not keys:
                warning = SetupError(
                    code=ErrorCode.SSH_NO_PRIVATE_KEY,
                    context={"key_dir": str(self.settings.key_dir)},
                )
                logger.warning(warning.message)
                return None
            preferred = [] if not self.settings.keys or is_all(self.settings.keys) else split_csv(self.settings.keys)
            key = choose_key(keys, preferred, self.prompt)

        try:
            result = self._tester.test(key)
        except SetupError as e:
            if e.code is not ErrorCode.TOOL_MISSING:
                raise
            logger.warning(e.message)
            return None

        if result.authenticated and self.settings.ssh.write_config:
            try:
                ensure_host_entry(
                    self.settings.key_dir / "config",
                    self.settings.ssh.host,
                    key,
                    user=self.settings.ssh.user,
                )
            except OSError as e:
                logger.warning("Could not update SSH config: %s", e)

        if result.authenticated and self.settings.ssh.add_to_agent:
            others = [path for path in find_private_keys(self.settings.key_dir) if path != key]
            self._agent.add([key, *others])
        return result

    def clone_repositories(self, account: str | None) -> dict[str, CloneOutcome]:
        """List `account`'s repositories and clone or update the selection."""
        if not account:
            account = fallback_account()
            if account:
                logger.info("Using git user.name as the account: %s", account)
        if not account:
            logger.warning(SetupError(code=ErrorCode.ACCOUNT_UNKNOWN).message)
            return {}

        try:
            with self._lister_factory() as lister:
                repos = lister.list_for_user(account)
        except SetupError as e:
            if e.code is not ErrorCode.REPO_LISTING_FAILED:
                raise
            logger.warning(e.message)
            return {}

        if not repos:
            logger.info("No repositories found for %s", account)
            return {}

        self.prompt.show(
            f"Repositories for {account}:",
            [f"{number:2d}) {repo.full_name}" for number, repo in enumerate(repos, 1)],
        )

        outcomes: dict[str, CloneOutcome] = {}
        for repo in select_repositories(repos, self.settings.repos, self.prompt):
            try:
                outcomes[repo.full_name] = clone_or_update(repo, self.settings.clone_dir)
            except SetupError as e:
                if e.code is not ErrorCode.TOOL_MISSING:
                    raise
                logger.warning(e.message)
                break
        return outcomes

    # =========================================================================
    # Run scope
    # =========================================================================

    @contextmanager
    def _run_scope(self) -> Iterator[Path]:
        """Create the scratch directory and remove it on every exit path."""
        scratch = Path(tempfile.mkdtemp(prefix="homelab-setup-"))
        self._scratch = scratch
        try:
            with _terminate_as_exit():
                yield scratch
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
            self._scratch = None
            logger.debug("Removed scratch directory %s", scratch)


@contextmanager
def _terminate_as_exit() -> Iterator[None]:
    """Turn SIGTERM into SystemExit so cleanup runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
