"""End-to-end scenarios for the Provisioner with fake collaborators."""

import logging
import stat
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import AnswerPrompt, FakeTransport

from homelab_setup.foundation.config import SetupConfig
from homelab_setup.foundation.errors import ErrorCode, SetupError, share_unreachable
from homelab_setup.foundation.logging import configure_logging
from homelab_setup.git import CloneOutcome, Repository
from homelab_setup.provision import Provisioner, RunSettings
from homelab_setup.smb import InstallPolicy, ScriptedPrompt
from homelab_setup.ssh import IdentityResult


def settings_for(tmp_path: Path, **overrides) -> RunSettings:
    values = {
        "server": "nas",
        "share": "Secrets",
        "username": "me",
        "password": "hunter2",
        "key_dir": tmp_path / ".ssh",
        "clone_dir": tmp_path / "Git",
        "non_interactive": True,
        "skip_repos": True,
    }
    values.update(overrides)
    return RunSettings.from_config(SetupConfig(), **values)


def fake_tester(account: str | None = "octo-cat") -> MagicMock:
    tester = MagicMock()
    tester.test.side_effect = lambda key: IdentityResult(key=key, account=account, output="")
    return tester


def mode_of(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestRunSettings:
    def test_flags_override_config(self, tmp_path) -> None:
        config = SetupConfig()
        settings = RunSettings.from_config(config, server="nas", policy="skip", key_dir=tmp_path)

        assert settings.share.server == "nas"
        assert settings.policy is InstallPolicy.SKIP_EXISTING
        assert settings.key_dir == tmp_path

    def test_config_defaults(self, isolated_env) -> None:
        settings = RunSettings.from_config(SetupConfig())

        assert settings.share.server is None
        assert settings.policy is InstallPolicy.OVERWRITE
        assert settings.key_dir == isolated_env / ".ssh"
        assert settings.clone_dir == isolated_env / "Git"

    def test_invalid_policy(self) -> None:
        with pytest.raises(ValueError):
            RunSettings.from_config(SetupConfig(), policy="merge")


class TestKeyFetchPhase:
    """The key fetch scenarios."""

    def test_two_keys_installed_with_modes(self, tmp_path, key_files) -> None:
        transport = FakeTransport(files=key_files)
        settings = settings_for(tmp_path, keys="id_ed25519,id_ed25519.pub")

        report = Provisioner(settings, ScriptedPrompt(), lambda credential: transport).fetch_keys()

        key_dir = tmp_path / ".ssh"
        assert report.count == 2
        assert mode_of(key_dir / "id_ed25519") == 0o600
        assert mode_of(key_dir / "id_ed25519.pub") == 0o644
        assert not (key_dir / "notes.txt").exists()

    def test_unknown_key_skipped_others_installed(self, tmp_path, key_files, caplog) -> None:
        transport = FakeTransport(files=key_files)
        settings = settings_for(tmp_path, keys="id_rsa,id_ed25519")

        with caplog.at_level(logging.WARNING):
            report = Provisioner(settings, ScriptedPrompt(), lambda credential: transport).fetch_keys()

        assert [p.name for p in report.installed] == ["id_ed25519"]
        assert "id_rsa" in caplog.text

    def test_missing_password_non_interactive_fails_before_network(self, tmp_path) -> None:
        factory = MagicMock()
        settings = settings_for(tmp_path, password=None)

        with pytest.raises(SetupError) as exc_info:
            Provisioner(settings, ScriptedPrompt(), factory).run()

        assert exc_info.value.code == ErrorCode.CONFIG_MISSING_CREDENTIAL
        factory.assert_not_called()

    def test_unreachable_share_continues_with_zero_keys(self, tmp_path, caplog) -> None:
        transport = FakeTransport(list_error=share_unreachable("//nas/Secrets", "NT_STATUS_HOST_UNREACHABLE"))
        tester = fake_tester()
        settings = settings_for(tmp_path)

        with caplog.at_level(logging.WARNING):
            report = Provisioner(settings, ScriptedPrompt(), lambda credential: transport, tester=tester).run()

        assert report.keys.count == 0
        assert transport.fetched == []
        assert "Cannot list //nas/Secrets" in caplog.text
        # Identity phase still ran and found nothing to test
        assert report.identity is None
        assert "No private key available" in caplog.text

    def test_empty_folder_warns(self, tmp_path, caplog) -> None:
        settings = settings_for(tmp_path, share_path="empty")
        transport = FakeTransport(subtrees={"empty": {}})

        with caplog.at_level(logging.WARNING):
            report = Provisioner(settings, ScriptedPrompt(), lambda credential: transport).fetch_keys()

        assert report.count == 0
        assert "No files found" in caplog.text

    def test_skip_policy_second_run_fetches_nothing(self, tmp_path, key_files) -> None:
        settings = settings_for(tmp_path, keys="all", policy="skip")

        Provisioner(settings, ScriptedPrompt(), lambda credential: FakeTransport(files=key_files)).fetch_keys()
        second = FakeTransport(files=key_files)
        report = Provisioner(settings, ScriptedPrompt(), lambda credential: second).fetch_keys()

        assert second.fetched == []
        assert len(report.already_present) == 3

    def test_interactive_folder_pick(self, tmp_path, key_files) -> None:
        transport = FakeTransport(folders={"": ["SSH keys"]}, subtrees={"SSH keys": key_files})
        settings = settings_for(tmp_path, non_interactive=False, password=None)
        prompt = AnswerPrompt("SSH keys", "id_ed25519")

        report = Provisioner(settings, prompt, lambda credential: transport).fetch_keys()

        assert [p.name for p in report.installed] == ["id_ed25519"]
        assert transport.fetched == [("SSH keys", "id_ed25519")]

    def test_folder_and_file_menus_shown_when_quiet(self, tmp_path, key_files) -> None:
        configure_logging(quiet=True)
        transport = FakeTransport(folders={"": ["SSH keys"]}, subtrees={"SSH keys": key_files})
        settings = settings_for(tmp_path, non_interactive=False)
        prompt = AnswerPrompt("SSH keys", "all")

        Provisioner(settings, prompt, lambda credential: transport).fetch_keys()

        assert prompt.shown == [
            ("Folders in //nas/Secrets:", ["SSH keys"]),
            ("Files in //nas/Secrets/SSH keys:", ["id_ed25519", "id_ed25519.pub", "notes.txt"]),
        ]

    def test_path_given_skips_folder_prompt(self, tmp_path, key_files) -> None:
        transport = FakeTransport(folders={"": ["other"]}, subtrees={"SSH keys": key_files})
        settings = settings_for(tmp_path, non_interactive=False, share_path="SSH keys")
        prompt = AnswerPrompt("all")

        report = Provisioner(settings, prompt, lambda credential: transport).fetch_keys()

        assert report.count == 3
        assert len(prompt.asked) == 1

    def test_scratch_removed_after_run(self, tmp_path, key_files) -> None:
        provisioner = Provisioner(
            settings_for(tmp_path, keys="all"),
            ScriptedPrompt(),
            lambda credential: FakeTransport(files=key_files),
        )
        seen: list[Path] = []
        original = provisioner._fetch_keys

        def spy():
            seen.append(provisioner.scratch_dir)
            return original()

        provisioner._fetch_keys = spy
        provisioner.fetch_keys()

        assert seen[0] is not None
        assert not seen[0].exists()
        assert provisioner.scratch_dir is None

    def test_scratch_removed_on_interrupt(self, tmp_path) -> None:
        class Interrupting(FakeTransport):
            def list_directory(self, location):
                raise KeyboardInterrupt

        provisioner = Provisioner(settings_for(tmp_path), ScriptedPrompt(), lambda credential: Interrupting())
        seen: list[Path] = []
        original = provisioner._fetch_keys

        def spy():
            seen.append(provisioner.scratch_dir)
            return original()

        provisioner._fetch_keys = spy
        with pytest.raises(KeyboardInterrupt):
            provisioner.fetch_keys()

        assert not seen[0].exists()


class TestIdentityPhase:
    def test_authenticated_writes_ssh_config(self, tmp_path, key_files) -> None:
        settings = settings_for(tmp_path, keys="all")
        provisioner = Provisioner(
            settings,
            ScriptedPrompt(),
            lambda credential: FakeTransport(files=key_files),
            tester=fake_tester("octo-cat"),
        )

        report = provisioner.run()

        assert report.account == "octo-cat"
        config = (tmp_path / ".ssh" / "config").read_text()
        assert "Host github.com" in config
        # notes.txt sorts after id_ed25519, so the first key is the one tested
        assert f'IdentityFile "{tmp_path / ".ssh" / "id_ed25519"}"' in config

    def test_preferred_key_from_keys_flag(self, tmp_path) -> None:
        key_dir = tmp_path / ".ssh"
        key_dir.mkdir()
        for name in ["id_a", "id_b"]:
            (key_dir / name).write_text("x")
        tester = fake_tester()
        settings = settings_for(tmp_path, keys="id_b,id_b.pub", skip_keys=True)

        Provisioner(settings, ScriptedPrompt(), tester=tester).run()

        assert tester.test.call_args.args[0] == key_dir / "id_b"

    def test_unverified_leaves_ssh_config_alone(self, tmp_path) -> None:
        key_dir = tmp_path / ".ssh"
        key_dir.mkdir()
        (key_dir / "id_rsa").write_text("x")
        settings = settings_for(tmp_path, skip_keys=True)

        report = Provisioner(settings, ScriptedPrompt(), tester=fake_tester(None)).run()

        assert report.identity is not None
        assert not report.identity.authenticated
        assert not (key_dir / "config").exists()

    def test_authenticated_key_added_to_agent(self, tmp_path) -> None:
        key_dir = tmp_path / ".ssh"
        key_dir.mkdir()
        for name in ["id_a", "id_b", "id_b.pub"]:
            (key_dir / name).write_text("x")
        settings = settings_for(tmp_path, keys="id_b", skip_keys=True)
        settings = replace(settings, ssh=replace(settings.ssh, add_to_agent=True))
        agent = MagicMock()

        Provisioner(settings, ScriptedPrompt(), tester=fake_tester(), agent=agent).run()

        agent.add.assert_called_once_with([key_dir / "id_b", key_dir / "id_a"])

    def test_agent_untouched_by_default_or_when_unverified(self, tmp_path) -> None:
        key_dir = tmp_path / ".ssh"
        key_dir.mkdir()
        (key_dir / "id_rsa").write_text("x")
        settings = settings_for(tmp_path, skip_keys=True)
        agent = MagicMock()

        Provisioner(settings, ScriptedPrompt(), tester=fake_tester(), agent=agent).run()
        enabled = replace(settings, ssh=replace(settings.ssh, add_to_agent=True))
        Provisioner(enabled, ScriptedPrompt(), tester=fake_tester(None), agent=agent).run()

        agent.add.assert_not_called()

    def test_missing_ssh_binary_is_a_warning(self, tmp_path, caplog) -> None:
        key_dir = tmp_path / ".ssh"
        key_dir.mkdir()
        (key_dir / "id_rsa").write_text("x")
        tester = MagicMock()
        tester.test.side_effect = SetupError(code=ErrorCode.TOOL_MISSING, context={"binary": "ssh"})

        with caplog.at_level(logging.WARNING):
            result = Provisioner(settings_for(tmp_path), ScriptedPrompt(), tester=tester).test_identity()

        assert result is None
        assert "'ssh' not found" in caplog.text


class TestRepositoryPhase:
    """Repository phase with a fake lister and patched git."""

    repos = [
        Repository("octo-cat/dotfiles", "git@github.com:octo-cat/dotfiles.git"),
        Repository("octo-cat/homelab", "git@github.com:octo-cat/homelab.git"),
    ]

    def lister_factory(self, repos=None, error: SetupError | None = None):
        lister = MagicMock()
        lister.__enter__.return_value = lister
        if error is not None:
            lister.list_for_user.side_effect = error
        else:
            lister.list_for_user.return_value = self.repos if repos is None else repos
        return lambda: lister

    def test_clones_requested_repositories(self, tmp_path, monkeypatch) -> None:
        cloned: list[str] = []
        monkeypatch.setattr(
            "homelab_setup.provision.clone_or_update",
            lambda repo, root: cloned.append(repo.full_name) or CloneOutcome.CLONED,
        )
        settings = settings_for(tmp_path, repos="homelab", skip_repos=False)

        outcomes = Provisioner(settings, ScriptedPrompt(), lister_factory=self.lister_factory()).clone_repositories(
            "octo-cat"
        )

        assert cloned == ["octo-cat/homelab"]
        assert outcomes == {"octo-cat/homelab": CloneOutcome.CLONED}

    def test_falls_back_to_git_user_name(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr("homelab_setup.provision.fallback_account", lambda: "octo-cat")
        monkeypatch.setattr("homelab_setup.provision.clone_or_update", lambda repo, root: CloneOutcome.UPDATED)
        factory = self.lister_factory()
        settings = settings_for(tmp_path, skip_repos=False)

        outcomes = Provisioner(settings, ScriptedPrompt(), lister_factory=factory).clone_repositories(None)

        factory().list_for_user.assert_called_once_with("octo-cat")
        assert set(outcomes) == {"octo-cat/dotfiles", "octo-cat/homelab"}

    def test_repository_menu_shown_when_quiet(self, tmp_path, monkeypatch) -> None:
        configure_logging(quiet=True)
        monkeypatch.setattr("homelab_setup.provision.clone_or_update", lambda repo, root: CloneOutcome.CLONED)
        settings = settings_for(tmp_path, non_interactive=False, skip_repos=False)
        prompt = AnswerPrompt("2")

        outcomes = Provisioner(settings, prompt, lister_factory=self.lister_factory()).clone_repositories("octo-cat")

        assert prompt.shown == [
            ("Repositories for octo-cat:", [" 1) octo-cat/dotfiles", " 2) octo-cat/homelab"]),
        ]
        assert outcomes == {"octo-cat/homelab": CloneOutcome.CLONED}

    def test_unknown_account_skips(self, tmp_path, monkeypatch, caplog) -> None:
        monkeypatch.setattr("homelab_setup.provision.fallback_account", lambda: None)
        factory = MagicMock()

        with caplog.at_level(logging.WARNING):
            outcomes = Provisioner(settings_for(tmp_path), ScriptedPrompt(), lister_factory=factory).clone_repositories(
                None
            )

        assert outcomes == {}
        factory.assert_not_called()
        assert "Cannot determine the Git account" in caplog.text

    def test_listing_failure_is_a_warning(self, tmp_path, caplog) -> None:
        error = SetupError(code=ErrorCode.REPO_LISTING_FAILED, context={"account": "octo-cat", "detail": "HTTP 500"})

        with caplog.at_level(logging.WARNING):
            outcomes = Provisioner(
                settings_for(tmp_path), ScriptedPrompt(), lister_factory=self.lister_factory(error=error)
            ).clone_repositories("octo-cat")

        assert outcomes == {}
        assert "HTTP 500" in caplog.text

    def test_full_run(self, tmp_path, key_files, monkeypatch) -> None:
        monkeypatch.setattr("homelab_setup.provision.clone_or_update", lambda repo, root: CloneOutcome.CLONED)
        settings = settings_for(tmp_path, keys="id_ed25519,id_ed25519.pub", repos="all", skip_repos=False)

        report = Provisioner(
            settings,
            ScriptedPrompt(),
            lambda credential: FakeTransport(files=key_files),
            tester=fake_tester("octo-cat"),
            lister_factory=self.lister_factory(),
        ).run()

        assert report.keys.count == 2
        assert report.account == "octo-cat"
        assert report.cloned == {
            "octo-cat/dotfiles": CloneOutcome.CLONED,
            "octo-cat/homelab": CloneOutcome.CLONED,
        }


class TestPreflight:
    """Checks made by run() before any phase starts."""

    def test_root_refused_before_any_prompt(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr("homelab_setup.preflight.running_as_root", lambda: True)
        factory = MagicMock()
        prompt = AnswerPrompt()
        settings = settings_for(tmp_path, non_interactive=False, password=None)

        with pytest.raises(SetupError) as exc_info:
            Provisioner(settings, prompt, factory).run()

        assert exc_info.value.code == ErrorCode.RUNTIME_RUNNING_AS_ROOT
        assert exc_info.value.is_fatal
        assert prompt.asked == []
        factory.assert_not_called()

    def test_allow_root(self, tmp_path, monkeypatch, key_files) -> None:
        monkeypatch.setattr("homelab_setup.preflight.running_as_root", lambda: True)
        settings = settings_for(tmp_path, keys="all", allow_root=True)

        report = Provisioner(
            settings,
            ScriptedPrompt(),
            lambda credential: FakeTransport(files=key_files),
            tester=fake_tester(),
        ).run()

        assert report.keys.count == 3

    def test_missing_smbclient_skips_key_phase(self, tmp_path, monkeypatch, caplog) -> None:
        monkeypatch.setattr(
            "homelab_setup.preflight.find_tool",
            lambda binary: None if binary == "smbclient" else f"/usr/bin/{binary}",
        )
        factory = MagicMock()
        # Without a password the key phase would fail in non-interactive mode
        settings = settings_for(tmp_path, password=None)

        with caplog.at_level(logging.WARNING):
            report = Provisioner(settings, ScriptedPrompt(), factory, tester=fake_tester()).run()

        factory.assert_not_called()
        assert report.keys.count == 0
        assert "SMB client 'smbclient' not found on PATH. Skipping key fetch." in caplog.text

    def test_missing_git_skips_repositories(self, tmp_path, monkeypatch, caplog) -> None:
        monkeypatch.setattr(
            "homelab_setup.preflight.find_tool",
            lambda binary: None if binary == "git" else f"/usr/bin/{binary}",
        )
        factory = MagicMock()
        settings = settings_for(tmp_path, skip_keys=True, skip_repos=False)

        with caplog.at_level(logging.WARNING):
            report = Provisioner(settings, ScriptedPrompt(), tester=fake_tester(), lister_factory=factory).run()

        factory.assert_not_called()
        assert report.cloned == {}
        assert "'git' not found on PATH. Skipping repository cloning." in caplog.text

    def test_skipped_phases_need_no_tools(self, tmp_path, monkeypatch, caplog) -> None:
        monkeypatch.setattr(
            "homelab_setup.preflight.find_tool",
            lambda binary: None if binary in ("smbclient", "git") else f"/usr/bin/{binary}",
        )
        settings = settings_for(tmp_path, skip_keys=True)

        with caplog.at_level(logging.WARNING):
            Provisioner(settings, ScriptedPrompt(), tester=fake_tester()).run()

        assert "not found on PATH" not in caplog.text
