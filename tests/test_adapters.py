"""
Tests for adapters — command runner, mock, and the tool adapters.
"""

from pathlib import Path

import pytest

from provisioner.adapters.languages.go import GoAdapter
from provisioner.adapters.languages.python import PythonEnvAdapter
from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.packages.aur import AurHelperAdapter
from provisioner.adapters.packages.pacman import CommunityRepoAdapter, PacmanAdapter
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.account import AccountAdapter
from provisioner.adapters.shell.command import CommandRunner, remote_script_command
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.adapters.shell.profile import ShellProfileAdapter
from provisioner.adapters.vcs.git import GitAdapter
from provisioner.core.errors import InstallFailed
from provisioner.core.models.manifest import AurSource, CommunitySource, Target
from provisioner.core.models.receipt import Receipt

# ── Command runner ───────────────────────────────────────────────────


class TestCommandRunner:
    def test_success(self, tmp_path: Path):
        receipt = CommandRunner().run(["sh", "-c", "echo hello"], cwd=str(tmp_path))
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.return_code == 0

    def test_failure_uses_last_stderr_line(self):
        receipt = CommandRunner().run(["sh", "-c", "echo first >&2; echo second >&2; exit 3"])
        assert receipt.failed
        assert receipt.return_code == 3
        assert receipt.error == "second"
        assert "first" in receipt.metadata["stderr"]

    def test_missing_binary(self):
        receipt = CommandRunner().run(["definitely-not-a-real-binary-xyz"])
        assert receipt.failed
        assert "not found" in receipt.error

    def test_timeout(self):
        receipt = CommandRunner().run(["sleep", "5"], timeout=0.2)
        assert receipt.failed
        assert "timed out" in receipt.error

    def test_query(self):
        assert CommandRunner().query(["true"]).ok
        assert CommandRunner().query(["false"]).failed

    def test_env_is_merged(self):
        receipt = CommandRunner().run(["sh", "-c", "echo $PROVISIONER_TEST_VAR"],
                                      env={"PROVISIONER_TEST_VAR": "42"})
        assert receipt.output == "42"

    def test_wrap_as_other_user(self):
        runner = CommandRunner()
        cmd, env = runner._wrap(["go", "install", "x"], as_user="someone-else-xyz",
                                env={"GOPATH": "/home/x/go"})
        assert cmd == ["sudo", "-u", "someone-else-xyz", "-H", "env", "GOPATH=/home/x/go",
                       "go", "install", "x"]
        assert env is None

    def test_wrap_as_current_user_does_not_sudo(self):
        runner = CommandRunner()
        cmd, _ = runner._wrap(["id"], as_user=runner.current_user(), env=None)
        assert cmd == ["id"]

    def test_remote_script_command(self):
        cmd = remote_script_command("https://example.org/install.sh", args=["--unattended"])
        assert cmd[:2] == ["bash", "-c"]
        assert "pipefail" in cmd[2]
        assert "curl -fsSL https://example.org/install.sh | sh -s -- --unattended" in cmd[2]


# ── Mock runner ──────────────────────────────────────────────────────


class TestMockCommandRunner:
    def test_defaults(self):
        runner = MockCommandRunner()
        assert runner.simulated
        assert runner.run(["pacman", "-S", "nmap"]).ok
        assert runner.query(["pacman", "-Q", "nmap"]).failed

    def test_custom_response(self):
        runner = MockCommandRunner()
        runner.set_response(["pacman", "-Q"], Receipt.success([], output="nmap 7.95"))
        receipt = runner.query(["pacman", "-Q", "nmap"])
        assert receipt.ok
        assert receipt.output == "nmap 7.95"
        assert receipt.command == ["pacman", "-Q", "nmap"]

    def test_longest_prefix_wins(self):
        runner = MockCommandRunner()
        runner.set_failure(["pacman", "-S", "--noconfirm", "--needed", "blackarch/nmap"])
        runner.set_success(["pacman"])
        assert runner.run(["pacman", "-S", "--noconfirm", "--needed", "blackarch/nmap"]).failed
        assert runner.run(["pacman", "-S", "--noconfirm", "--needed", "nmap"]).ok

    def test_call_log(self):
        runner = MockCommandRunner()
        runner.run(["go", "install", "x"], as_user="alice", env={"GOPATH": "/g"})
        runner.query(["pacman", "-Q", "go"])

        assert runner.call_count == 2
        call = runner.calls[0]
        assert call.as_user == "alice"
        assert call.env == {"GOPATH": "/g"}
        assert runner.commands(query=False) == ["go install x"]
        assert len(runner.mutations) == 1

    def test_reset(self):
        runner = MockCommandRunner()
        runner.set_failure(["x"])
        runner.run(["x"])
        runner.reset()
        assert runner.call_count == 0
        assert runner.run(["x"]).ok

    def test_identity(self):
        assert MockCommandRunner(uid=1000).effective_uid() == 1000
        assert MockCommandRunner(user="alice").current_user() == "alice"


# ── Package adapters ─────────────────────────────────────────────────


class TestPacmanAdapter:
    def test_query(self):
        runner = MockCommandRunner()
        runner.set_success(["pacman", "-Q", "nmap"])
        pacman = PacmanAdapter(runner)
        assert pacman.query("nmap") is True
        assert pacman.query("hashcat") is False

    def test_install_needed(self):
        runner = MockCommandRunner()
        PacmanAdapter(runner).install(["zsh", "git"])
        assert runner.commands() == ["pacman -S --noconfirm --needed zsh git"]

    def test_install_from_repo(self):
        runner = MockCommandRunner()
        PacmanAdapter(runner).install_from("blackarch", "nmap", timeout=60)
        assert runner.commands() == ["pacman -S --noconfirm --needed blackarch/nmap"]
        assert runner.calls[0].timeout == 60

    def test_upgrade_and_refresh(self):
        runner = MockCommandRunner()
        pacman = PacmanAdapter(runner)
        pacman.upgrade()
        pacman.refresh()
        assert runner.commands() == ["pacman -Syu --noconfirm", "pacman -Sy --noconfirm"]

    def test_require_raises_on_failure(self):
        runner = MockCommandRunner(run_ok=False)
        pacman = PacmanAdapter(runner)
        with pytest.raises(InstallFailed) as exc:
            pacman.require(pacman.install(["nmap"]), "nmap")
        assert exc.value.target == "nmap"
        assert exc.value.attempts[0][0] == "pacman"


class TestCommunityRepoAdapter:
    def _adapter(self, runner, conf: Path) -> CommunityRepoAdapter:
        source = CommunitySource(name="blackarch", pacman_conf=str(conf))
        return CommunityRepoAdapter(runner, source, PacmanAdapter(runner))

    def test_is_configured(self, tmp_path: Path):
        conf = tmp_path / "pacman.conf"
        conf.write_text("[core]\n")
        adapter = self._adapter(MockCommandRunner(), conf)
        assert adapter.is_configured() is False

        conf.write_text("[core]\n\n[blackarch]\nInclude = /etc/pacman.d/blackarch-mirrorlist\n")
        assert adapter.is_configured() is True

    def test_configure_runs_strap_then_refresh(self, tmp_path: Path):
        runner = MockCommandRunner()
        receipt = self._adapter(runner, tmp_path / "pacman.conf").configure()
        assert receipt.ok
        commands = runner.commands()
        assert commands[0].startswith("bash -c")
        assert "https://blackarch.org/strap.sh" in commands[0]
        assert commands[1] == "pacman -Sy --noconfirm"

    def test_configure_stops_when_strap_fails(self, tmp_path: Path):
        runner = MockCommandRunner()
        runner.set_failure(["bash", "-c"], error="curl: (6) Could not resolve host")
        receipt = self._adapter(runner, tmp_path / "pacman.conf").configure()
        assert receipt.failed
        assert runner.call_count == 1

    def test_install_is_repo_qualified(self, tmp_path: Path):
        runner = MockCommandRunner()
        self._adapter(runner, tmp_path / "pacman.conf").install("nmap")
        assert runner.commands() == ["pacman -S --noconfirm --needed blackarch/nmap"]


class TestAurHelperAdapter:
    def _adapter(self, runner) -> AurHelperAdapter:
        return AurHelperAdapter(runner, AurSource(), Target(account="alice", home="/home/alice"))

    def test_bootstrap_builds_as_user_and_cleans_up(self):
        runner = MockCommandRunner()
        receipt = self._adapter(runner).bootstrap()
        assert receipt.ok

        calls = runner.calls
        assert [c.line for c in calls] == [
            "mkdir -p /home/alice/yay_build",
            "git clone https://aur.archlinux.org/yay.git /home/alice/yay_build/yay",
            "makepkg -si --noconfirm",
            "rm -rf /home/alice/yay_build",
        ]
        assert all(c.as_user == "alice" for c in calls[:3])
        assert calls[2].cwd == "/home/alice/yay_build/yay"

    def test_bootstrap_cleans_up_after_failure(self):
        runner = MockCommandRunner()
        runner.set_failure(["git", "clone"])
        receipt = self._adapter(runner).bootstrap()
        assert receipt.failed
        assert runner.commands()[-1] == "rm -rf /home/alice/yay_build"
        assert not any(c.startswith("makepkg") for c in runner.commands())

    def test_install_as_user(self):
        runner = MockCommandRunner()
        self._adapter(runner).install("evil-winrm")
        assert runner.commands() == ["yay -S --noconfirm --needed evil-winrm"]
        assert runner.calls[0].as_user == "alice"


# ── Other adapters ───────────────────────────────────────────────────


class TestGitAdapter:
    def test_clone_when_missing(self, tmp_path: Path):
        runner = MockCommandRunner()
        GitAdapter(runner).clone_or_pull("https://example.org/t.git", tmp_path / "t")
        assert runner.commands() == [f"git clone https://example.org/t.git {tmp_path / 't'}"]

    def test_pull_when_checkout_exists(self, tmp_path: Path):
        (tmp_path / "t" / ".git").mkdir(parents=True)
        runner = MockCommandRunner()
        GitAdapter(runner).clone_or_pull("https://example.org/t.git", tmp_path / "t")
        assert runner.commands() == [f"git -C {tmp_path / 't'} pull --ff-only"]


class TestLanguageAdapters:
    def test_go_install_uses_user_gopath(self):
        runner = MockCommandRunner()
        go = GoAdapter(runner, Target(account="alice", home="/home/alice"))
        go.install("github.com/musana/cf-hero/cmd/cf-hero@latest")

        call = runner.calls[0]
        assert call.line == "go install -v github.com/musana/cf-hero/cmd/cf-hero@latest"
        assert call.as_user == "alice"
        assert call.env == {"GOPATH": "/home/alice/go"}
        assert go.bin_dir == Path("/home/alice/go/bin")

    def test_pipx_install_as_user(self):
        runner = MockCommandRunner()
        python = PythonEnvAdapter(runner, Target(account="alice", home="/home/alice"))
        python.pipx_install("impacket")
        python.pipx_ensurepath()

        assert runner.commands() == [
            "python -m pipx install impacket",
            "python -m pipx ensurepath",
        ]
        assert all(c.as_user == "alice" for c in runner.calls)
        assert python.pipx_venv_dirs() == [
            Path("/home/alice/.local/share/pipx/venvs"),
            Path("/home/alice/.local/pipx/venvs"),
        ]

    def test_requirements_use_env_interpreter(self, tmp_path: Path):
        runner = MockCommandRunner()
        python = PythonEnvAdapter(runner, Target(account="alice"))
        env = python.env_path(tmp_path / "jwt_tool")
        python.install_requirements(env, tmp_path / "jwt_tool" / "requirements.txt")

        assert runner.calls[0].command[0] == str(env / "bin" / "python")
        assert runner.calls[0].command[-2:] == ["-r", str(tmp_path / "jwt_tool" / "requirements.txt")]


class TestShellAdapters:
    def test_ensure_dirs(self, tmp_path: Path):
        runner = MockCommandRunner()
        fs = FilesystemAdapter(runner)
        assert fs.ensure_dirs([]).ok
        fs.ensure_dirs([tmp_path / "a", tmp_path / "b"])
        fs.chown_recursive(tmp_path / "a", "alice")
        assert runner.commands() == [
            f"mkdir -p {tmp_path / 'a'} {tmp_path / 'b'}",
            f"chown -R alice:alice {tmp_path / 'a'}",
        ]

    def test_login_shell(self):
        runner = MockCommandRunner()
        runner.set_response(
            ["getent", "passwd", "alice"],
            Receipt.success([], output="alice:x:1000:1000:Alice:/home/alice:/bin/bash"),
        )
        account = AccountAdapter(runner)
        assert account.login_shell("alice") == "/bin/bash"
        assert account.login_shell("nobody-here") is None

        account.set_login_shell("alice", "/bin/zsh")
        assert runner.commands(query=False) == ["chsh -s /bin/zsh alice"]


class TestShellProfileAdapter:
    def test_append_once_is_idempotent(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        rc.write_text("export EDITOR=nvim\n")
        profile = ShellProfileAdapter(CommandRunner())
        lines = ["export GOPATH=$HOME/go", "alias serve='python -m http.server 8000'"]

        first = profile.append_once(rc, lines, "# >>> provisioner >>>")
        assert first.ok
        assert first.metadata["lines_added"] == 2
        content = rc.read_text()
        assert content.startswith("export EDITOR=nvim\n")
        assert "# >>> provisioner >>>" in content
        assert "export GOPATH=$HOME/go" in content

        second = profile.append_once(rc, lines, "# >>> provisioner >>>")
        assert second.ok
        assert second.metadata["lines_added"] == 0
        assert rc.read_text() == content

    def test_existing_lines_are_not_duplicated(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        rc.write_text("export GOPATH=$HOME/go\n")
        profile = ShellProfileAdapter(CommandRunner())

        receipt = profile.append_once(rc, ["export GOPATH=$HOME/go", "alias ll='ls -la'"], "# m")
        assert receipt.metadata["lines_added"] == 1
        assert rc.read_text().count("export GOPATH=$HOME/go") == 1

    def test_backup_is_written(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        rc.write_text("original\n")
        receipt = ShellProfileAdapter(CommandRunner()).append_once(rc, ["x=1"], "# m")
        backups = list(tmp_path.glob(".zshrc.backup.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "original\n"
        assert receipt.metadata["backup"] == str(backups[0])

    def test_creates_missing_file(self, tmp_path: Path):
        rc = tmp_path / "sub" / ".zshrc"
        receipt = ShellProfileAdapter(CommandRunner()).append_once(rc, ["x=1"], "# m")
        assert receipt.ok
        assert "backup" not in receipt.metadata
        assert rc.read_text() == "\n# m\nx=1\n"

    def test_simulated_runner_writes_nothing(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        receipt = ShellProfileAdapter(MockCommandRunner()).append_once(rc, ["x=1"], "# m")
        assert receipt.ok
        assert receipt.metadata["simulated"] is True
        assert not rc.exists()


# ── Registry ─────────────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_all_adapters_share_runner(self, registry: AdapterRegistry, mock_runner):
        assert all(a.runner is mock_runner for a in registry.all())
        assert registry.mock_mode is True

    def test_get(self, registry: AdapterRegistry):
        assert registry.get("pacman") is registry.pacman
        assert registry.get("blackarch") is registry.community
        assert registry.get("nope") is None

    def test_adapter_status(self, registry: AdapterRegistry):
        status = registry.adapter_status()
        assert set(status) == set(registry.list_adapters())
        assert status["profile"]["available"] is True
        assert status["pacman"]["type"] == "PacmanAdapter"
