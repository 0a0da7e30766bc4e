"""
Python adapter — per-tool isolated environments and pipx applications.

Virtual environments for cloned tools are created by root next to the
clone (ownership is normalised afterwards by the caller). pipx
applications are installed as the target user, into their home.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.manifest import Target
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

ENV_DIRNAME = ".venv"


class PythonEnvAdapter(Adapter):
    """Python toolchain operations: venv, pip, pipx."""

    binaries = ("python3",)

    def __init__(self, runner: CommandRunner, target: Target):
        super().__init__(runner)
        self.target = target

    @property
    def name(self) -> str:
        return "python"

    def _python_cmd(self) -> str:
        """Resolve the Python interpreter command."""
        if shutil.which("python3"):
            return "python3"
        return "python"

    # ── Virtual environments ────────────────────────────────────

    @staticmethod
    def env_path(checkout: Path | str) -> Path:
        return Path(checkout) / ENV_DIRNAME

    @staticmethod
    def env_python(env: Path | str) -> Path:
        return Path(env) / "bin" / "python"

    def create_env(self, env: Path | str, timeout: float | None = None) -> Receipt:
        return self.runner.run([self._python_cmd(), "-m", "venv", str(env)], timeout=timeout)

    def install_requirements(
        self,
        env: Path | str,
        manifest: Path | str,
        timeout: float | None = None,
    ) -> Receipt:
        """Install a requirements manifest into an environment."""
        return self.runner.run(
            [str(self.env_python(env)), "-m", "pip", "install", "-r", str(manifest)],
            timeout=timeout,
        )

    # ── pipx ────────────────────────────────────────────────────

    def pipx_venv_dirs(self) -> list[Path]:
        """Where pipx keeps application venvs, current layout first.

        pipx 1.3 moved them under ``~/.local/share/pipx``; older
        installs still use ``~/.local/pipx``.
        """
        local = self.target.home_path / ".local"
        return [local / "share" / "pipx" / "venvs", local / "pipx" / "venvs"]

    def pipx_install(self, name: str, timeout: float | None = None) -> Receipt:
        return self.runner.run(
            ["python", "-m", "pipx", "install", name],
            as_user=self.target.account,
            timeout=timeout,
        )

    def pipx_ensurepath(self) -> Receipt:
        return self.runner.run(
            ["python", "-m", "pipx", "ensurepath"], as_user=self.target.account,
        )
