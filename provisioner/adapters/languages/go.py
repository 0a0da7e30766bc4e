"""
Go adapter — ``go install`` for tools published as go modules.

Installs into the target user's GOPATH (``~/go`` by default), as that
user.
"""

from __future__ import annotations

from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.manifest import Target
from provisioner.core.models.receipt import Receipt


class GoAdapter(Adapter):
    binaries = ("go",)

    def __init__(self, runner: CommandRunner, target: Target):
        super().__init__(runner)
        self.target = target

    @property
    def name(self) -> str:
        return "go"

    @property
    def gopath(self) -> Path:
        return self.target.home_path / "go"

    @property
    def bin_dir(self) -> Path:
        return self.gopath / "bin"

    def install(self, package: str, timeout: float | None = None) -> Receipt:
        """``go install <package>`` with GOPATH pointing at the user's tree."""
        return self.runner.run(
            ["go", "install", "-v", package],
            as_user=self.target.account,
            env={"GOPATH": str(self.gopath)},
            timeout=timeout,
        )
