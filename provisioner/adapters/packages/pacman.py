"""
Pacman adapter — the distribution package manager, plus the community
repository that plugs into it.

Package names are opaque: this module never knows what a package is,
only how to ask pacman about it.
"""

from __future__ import annotations

import logging

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandRunner, remote_script_command
from provisioner.core.engine.probes import MarkerProbe
from provisioner.core.models.manifest import CommunitySource
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class PacmanAdapter(Adapter):
    """Query and install packages with pacman."""

    binaries = ("pacman",)

    @property
    def name(self) -> str:
        return "pacman"

    def query(self, name: str) -> bool:
        """Whether pacman records ``name`` as installed."""
        return self.runner.query(["pacman", "-Q", name]).ok

    def install(
        self,
        names: list[str],
        needed: bool = True,
        timeout: float | None = None,
    ) -> Receipt:
        cmd = ["pacman", "-S", "--noconfirm"]
        if needed:
            cmd.append("--needed")
        return self.runner.run(cmd + list(names), timeout=timeout)

    def install_from(self, repo: str, name: str, timeout: float | None = None) -> Receipt:
        """Install a package from one specific repository (``repo/name``)."""
        return self.runner.run(
            ["pacman", "-S", "--noconfirm", "--needed", f"{repo}/{name}"],
            timeout=timeout,
        )

    def upgrade(self, timeout: float | None = None) -> Receipt:
        """Synchronise databases and upgrade the whole system."""
        return self.runner.run(["pacman", "-Syu", "--noconfirm"], timeout=timeout)

    def refresh(self, timeout: float | None = None) -> Receipt:
        """Refresh the package databases."""
        return self.runner.run(["pacman", "-Sy", "--noconfirm"], timeout=timeout)


class CommunityRepoAdapter(Adapter):
    """A community repository enabled by a bootstrap ("strap") script."""

    binaries = ("pacman", "curl", "bash")

    def __init__(self, runner: CommandRunner, source: CommunitySource, pacman: PacmanAdapter):
        super().__init__(runner)
        self.source = source
        self.pacman = pacman

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def section_marker(self) -> str:
        return f"[{self.source.name}]"

    def is_configured(self) -> bool:
        """Whether pacman.conf already has the repository section."""
        return MarkerProbe(self.source.pacman_conf, self.section_marker).check()

    def configure(self, timeout: float | None = None) -> Receipt:
        """Run the strap script, then refresh databases."""
        logger.info("Setting up %s repository from %s", self.source.name, self.source.strap_url)
        receipt = self.runner.run(
            remote_script_command(self.source.strap_url, interpreter="bash"),
            timeout=timeout,
        )
        if receipt.failed:
            return receipt
        return self.pacman.refresh(timeout=timeout)

    def install(self, name: str, timeout: float | None = None) -> Receipt:
        return self.pacman.install_from(self.source.name, name, timeout=timeout)
