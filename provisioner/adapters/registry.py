"""
Adapter registry — one place that builds and hands out adapters.

Step builders never construct adapters themselves; they receive a
registry wired to a single command runner (real or mock) and the
manifest's target account and source endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from provisioner.adapters.base import Adapter
from provisioner.adapters.languages.go import GoAdapter
from provisioner.adapters.languages.python import PythonEnvAdapter
from provisioner.adapters.packages.aur import AurHelperAdapter
from provisioner.adapters.packages.pacman import CommunityRepoAdapter, PacmanAdapter
from provisioner.adapters.shell.account import AccountAdapter
from provisioner.adapters.shell.command import CommandRunner
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.adapters.shell.profile import ShellProfileAdapter
from provisioner.adapters.shell.script import ScriptAdapter
from provisioner.adapters.vcs.git import GitAdapter
from provisioner.core.models.manifest import Manifest

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """All adapters for one run, sharing one command runner."""

    def __init__(self, manifest: Manifest, runner: CommandRunner):
        self.runner = runner
        target = manifest.target

        self.pacman = PacmanAdapter(runner)
        self.community = CommunityRepoAdapter(runner, manifest.sources.community, self.pacman)
        self.aur = AurHelperAdapter(runner, manifest.sources.aur, target)
        self.git = GitAdapter(runner)
        self.python = PythonEnvAdapter(runner, target)
        self.go = GoAdapter(runner, target)
        self.filesystem = FilesystemAdapter(runner)
        self.profile = ShellProfileAdapter(runner)
        self.account = AccountAdapter(runner)
        self.scripts = ScriptAdapter(runner)

    @property
    def mock_mode(self) -> bool:
        return self.runner.simulated

    def all(self) -> list[Adapter]:
        return [
            self.pacman,
            self.community,
            self.aur,
            self.git,
            self.python,
            self.go,
            self.filesystem,
            self.profile,
            self.account,
            self.scripts,
        ]

    def get(self, name: str) -> Adapter | None:
        """Look up an adapter by name."""
        for adapter in self.all():
            if adapter.name == name:
                return adapter
        return None

    def list_adapters(self) -> list[str]:
        return [a.name for a in self.all()]

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every adapter's underlying tools."""
        status = {}
        for adapter in self.all():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[adapter.name] = {
                "name": adapter.name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status
