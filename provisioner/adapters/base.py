"""
Adapter base — the contract between step builders and external tools.

Each adapter wraps one external capability (package manager, git, the
shell profile...). Step builders only talk to the system through
adapters, never directly to ``subprocess``.

Adapters return Receipts; they do not raise for a failing command.
``Adapter.require`` is the bridge for step actions that need an
exception instead.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod

from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.errors import InstallFailed
from provisioner.core.models.receipt import Receipt


class Adapter(ABC):
    """Abstract base class for all adapters.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement ``name`` and list the binaries it needs
        3. Register it in the AdapterRegistry
    """

    binaries: tuple[str, ...] = ()

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g. 'pacman', 'git')."""

    def is_available(self) -> bool:
        """Whether every binary this adapter drives is on PATH.

        Should be fast and never raise.
        """
        return all(shutil.which(b) is not None for b in self.binaries)

    def require(self, receipt: Receipt, target: str) -> Receipt:
        """Return ``receipt`` if it succeeded, else raise InstallFailed."""
        if receipt.failed:
            raise InstallFailed(target, [(self.name, receipt.error or "failed")])
        return receipt

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
