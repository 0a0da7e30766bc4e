"""
Filesystem adapter — directories and ownership for the target account.

Mutations go through the command runner so they can be audited and
simulated like every other external effect.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt


class FilesystemAdapter(Adapter):
    binaries = ("mkdir", "chown")

    @property
    def name(self) -> str:
        return "filesystem"

    def ensure_dirs(self, paths: Iterable[Path | str]) -> Receipt:
        """Create directories (and parents); existing ones are left alone."""
        targets = [str(p) for p in paths]
        if not targets:
            return Receipt.success(["mkdir", "-p"], output="nothing to create")
        return self.runner.run(["mkdir", "-p", *targets])

    def chown_recursive(self, path: Path | str, user: str, group: str | None = None) -> Receipt:
        """Recursively assign ``user`` (and its group) as owner of ``path``."""
        owner = f"{user}:{group or user}"
        return self.runner.run(["chown", "-R", owner, str(path)])
