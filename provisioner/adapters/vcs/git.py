"""
Git adapter — fetch tools distributed as source repositories.

Uses the git CLI. ``clone_or_pull`` is idempotent: an existing checkout
is fast-forwarded instead of cloned again.
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Clone and update git repositories."""

    binaries = ("git",)

    @property
    def name(self) -> str:
        return "git"

    @staticmethod
    def is_checkout(path: Path | str) -> bool:
        return (Path(path) / ".git").is_dir()

    def clone_or_pull(
        self,
        url: str,
        path: Path | str,
        timeout: float | None = None,
    ) -> Receipt:
        """Clone ``url`` into ``path``, or pull if it is already a checkout."""
        target = Path(path)
        if self.is_checkout(target):
            logger.info("Updating %s", target.name)
            return self.runner.run(
                ["git", "-C", str(target), "pull", "--ff-only"], timeout=timeout,
            )

        logger.info("Cloning %s", url)
        return self.runner.run(["git", "clone", url, str(target)], timeout=timeout)
