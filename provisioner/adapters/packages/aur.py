"""
AUR helper adapter — packages outside the official and community repos.

The helper (yay by default) refuses to run as root, so everything here
runs as the target account. When the helper is missing it is built
from source in a scratch directory under the target home.
"""

from __future__ import annotations

import logging
import shutil

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.manifest import AurSource, Target
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class AurHelperAdapter(Adapter):
    """Build and drive the AUR helper as the target user."""

    def __init__(self, runner: CommandRunner, source: AurSource, target: Target):
        super().__init__(runner)
        self.source = source
        self.target = target

    @property
    def name(self) -> str:
        return "aur"

    @property
    def binaries(self) -> tuple[str, ...]:  # type: ignore[override]
        return (self.source.helper,)

    @property
    def helper(self) -> str:
        return self.source.helper

    def available(self) -> bool:
        return shutil.which(self.source.helper) is not None

    def bootstrap(self, timeout: float | None = None) -> Receipt:
        """Clone the helper's package repo and build it with makepkg.

        The scratch build directory is removed afterwards, whatever
        the outcome.
        """
        user = self.target.account
        build_dir = self.target.home_path / self.source.build_dir
        checkout = build_dir / self.source.helper

        logger.info("Building %s from %s", self.source.helper, self.source.repo_url)
        try:
            for cmd, cwd in (
                (["mkdir", "-p", str(build_dir)], None),
                (["git", "clone", self.source.repo_url, str(checkout)], None),
                (["makepkg", "-si", "--noconfirm"], str(checkout)),
            ):
                receipt = self.runner.run(cmd, as_user=user, cwd=cwd, timeout=timeout)
                if receipt.failed:
                    return receipt
            return receipt
        finally:
            self.runner.run(["rm", "-rf", str(build_dir)])

    def install(self, name: str, timeout: float | None = None) -> Receipt:
        return self.runner.run(
            [self.source.helper, "-S", "--noconfirm", "--needed", name],
            as_user=self.target.account,
            timeout=timeout,
        )
