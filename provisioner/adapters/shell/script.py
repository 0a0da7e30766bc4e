"""
Remote installer scripts — ``curl <url> | sh`` style installers.
"""

from __future__ import annotations

from collections.abc import Sequence

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import remote_script_command
from provisioner.core.models.receipt import Receipt


class ScriptAdapter(Adapter):
    binaries = ("curl", "bash")

    @property
    def name(self) -> str:
        return "script"

    def run_remote(
        self,
        url: str,
        args: Sequence[str] = (),
        as_user: str | None = None,
        interpreter: str = "sh",
        timeout: float | None = None,
    ) -> Receipt:
        return self.runner.run(
            remote_script_command(url, interpreter=interpreter, args=args),
            as_user=as_user,
            timeout=timeout,
        )
