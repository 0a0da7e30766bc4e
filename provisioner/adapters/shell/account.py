"""
Account adapter — login shell lookup and change for the target user.
"""

from __future__ import annotations

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt


class AccountAdapter(Adapter):
    binaries = ("getent", "chsh")

    @property
    def name(self) -> str:
        return "account"

    def login_shell(self, user: str) -> str | None:
        """The user's login shell from the passwd database, or None."""
        receipt = self.runner.query(["getent", "passwd", user])
        if receipt.failed or not receipt.output:
            return None
        # name:passwd:uid:gid:gecos:home:shell
        fields = receipt.output.splitlines()[0].split(":")
        return fields[6] if len(fields) >= 7 else None

    def set_login_shell(self, user: str, shell: str) -> Receipt:
        return self.runner.run(["chsh", "-s", shell, user])
