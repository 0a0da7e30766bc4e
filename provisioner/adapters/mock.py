"""
Mock command runner — universal test double for external commands.

Used in mock mode to simulate a run without touching the system, and in
tests. Mutating commands (``run``) succeed by default; read-only
commands (``query``) fail by default, so every target looks absent and
every step gets "applied". Responses can be overridden per command
prefix.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.receipt import Receipt


@dataclass
class MockCall:
    """One command the mock received."""

    command: list[str]
    query: bool = False
    as_user: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | None = None
    timeout: float | None = None

    @property
    def line(self) -> str:
        return " ".join(self.command)


class MockCommandRunner(CommandRunner):
    """Records every command instead of executing it.

    Args:
        uid: Effective uid reported to privilege checks.
        user: Name reported as the current user.
        query_ok: Default success for read-only commands.
        run_ok: Default success for mutating commands.
    """

    simulated = True

    def __init__(
        self,
        uid: int = 0,
        user: str = "root",
        query_ok: bool = False,
        run_ok: bool = True,
        default_output: str = "[mock] executed",
    ):
        super().__init__()
        self._uid = uid
        self._user = user
        self._query_ok = query_ok
        self._run_ok = run_ok
        self._default_output = default_output
        self._responses: list[tuple[tuple[str, ...], Receipt]] = []
        self._calls: list[MockCall] = []

    # ── Identity ────────────────────────────────────────────────

    def effective_uid(self) -> int:
        return self._uid

    def current_user(self) -> str:
        return self._user

    # ── Configuration ───────────────────────────────────────────

    def set_response(self, prefix: Sequence[str], receipt: Receipt) -> None:
        """Answer any command starting with ``prefix`` with ``receipt``.

        The longest matching prefix wins; later registrations win ties.
        """
        self._responses.append((tuple(prefix), receipt))

    def set_failure(self, prefix: Sequence[str], error: str = "Mock failure") -> None:
        self.set_response(prefix, Receipt.failure(list(prefix), error=error, return_code=1))

    def set_success(self, prefix: Sequence[str], output: str = "") -> None:
        self.set_response(prefix, Receipt.success(list(prefix), output=output, return_code=0))

    # ── Inspection ──────────────────────────────────────────────

    @property
    def calls(self) -> list[MockCall]:
        return list(self._calls)

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def mutations(self) -> list[MockCall]:
        """Only the state-changing commands."""
        return [c for c in self._calls if not c.query]

    def commands(self, query: bool | None = None) -> list[str]:
        """Command lines received, optionally filtered by kind."""
        return [c.line for c in self._calls if query is None or c.query == query]

    def reset(self) -> None:
        self._calls.clear()
        self._responses.clear()

    # ── Dispatch ────────────────────────────────────────────────

    def _dispatch(
        self,
        cmd: list[str],
        *,
        as_user: str | None,
        env: Mapping[str, str] | None,
        cwd: str | None,
        timeout: float | None,
        query: bool,
    ) -> Receipt:
        self._calls.append(MockCall(
            command=list(cmd),
            query=query,
            as_user=as_user,
            env=dict(env or {}),
            cwd=cwd,
            timeout=timeout,
        ))

        match = self._match(cmd)
        if match is not None:
            return match.model_copy(update={"command": list(cmd)})

        ok = self._query_ok if query else self._run_ok
        if ok:
            return Receipt.success(
                cmd, output=self._default_output, return_code=0, metadata={"mock": True},
            )
        return Receipt.failure(
            cmd, error="[mock] not present", return_code=1, metadata={"mock": True},
        )

    def _match(self, cmd: list[str]) -> Receipt | None:
        best: Receipt | None = None
        best_len = -1
        for prefix, receipt in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and len(prefix) >= best_len:
                best, best_len = receipt, len(prefix)
        return best
