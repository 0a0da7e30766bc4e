"""
Command runner — the single place where ``subprocess.run`` is called.

Every adapter hands its commands to a runner and gets a Receipt back.
Failures (non-zero exit, timeout, missing binary) are captured in the
receipt; the runner never raises for them.

Commands for the target account are wrapped in ``sudo -u <user> -H``
unless the process already runs as that user.
"""

from __future__ import annotations

import logging
import os
import pwd
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence

from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Output kept on receipts (tail), in characters
_OUTPUT_LIMIT = 4000


class CommandRunner:
    """Run external commands and capture the result.

    Args:
        default_timeout: Seconds before a command is killed. None (the
            default) waits indefinitely.
    """

    simulated = False

    def __init__(self, default_timeout: float | None = None):
        self.default_timeout = default_timeout

    # ── Identity ────────────────────────────────────────────────

    def effective_uid(self) -> int:
        return os.geteuid()

    def current_user(self) -> str:
        try:
            return pwd.getpwuid(os.geteuid()).pw_name
        except KeyError:
            return ""

    # ── Public API ──────────────────────────────────────────────

    def run(
        self,
        cmd: Sequence[str],
        *,
        as_user: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> Receipt:
        """Run a command that changes system state."""
        return self._dispatch(
            list(cmd), as_user=as_user, env=env, cwd=cwd, timeout=timeout, query=False,
        )

    def query(
        self,
        cmd: Sequence[str],
        *,
        as_user: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: float | None = 30,
    ) -> Receipt:
        """Run a read-only command (status checks, lookups)."""
        return self._dispatch(
            list(cmd), as_user=as_user, env=env, cwd=cwd, timeout=timeout, query=True,
        )

    # ── Internals ───────────────────────────────────────────────

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
        full_cmd, proc_env = self._wrap(cmd, as_user=as_user, env=env)
        effective_timeout = timeout if timeout is not None else self.default_timeout

        log = logger.debug if query else logger.info
        log("$ %s%s", shlex.join(full_cmd), f"  (cwd={cwd})" if cwd else "")

        return self._execute(full_cmd, env=proc_env, cwd=cwd, timeout=effective_timeout)

    def _wrap(
        self,
        cmd: list[str],
        *,
        as_user: str | None,
        env: Mapping[str, str] | None,
    ) -> tuple[list[str], dict[str, str] | None]:
        """Apply user switching and environment to a command."""
        if as_user and as_user != self.current_user():
            prefix = ["sudo", "-u", as_user, "-H"]
            if env:
                prefix += ["env"] + [f"{k}={v}" for k, v in env.items()]
            return prefix + cmd, None

        if env:
            merged = os.environ.copy()
            merged.update(env)
            return cmd, merged
        return cmd, None

    def _execute(
        self,
        cmd: list[str],
        *,
        env: dict[str, str] | None,
        cwd: str | None,
        timeout: float | None,
    ) -> Receipt:
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                cmd,
                error=f"Command timed out after {timeout}s",
                duration_ms=_elapsed_ms(start),
                metadata={"timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                cmd,
                error=f"Command not found: {cmd[0]}",
                duration_ms=_elapsed_ms(start),
            )
        except OSError as e:
            return Receipt.failure(
                cmd,
                error=f"Command execution error: {e}",
                duration_ms=_elapsed_ms(start),
            )

        elapsed_ms = _elapsed_ms(start)
        stdout = (result.stdout or "").strip()[-_OUTPUT_LIMIT:]
        stderr = (result.stderr or "").strip()[-_OUTPUT_LIMIT:]

        if result.returncode == 0:
            return Receipt.success(
                cmd,
                output=stdout,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={"stderr": stderr} if stderr else {},
            )

        logger.debug("Command failed (exit %d): %s", result.returncode, stderr)
        return Receipt.failure(
            cmd,
            error=_last_line(stderr) or f"Command exited with code {result.returncode}",
            output=stdout,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"stderr": stderr},
        )


def remote_script_command(url: str, interpreter: str = "sh", args: Sequence[str] = ()) -> list[str]:
    """Build a command that downloads a script and pipes it into an interpreter."""
    script = f"set -o pipefail; curl -fsSL {shlex.quote(url)} | {interpreter} -s --"
    if args:
        script += " " + shlex.join(args)
    return ["bash", "-c", script]


def _last_line(text: str) -> str:
    lines = [ln for ln in text.splitlines() if ln.strip()]
    return lines[-1].strip() if lines else ""


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
