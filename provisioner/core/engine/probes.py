"""
Probes — read-only checks for whether a target state already holds.

A probe is a callable returning bool. It must not mutate the system,
and it must not raise: anything that prevents an answer (missing
query binary, unreadable file, timeout) counts as "not present" so the
engine always attempts forward progress.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class PackageQuery(Protocol):
    def query(self, name: str) -> bool: ...


class ShellQuery(Protocol):
    def login_shell(self, user: str) -> str | None: ...


class UidSource(Protocol):
    def effective_uid(self) -> int: ...


class Probe(ABC):
    """Base class for probes. Call the instance to evaluate it."""

    def __call__(self) -> bool:
        return self.check()

    def check(self) -> bool:
        try:
            return bool(self._check())
        except Exception as e:
            logger.debug("%r could not determine status: %s", self, e)
            return False

    @abstractmethod
    def _check(self) -> bool:
        """Evaluate the probe. May raise; ``check`` converts to False."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class Never(Probe):
    """Never satisfied — the step always applies."""

    def _check(self) -> bool:
        return False


class Always(Probe):
    def _check(self) -> bool:
        return True


class CommandProbe(Probe):
    """A command resolves on the execution path."""

    def __init__(self, command: str, extra_paths: Iterable[Path] = ()):
        self.command = command
        self.extra_paths = [Path(p) for p in extra_paths]

    def _check(self) -> bool:
        if shutil.which(self.command):
            return True
        return any((p / self.command).is_file() for p in self.extra_paths)

    def __repr__(self) -> str:
        return f"<CommandProbe {self.command!r}>"


class PackageProbe(Probe):
    """Any one of the names is recorded as installed by the package manager."""

    def __init__(self, packages: PackageQuery, *names: str):
        self.packages = packages
        self.names = [n for n in names if n]

    def _check(self) -> bool:
        return any(self.packages.query(n) for n in self.names)

    def __repr__(self) -> str:
        return f"<PackageProbe {self.names!r}>"


class PackagesProbe(Probe):
    """Every one of the names is installed."""

    def __init__(self, packages: PackageQuery, names: Iterable[str]):
        self.packages = packages
        self.names = list(names)

    def _check(self) -> bool:
        return all(self.packages.query(n) for n in self.names)

    def __repr__(self) -> str:
        return f"<PackagesProbe {len(self.names)} packages>"


class PathProbe(Probe):
    """Every given path exists."""

    def __init__(self, *paths: Path | str):
        self.paths = [Path(p) for p in paths]

    def _check(self) -> bool:
        return bool(self.paths) and all(p.exists() for p in self.paths)

    def __repr__(self) -> str:
        return f"<PathProbe {[str(p) for p in self.paths]!r}>"


class MarkerProbe(Probe):
    """A file exists and contains a marker string."""

    def __init__(self, path: Path | str, marker: str):
        self.path = Path(path)
        self.marker = marker

    def _check(self) -> bool:
        if not self.path.is_file():
            return False
        return self.marker in self.path.read_text(encoding="utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<MarkerProbe {str(self.path)!r} {self.marker!r}>"


class LoginShellProbe(Probe):
    """The account's login shell is already the wanted one."""

    def __init__(self, account: ShellQuery, user: str, shell: str):
        self.account = account
        self.user = user
        self.shell = shell

    def _check(self) -> bool:
        return self.account.login_shell(self.user) == self.shell


class PrivilegeProbe(Probe):
    """The process runs with root rights."""

    def __init__(self, uid_source: UidSource):
        self.uid_source = uid_source

    def _check(self) -> bool:
        return self.uid_source.effective_uid() == 0


class AllOf(Probe):
    """Every sub-probe is satisfied."""

    def __init__(self, probes: Iterable[Callable[[], bool]]):
        self.probes = list(probes)

    def _check(self) -> bool:
        return bool(self.probes) and all(p() for p in self.probes)


class CallableProbe(Probe):
    """Adapts a plain function into a probe."""

    def __init__(self, fn: Callable[[], bool], label: str = ""):
        self.fn = fn
        self.label = label

    def _check(self) -> bool:
        return self.fn()

    def __repr__(self) -> str:
        return f"<CallableProbe {self.label or self.fn!r}>"


class AnyOf(Probe):
    """At least one sub-probe is satisfied."""

    def __init__(self, probes: Iterable[Callable[[], bool]]):
        self.probes = list(probes)

    def _check(self) -> bool:
        return any(p() for p in self.probes)
