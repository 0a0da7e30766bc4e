"""
Install strategies — one per source kind, plus the fallback chain.

A tool lists its sources in order. ``install_with_fallback`` tries the
strategy for each source until one succeeds and raises
``InstallFailed`` carrying every attempt when none does.

Strategies return receipts. Only the fallback chain raises.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.engine.probes import (
    AnyOf,
    CommandProbe,
    Never,
    PackageProbe,
    PathProbe,
    Probe,
)
from provisioner.core.errors import InstallFailed
from provisioner.core.models.manifest import Manifest, SourceKind, ToolEntry
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

_PACKAGE_SOURCES = (SourceKind.OFFICIAL, SourceKind.COMMUNITY, SourceKind.AUR)


class InstallStrategy(ABC):
    """How to install a tool from one kind of source."""

    kind: SourceKind

    def __init__(self, registry: AdapterRegistry):
        self.registry = registry

    @abstractmethod
    def install(self, tool: ToolEntry) -> Receipt:
        """Attempt the install. Never raises."""

    @abstractmethod
    def probe(self, tool: ToolEntry) -> Probe:
        """Read-only check that the tool is present from this source."""


class _PackageStrategy(InstallStrategy):
    """Shared probe for sources that land in the pacman database."""

    def probe(self, tool: ToolEntry) -> Probe:
        return PackageProbe(self.registry.pacman, tool.name, *tool.aliases)


class OfficialStrategy(_PackageStrategy):
    kind = SourceKind.OFFICIAL

    def install(self, tool: ToolEntry) -> Receipt:
        return self.registry.pacman.install([tool.name], timeout=tool.timeout)


class CommunityStrategy(_PackageStrategy):
    """Install from the community repository.

    Tries the repository-qualified name first, then each declared alias.
    Names are never guessed and an identical command is never retried.
    """

    kind = SourceKind.COMMUNITY

    def install(self, tool: ToolEntry) -> Receipt:
        community = self.registry.community
        receipt = Receipt.failure([], error="no candidate names")
        for candidate in _unique([tool.name, *tool.aliases]):
            receipt = community.install(candidate, timeout=tool.timeout)
            if receipt.ok:
                return receipt
            logger.debug("%s/%s failed: %s", community.name, candidate, receipt.error)
        return receipt


class AurStrategy(_PackageStrategy):
    kind = SourceKind.AUR

    def install(self, tool: ToolEntry) -> Receipt:
        aur = self.registry.aur
        if not (aur.available() or self.registry.mock_mode):
            return Receipt.failure(
                [aur.helper, "-S", tool.name],
                error=f"AUR helper '{aur.helper}' is not installed",
            )
        return aur.install(tool.name, timeout=tool.timeout)


class PipxStrategy(InstallStrategy):
    kind = SourceKind.PIPX

    def _app_name(self, tool: ToolEntry) -> str:
        return tool.package or tool.name

    def install(self, tool: ToolEntry) -> Receipt:
        python = self.registry.python
        receipt = python.pipx_install(self._app_name(tool), timeout=tool.timeout)
        if receipt.ok:
            ensure = python.pipx_ensurepath()
            if ensure.failed:
                logger.warning("pipx ensurepath failed: %s", ensure.error)
        return receipt

    def probe(self, tool: ToolEntry) -> Probe:
        app = self._app_name(tool)
        return AnyOf([PathProbe(d / app) for d in self.registry.python.pipx_venv_dirs()])


class GoStrategy(InstallStrategy):
    kind = SourceKind.GO

    def install(self, tool: ToolEntry) -> Receipt:
        go = self.registry.go
        prepare = self.registry.filesystem.ensure_dirs([go.bin_dir])
        if prepare.failed:
            return prepare
        receipt = go.install(tool.package, timeout=tool.timeout)
        owner = self.registry.filesystem.chown_recursive(go.gopath, go.target.account)
        if receipt.ok and owner.failed:
            return owner
        return receipt

    def probe(self, tool: ToolEntry) -> Probe:
        return CommandProbe(tool.executable, extra_paths=[self.registry.go.bin_dir])


class GitStrategy(InstallStrategy):
    """Clone into the workspace tools directory, then hand it to the user."""

    kind = SourceKind.GIT

    def __init__(self, registry: AdapterRegistry, tools_dir: Path):
        super().__init__(registry)
        self.tools_dir = tools_dir

    def checkout_path(self, tool: ToolEntry) -> Path:
        return self.tools_dir / tool.name

    def install(self, tool: ToolEntry) -> Receipt:
        checkout = self.checkout_path(tool)
        receipt = self.registry.git.clone_or_pull(tool.url, checkout, timeout=tool.timeout)
        if receipt.failed:
            return receipt
        owner = self.registry.filesystem.chown_recursive(
            checkout, self.registry.python.target.account,
        )
        return owner if owner.failed else receipt

    def probe(self, tool: ToolEntry) -> Probe:
        if tool.refresh:
            return Never()
        return PathProbe(self.checkout_path(tool) / ".git")


def build_strategies(
    manifest: Manifest,
    registry: AdapterRegistry,
) -> dict[SourceKind, InstallStrategy]:
    """One strategy per source kind, wired to the registry."""
    tools_dir = manifest.workspace.tools_path(manifest.target.home_path)
    return {
        SourceKind.OFFICIAL: OfficialStrategy(registry),
        SourceKind.COMMUNITY: CommunityStrategy(registry),
        SourceKind.AUR: AurStrategy(registry),
        SourceKind.PIPX: PipxStrategy(registry),
        SourceKind.GO: GoStrategy(registry),
        SourceKind.GIT: GitStrategy(registry, tools_dir),
    }


def tool_probe(tool: ToolEntry, strategies: Mapping[SourceKind, InstallStrategy]) -> Probe:
    """Satisfied when the tool is present from any of its sources.

    Package sources share one database query, so they contribute a
    single probe.
    """
    probes: list[Probe] = []
    if any(tool.uses(kind) for kind in _PACKAGE_SOURCES):
        probes.append(strategies[SourceKind.OFFICIAL].probe(tool))
    for kind in tool.sources:
        if kind not in _PACKAGE_SOURCES:
            probes.append(strategies[kind].probe(tool))
    if tool.binary:
        probes.append(CommandProbe(tool.binary))
    return probes[0] if len(probes) == 1 else AnyOf(probes)


def install_with_fallback(
    tool: ToolEntry,
    strategies: Mapping[SourceKind, InstallStrategy],
) -> Receipt:
    """Try each source in order and stop at the first success.

    Raises:
        InstallFailed: Every source failed. ``attempts`` lists each
            source with its error, in the order tried.
    """
    attempts: list[tuple[str, str]] = []
    for kind in tool.sources:
        receipt = strategies[kind].install(tool)
        if receipt.ok:
            if attempts:
                logger.info("%s installed from %s after %d failed source(s)",
                            tool.name, kind, len(attempts))
            return receipt
        error = receipt.error or f"exit code {receipt.return_code}"
        logger.info("%s: %s source failed: %s", tool.name, kind, error)
        attempts.append((kind.value, error))

    raise InstallFailed(tool.name, attempts)


def _unique(names: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered
