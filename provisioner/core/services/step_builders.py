"""
Step builders — turn a manifest into the list of steps to plan.

Each builder returns one ``Step`` wired to adapters from the registry.
Steps are emitted in a fixed declaration order; prerequisites carry the
real ordering constraints and the plan sorts on them.

    privileges
    system-upgrade          (if system.upgrade)
    base-packages
    login-shell
    aur-helper              (if any tool uses the AUR)
    community-repo          (if any tool uses the community repo)
    workspace
    <tool> ...              (one per manifest tool)
    <tool>:env ...          (git tools with a requirements manifest)
    oh-my-zsh               (if extras.oh_my_zsh)
    shell-profile
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.engine.probes import (
    CommandProbe,
    LoginShellProbe,
    MarkerProbe,
    Never,
    PackagesProbe,
    PathProbe,
    PrivilegeProbe,
)
from provisioner.core.engine.step import Severity, Step
from provisioner.core.errors import PrecheckFailed, PrivilegeError
from provisioner.core.models.manifest import Manifest, SourceKind, ToolEntry
from provisioner.core.services.shell_profile import render_profile_lines
from provisioner.core.services.strategies import (
    GitStrategy,
    build_strategies,
    install_with_fallback,
    tool_probe,
)

logger = logging.getLogger(__name__)

PRIVILEGES = "privileges"
SYSTEM_UPGRADE = "system-upgrade"
BASE_PACKAGES = "base-packages"
LOGIN_SHELL = "login-shell"
AUR_HELPER = "aur-helper"
COMMUNITY_REPO = "community-repo"
WORKSPACE = "workspace"
OH_MY_ZSH = "oh-my-zsh"
SHELL_PROFILE = "shell-profile"

ENV_SUFFIX = ":env"


def env_step_name(tool: str) -> str:
    return f"{tool}{ENV_SUFFIX}"


class StepBuilder:
    """Builds every step for one manifest against one adapter registry."""

    def __init__(self, manifest: Manifest, registry: AdapterRegistry):
        self.manifest = manifest
        self.registry = registry
        self.target = manifest.target
        self.home = manifest.target.home_path
        self.strategies = build_strategies(manifest, registry)

    # ── Entry point ─────────────────────────────────────────────

    def build(self) -> list[Step]:
        m = self.manifest
        steps = [self.privileges()]
        if m.system.upgrade:
            steps.append(self.system_upgrade())
        steps.append(self.base_packages())
        steps.append(self.login_shell())
        if m.tools_using(SourceKind.AUR):
            steps.append(self.aur_helper())
        if m.tools_using(SourceKind.COMMUNITY):
            steps.append(self.community_repo())
        steps.append(self.workspace())

        steps.extend(self.tool(t) for t in m.tools)
        steps.extend(self.tool_env(t) for t in m.tools if t.uses(SourceKind.GIT) and t.requirements)

        if m.extras.oh_my_zsh:
            steps.append(self.oh_my_zsh())
        steps.append(self.shell_profile())

        logger.debug("Built %d steps for manifest '%s'", len(steps), m.name)
        return steps

    # ── System ──────────────────────────────────────────────────

    def privileges(self) -> Step:
        runner = self.registry.runner

        def apply() -> None:
            raise PrivilegeError(
                f"must run as root (effective uid is {runner.effective_uid()})"
            )

        return Step(
            name=PRIVILEGES,
            apply=apply,
            probe=PrivilegeProbe(runner),
            severity=Severity.FATAL,
            description="Check root privileges",
        )

    def system_upgrade(self) -> Step:
        pacman = self.registry.pacman

        def apply() -> None:
            pacman.require(pacman.upgrade(), "system upgrade")

        return Step(
            name=SYSTEM_UPGRADE,
            apply=apply,
            probe=Never(),
            prerequisites={PRIVILEGES},
            description="Upgrade system packages",
        )

    def base_packages(self) -> Step:
        pacman = self.registry.pacman
        system = self.manifest.system
        shell = self.target.shell
        shell_present = CommandProbe(system.shell_package, extra_paths=[Path(shell).parent])

        def apply() -> None:
            receipt = pacman.install(system.base_packages)
            if receipt.failed:
                error = receipt.error or f"exit code {receipt.return_code}"
                raise PrecheckFailed(f"base packages did not install: {error}")
            if self.registry.mock_mode:
                return
            if not (PathProbe(shell).check() or shell_present.check()):
                raise PrecheckFailed(f"shell {shell} is missing after installing base packages")

        prerequisites = {PRIVILEGES}
        if self.manifest.system.upgrade:
            prerequisites.add(SYSTEM_UPGRADE)

        return Step(
            name=BASE_PACKAGES,
            apply=apply,
            probe=PackagesProbe(pacman, system.base_packages),
            prerequisites=prerequisites,
            severity=Severity.FATAL,
            description="Install base packages",
        )

    def login_shell(self) -> Step:
        account = self.registry.account
        user, shell = self.target.account, self.target.shell

        def apply() -> None:
            account.require(account.set_login_shell(user, shell), f"login shell for {user}")

        return Step(
            name=LOGIN_SHELL,
            apply=apply,
            probe=LoginShellProbe(account, user, shell),
            prerequisites={BASE_PACKAGES},
            description=f"Set {shell} as login shell for {user}",
        )

    # ── Package sources ─────────────────────────────────────────

    def aur_helper(self) -> Step:
        aur = self.registry.aur

        def apply() -> None:
            aur.require(aur.bootstrap(), aur.helper)

        return Step(
            name=AUR_HELPER,
            apply=apply,
            probe=CommandProbe(aur.helper),
            prerequisites={BASE_PACKAGES},
            description=f"Build AUR helper {aur.helper}",
        )

    def community_repo(self) -> Step:
        community = self.registry.community

        def apply() -> None:
            community.require(community.configure(), f"{community.name} repository")

        return Step(
            name=COMMUNITY_REPO,
            apply=apply,
            probe=MarkerProbe(community.source.pacman_conf, community.section_marker),
            prerequisites={BASE_PACKAGES},
            description=f"Enable {community.name} repository",
        )

    # ── Workspace ───────────────────────────────────────────────

    def workspace(self) -> Step:
        fs = self.registry.filesystem
        ws = self.manifest.workspace
        root = ws.root_path(self.home)
        dirs = [root, *ws.dir_paths(self.home)]

        def apply() -> None:
            fs.require(fs.ensure_dirs(dirs), "workspace")
            fs.require(fs.chown_recursive(root, self.target.account), "workspace ownership")

        return Step(
            name=WORKSPACE,
            apply=apply,
            probe=PathProbe(*dirs),
            prerequisites={PRIVILEGES},
            description=f"Create workspace {root}",
        )

    # ── Tools ───────────────────────────────────────────────────

    def tool_prerequisites(self, tool: ToolEntry) -> set[str]:
        prerequisites = {BASE_PACKAGES, *tool.requires}
        if tool.uses(SourceKind.COMMUNITY):
            prerequisites.add(COMMUNITY_REPO)
        if tool.uses(SourceKind.AUR):
            prerequisites.add(AUR_HELPER)
        if tool.uses(SourceKind.GIT):
            prerequisites.add(WORKSPACE)
        return prerequisites

    def tool(self, tool: ToolEntry) -> Step:
        strategies = self.strategies

        def apply() -> None:
            install_with_fallback(tool, strategies)

        sources = ", ".join(s.value for s in tool.sources)
        return Step(
            name=tool.name,
            apply=apply,
            probe=tool_probe(tool, strategies),
            prerequisites=self.tool_prerequisites(tool),
            severity=tool.severity,
            description=tool.description or f"Install {tool.name} ({sources})",
            timeout=tool.timeout,
        )

    def tool_env(self, tool: ToolEntry) -> Step:
        """Isolated python environment for a cloned tool's requirements."""
        python = self.registry.python
        fs = self.registry.filesystem
        git_strategy = self.strategies[SourceKind.GIT]
        assert isinstance(git_strategy, GitStrategy)
        checkout = git_strategy.checkout_path(tool)
        env = python.env_path(checkout)
        requirements = checkout / tool.requirements

        def apply() -> None:
            if not python.env_python(env).exists():
                python.require(python.create_env(env, timeout=tool.timeout), f"{tool.name} env")
            python.require(
                python.install_requirements(env, requirements, timeout=tool.timeout),
                f"{tool.name} requirements",
            )
            fs.require(fs.chown_recursive(checkout, self.target.account), f"{tool.name} ownership")

        prerequisites = {tool.name}
        if self.manifest.get_tool("python") is not None:
            prerequisites.add("python")

        return Step(
            name=env_step_name(tool.name),
            apply=apply,
            probe=PathProbe(python.env_python(env)),
            prerequisites=prerequisites,
            description=f"Python environment for {tool.name}",
            timeout=tool.timeout,
        )

    # ── Shell ───────────────────────────────────────────────────

    def oh_my_zsh(self) -> Step:
        scripts = self.registry.scripts
        url = self.manifest.extras.oh_my_zsh_url

        def apply() -> None:
            scripts.require(
                scripts.run_remote(url, args=["--unattended"], as_user=self.target.account),
                "oh-my-zsh",
            )

        return Step(
            name=OH_MY_ZSH,
            apply=apply,
            probe=PathProbe(self.home / ".oh-my-zsh"),
            prerequisites={BASE_PACKAGES},
            description="Install Oh My Zsh",
        )

    def shell_profile(self) -> Step:
        profile = self.registry.profile
        fs = self.registry.filesystem
        config = self.manifest.profile
        rc_file = self.home / config.file
        lines = render_profile_lines(self.manifest)

        def apply() -> None:
            receipt = profile.require(profile.append_once(rc_file, lines, config.marker), config.file)
            owned = [rc_file]
            if receipt.metadata.get("backup"):
                owned.append(Path(receipt.metadata["backup"]))
            for path in owned:
                fs.require(fs.chown_recursive(path, self.target.account), f"{path.name} ownership")

        prerequisites = {BASE_PACKAGES}
        if self.manifest.extras.oh_my_zsh:
            # the installer replaces the rc file
            prerequisites.add(OH_MY_ZSH)

        return Step(
            name=SHELL_PROFILE,
            apply=apply,
            probe=MarkerProbe(rc_file, config.marker),
            prerequisites=prerequisites,
            description=f"Update {rc_file}",
        )


def build_steps(manifest: Manifest, registry: AdapterRegistry) -> list[Step]:
    """All steps for ``manifest``, in declaration order."""
    return StepBuilder(manifest, registry).build()
