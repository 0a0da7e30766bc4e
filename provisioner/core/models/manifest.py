"""
Manifest model — the provisioning content, as data.

Loaded from a YAML manifest, this is the canonical truth about which
account is being provisioned, where packages come from, and which
tools, directories and shell additions the workstation should end up
with. Variants of a workstation are different manifests.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from provisioner.core.engine.step import Severity


class SourceKind(StrEnum):
    """Where a tool can be installed from."""

    OFFICIAL = "official"      # distribution repositories (pacman)
    COMMUNITY = "community"    # community repository (e.g. BlackArch)
    AUR = "aur"                # user repository, via the AUR helper
    PIPX = "pipx"              # isolated python application
    GO = "go"                  # go install
    GIT = "git"                # git clone (+ optional venv)


class Target(BaseModel):
    """The account being provisioned."""

    account: str = ""
    home: str = ""
    shell: str = "/bin/zsh"

    @property
    def home_path(self) -> Path:
        return Path(self.home) if self.home else Path("/home") / self.account


class SystemConfig(BaseModel):
    """Operating-system level preconditions."""

    upgrade: bool = True
    base_packages: list[str] = Field(
        default_factory=lambda: ["zsh", "git", "base-devel", "wget", "curl"]
    )
    shell_package: str = "zsh"


class CommunitySource(BaseModel):
    """Community package repository endpoint."""

    name: str = "blackarch"
    strap_url: str = "https://blackarch.org/strap.sh"
    pacman_conf: str = "/etc/pacman.conf"


class AurSource(BaseModel):
    """AUR helper endpoint (built from source when missing)."""

    helper: str = "yay"
    repo_url: str = "https://aur.archlinux.org/yay.git"
    build_dir: str = "yay_build"


class Sources(BaseModel):
    community: CommunitySource = Field(default_factory=CommunitySource)
    aur: AurSource = Field(default_factory=AurSource)


class ToolEntry(BaseModel):
    """One tool to install.

    ``sources`` is tried in order until one succeeds. ``requires``
    adds prerequisite step names on top of those implied by the
    sources (e.g. a go tool requiring the ``go`` package step).
    """

    name: str
    sources: list[SourceKind] = Field(default_factory=lambda: [SourceKind.OFFICIAL])
    aliases: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    severity: Severity = Severity.ADVISORY
    description: str = ""
    timeout: float | None = None

    binary: str = ""           # executable name when it differs from name
    url: str = ""              # git: repository URL
    package: str = ""          # go: module path, e.g. github.com/x/y/cmd/y@latest
    requirements: str = ""     # git: requirements manifest inside the clone
    refresh: bool = False      # git: pull even when already cloned

    @model_validator(mode="after")
    def _check_sources(self) -> ToolEntry:
        if not self.sources:
            raise ValueError(f"tool '{self.name}' declares no sources")
        if SourceKind.GIT in self.sources:
            if len(self.sources) > 1:
                raise ValueError(f"tool '{self.name}': git cannot be combined with other sources")
            if not self.url:
                raise ValueError(f"tool '{self.name}': git source requires 'url'")
        if SourceKind.GO in self.sources and not self.package:
            raise ValueError(f"tool '{self.name}': go source requires 'package'")
        return self

    @property
    def executable(self) -> str:
        return self.binary or self.name

    def uses(self, kind: SourceKind) -> bool:
        return kind in self.sources


class Workspace(BaseModel):
    """Directory layout created in the target home."""

    root: str = "ctf"
    dirs: list[str] = Field(
        default_factory=lambda: ["tools", "wordlists", "challenges", "notes"]
    )
    tools_dir: str = "tools"

    def root_path(self, home: Path) -> Path:
        return home / self.root

    def dir_paths(self, home: Path) -> list[Path]:
        root = self.root_path(home)
        return [root / d for d in self.dirs]

    def tools_path(self, home: Path) -> Path:
        return self.root_path(home) / self.tools_dir


class ProfileConfig(BaseModel):
    """Additions to the target user's shell profile."""

    file: str = ".zshrc"
    marker: str = "# >>> provisioner >>>"
    aliases: dict[str, str] = Field(default_factory=dict)
    lines: list[str] = Field(default_factory=list)
    workspace_function: str = "newctf"
    challenge_dirs: list[str] = Field(
        default_factory=lambda: ["notes", "exploits", "loot", "files"]
    )


class Extras(BaseModel):
    oh_my_zsh: bool = False
    oh_my_zsh_url: str = (
        "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
    )


class Manifest(BaseModel):
    """Root manifest — loaded from a YAML file."""

    version: int = 1

    name: str
    description: str = ""

    target: Target
    system: SystemConfig = Field(default_factory=SystemConfig)
    sources: Sources = Field(default_factory=Sources)
    workspace: Workspace = Field(default_factory=Workspace)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)
    extras: Extras = Field(default_factory=Extras)

    tools: list[ToolEntry] = Field(default_factory=list)

    def tools_using(self, kind: SourceKind) -> list[ToolEntry]:
        """All tools that list ``kind`` among their sources."""
        return [t for t in self.tools if t.uses(kind)]

    def get_tool(self, name: str) -> ToolEntry | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None
