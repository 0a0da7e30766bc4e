"""
Shared test fixtures and configuration.
"""

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.models.manifest import Manifest

MINIMAL_MANIFEST = """\
    name: test-box
    description: "Manifest used by the test suite"
    target:
      account: alice
      home: {home}
      shell: /bin/zsh
    system:
      upgrade: false
      base_packages: [zsh, git]
    sources:
      community:
        pacman_conf: {pacman_conf}
    tools:
      - name: nmap
        sources: [official, community]
      - name: evil-winrm
        sources: [aur]
"""


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory for the target account."""
    path = tmp_path / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def pacman_conf(tmp_path: Path) -> Path:
    """A pacman.conf without any community section."""
    path = tmp_path / "pacman.conf"
    path.write_text("[options]\nHoldPkg = pacman glibc\n\n[core]\nInclude = /etc/pacman.d/mirrorlist\n")
    return path


@pytest.fixture
def write_manifest(tmp_path: Path, home: Path, pacman_conf: Path) -> Callable[..., Path]:
    """Write a manifest file; ``{home}`` and ``{pacman_conf}`` are filled in."""

    def _write(content: str = MINIMAL_MANIFEST, name: str = "provision.yml") -> Path:
        path = tmp_path / name
        text = textwrap.dedent(content).format(home=home, pacman_conf=pacman_conf)
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def manifest(home: Path, pacman_conf: Path) -> Manifest:
    return Manifest.model_validate({
        "name": "test-box",
        "target": {"account": "alice", "home": str(home)},
        "system": {"upgrade": True, "base_packages": ["zsh", "git"]},
        "sources": {"community": {"pacman_conf": str(pacman_conf)}},
        "profile": {"aliases": {"serve": "python -m http.server 8000"}},
        "tools": [
            {"name": "nmap", "sources": ["official", "community"]},
            {"name": "evil-winrm", "sources": ["aur"]},
            {"name": "python"},
            {"name": "go"},
            {
                "name": "cf-hero",
                "sources": ["go"],
                "package": "github.com/musana/cf-hero/cmd/cf-hero@latest",
                "requires": ["go"],
            },
            {
                "name": "jwt_tool",
                "sources": ["git"],
                "url": "https://github.com/ticarpi/jwt_tool.git",
                "requirements": "requirements.txt",
            },
        ],
    })


@pytest.fixture
def mock_runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest.fixture
def registry(manifest: Manifest, mock_runner: MockCommandRunner) -> AdapterRegistry:
    return AdapterRegistry(manifest, mock_runner)
