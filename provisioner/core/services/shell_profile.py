"""
Shell profile content — the lines appended to the target user's rc file.
"""

from __future__ import annotations

import shlex
from pathlib import PurePosixPath

from provisioner.core.models.manifest import Manifest, SourceKind


def render_aliases(aliases: dict[str, str]) -> list[str]:
    return [f"alias {name}={shlex.quote(value)}" for name, value in aliases.items()]


def render_workspace_function(manifest: Manifest) -> list[str]:
    """A function creating a dated challenge directory and entering it.

    ``newctf web-101`` creates ``~/ctf/challenges/<date>-web-101`` with
    the configured sub-layout.
    """
    profile = manifest.profile
    if not profile.workspace_function:
        return []

    challenges = PurePosixPath("$HOME") / manifest.workspace.root / "challenges"
    subdirs = " ".join(f'"$dir/{d}"' for d in profile.challenge_dirs) or '"$dir"'
    return [
        f"{profile.workspace_function}() {{ "
        f'local dir="{challenges}/$(date +%Y-%m-%d)-${{1:-challenge}}"; '
        f'mkdir -p {subdirs} && cd "$dir"; }}',
    ]


def render_go_exports(manifest: Manifest) -> list[str]:
    if not manifest.tools_using(SourceKind.GO):
        return []
    return ["export GOPATH=$HOME/go", "export PATH=$PATH:$GOPATH/bin"]


def render_profile_lines(manifest: Manifest) -> list[str]:
    """Everything the shell-profile step appends, in a stable order."""
    lines: list[str] = []
    lines.extend(render_go_exports(manifest))
    if manifest.tools_using(SourceKind.PIPX):
        lines.append('export PATH="$HOME/.local/bin:$PATH"')
    lines.extend(render_aliases(manifest.profile.aliases))
    lines.extend(render_workspace_function(manifest))
    lines.extend(manifest.profile.lines)
    return lines
