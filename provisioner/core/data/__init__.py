"""
Packaged data — the manifests shipped with the provisioner.
"""

from __future__ import annotations

from pathlib import Path

MANIFESTS_DIR = Path(__file__).parent / "manifests"
DEFAULT_MANIFEST = "arch-pentest"


def list_manifests() -> list[str]:
    """Names of the shipped manifests, sorted."""
    return sorted(p.stem for p in MANIFESTS_DIR.glob("*.yml"))


def find_shipped_manifest(name: str) -> Path | None:
    stem = name[:-4] if name.endswith(".yml") else name
    candidate = MANIFESTS_DIR / f"{stem}.yml"
    return candidate if candidate.is_file() else None


def default_manifest_path() -> Path:
    return MANIFESTS_DIR / f"{DEFAULT_MANIFEST}.yml"
