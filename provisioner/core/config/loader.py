"""
Manifest loader — reads a provisioning manifest into domain models.

Resolution order for which manifest to load:

    explicit path (--manifest)
    PROVISIONER_MANIFEST env var
    provision.yml in the current directory or any parent
    the default manifest shipped with the package

The YAML is parsed with ``yaml.safe_load`` and validated against the
pydantic ``Manifest`` schema. Any failure is a ``ConfigError``.
"""

from __future__ import annotations

import getpass
import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.data import default_manifest_path, find_shipped_manifest
from provisioner.core.errors import ConfigError
from provisioner.core.models.manifest import Manifest

logger = logging.getLogger(__name__)

MANIFEST_FILE = "provision.yml"
ENV_MANIFEST = "PROVISIONER_MANIFEST"

__all__ = [
    "ConfigError",
    "ENV_MANIFEST",
    "MANIFEST_FILE",
    "find_manifest_file",
    "load_manifest",
    "resolve_manifest_path",
]


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for provision.yml starting from ``start_dir``, walking up.

    Returns:
        Path to provision.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def resolve_manifest_path(path: Path | str | None = None, start_dir: Path | None = None) -> Path:
    """Apply the resolution order and return the manifest to load.

    A bare name such as ``arch-ctf-lite`` selects a shipped manifest.
    """
    if path is None:
        path = os.environ.get(ENV_MANIFEST) or None

    if path is not None:
        candidate = Path(path)
        if candidate.is_file():
            return candidate
        shipped = find_shipped_manifest(str(path))
        if shipped is not None:
            return shipped
        raise ConfigError(f"Manifest not found: {path}")

    found = find_manifest_file(start_dir)
    if found is not None:
        return found

    return default_manifest_path()


def load_manifest(path: Path | str | None = None, start_dir: Path | None = None) -> Manifest:
    """Load and validate a manifest.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does
            not match the schema.
    """
    resolved = resolve_manifest_path(path, start_dir)
    logger.debug("Loading manifest from %s", resolved)

    try:
        raw = resolved.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {resolved}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {resolved}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {resolved}, got {type(data).__name__}")

    # The YAML may wrap everything under a "manifest" key or be flat
    if "manifest" in data and isinstance(data["manifest"], dict):
        data = data["manifest"]

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid manifest {resolved}: {e}") from e

    if not manifest.target.account:
        manifest.target.account = default_account()
        logger.info("No target account in manifest, using '%s'", manifest.target.account)

    logger.info("Loaded manifest '%s' with %d tools", manifest.name, len(manifest.tools))
    return manifest


def default_account() -> str:
    """The account that invoked the run: SUDO_USER when run via sudo."""
    return os.environ.get("SUDO_USER") or getpass.getuser()
