"""Configuration — manifest discovery and loading."""

from provisioner.core.config.loader import ConfigError, find_manifest_file, load_manifest

__all__ = ["ConfigError", "find_manifest_file", "load_manifest"]
