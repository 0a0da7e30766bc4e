"""Adapters — bindings to the external tools the engine drives.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import Adapter
from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandRunner",
    "MockCommandRunner",
]
