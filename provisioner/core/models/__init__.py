"""
Domain models — pydantic types for the provisioner.

    from provisioner.core.models import Manifest, ToolEntry, Receipt
"""

from provisioner.core.models.manifest import (
    AurSource,
    CommunitySource,
    Extras,
    Manifest,
    ProfileConfig,
    SourceKind,
    Sources,
    SystemConfig,
    Target,
    ToolEntry,
    Workspace,
)
from provisioner.core.models.receipt import Receipt

__all__ = [
    "AurSource",
    "CommunitySource",
    "Extras",
    "Manifest",
    "ProfileConfig",
    "Receipt",
    "SourceKind",
    "Sources",
    "SystemConfig",
    "Target",
    "ToolEntry",
    "Workspace",
]
