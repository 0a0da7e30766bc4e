"""
Check use case — validate a manifest and the plan it produces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner
from provisioner.core.config.loader import load_manifest, resolve_manifest_path
from provisioner.core.errors import ConfigError, PlanError
from provisioner.core.models.manifest import Manifest, SourceKind
from provisioner.core.use_cases.provision import build_plan


@dataclass
class CheckResult:
    """Result of manifest validation."""

    valid: bool = False
    manifest: Manifest | None = None
    manifest_path: Path | None = None
    step_count: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "manifest_path": str(self.manifest_path) if self.manifest_path else None,
            "manifest_name": self.manifest.name if self.manifest else None,
            "tool_count": len(self.manifest.tools) if self.manifest else 0,
            "step_count": self.step_count,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def check_manifest(manifest_path: Path | str | None = None) -> CheckResult:
    """Load the manifest, build its plan, and report problems.

    Errors make the manifest unusable; warnings flag tools likely to
    fail at run time.
    """
    result = CheckResult()

    try:
        result.manifest_path = resolve_manifest_path(manifest_path)
        manifest = load_manifest(result.manifest_path)
        result.manifest = manifest
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    try:
        plan = build_plan(manifest, MockCommandRunner())
        result.step_count = len(plan)
    except PlanError as e:
        result.errors.append(str(e))
        return result

    result.warnings.extend(_toolchain_warnings(manifest))
    if not manifest.tools:
        result.warnings.append("No tools defined. Only the base system will be provisioned.")

    result.valid = not result.errors
    return result


def _toolchain_warnings(manifest: Manifest) -> list[str]:
    """Tools whose source needs a toolchain nothing in the run provides."""
    provided = {t.executable for t in manifest.tools} | set(manifest.system.base_packages)
    needs = {SourceKind.GO: "go", SourceKind.PIPX: "pipx"}

    warnings = []
    for kind, executable in needs.items():
        if executable in provided:
            continue
        for tool in manifest.tools_using(kind):
            warnings.append(
                f"Tool '{tool.name}' installs with {kind} but no tool provides '{executable}'"
            )
    return warnings
