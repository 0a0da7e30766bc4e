"""
Status use case — which steps are already satisfied, without changing anything.

Evaluates every step's probe (read-only) and reports adapter
availability and the last recorded run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.config.loader import load_manifest, resolve_manifest_path
from provisioner.core.engine.plan import Plan
from provisioner.core.errors import ConfigError, PlanError
from provisioner.core.models.manifest import Manifest
from provisioner.core.persistence.run_log import RunLogWriter
from provisioner.core.services.step_builders import build_steps


@dataclass
class StepStatus:
    name: str
    severity: str
    satisfied: bool
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "severity": self.severity,
            "satisfied": self.satisfied,
            "description": self.description,
        }


@dataclass
class StatusResult:
    """Current state of the workstation against a manifest."""

    manifest: Manifest | None = None
    manifest_path: Path | None = None
    steps: list[StepStatus] = field(default_factory=list)
    adapters: dict[str, dict] = field(default_factory=dict)
    last_run: dict | None = None
    error: str | None = None

    @property
    def satisfied_count(self) -> int:
        return sum(1 for s in self.steps if s.satisfied)

    @property
    def pending(self) -> list[str]:
        return [s.name for s in self.steps if not s.satisfied]

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["manifest"] = self.manifest.name if self.manifest else ""
        result["manifest_path"] = str(self.manifest_path) if self.manifest_path else None
        result["target"] = self.manifest.target.account if self.manifest else ""
        result["total"] = len(self.steps)
        result["satisfied"] = self.satisfied_count
        result["pending"] = self.pending
        result["steps"] = [s.to_dict() for s in self.steps]
        result["adapters"] = self.adapters
        result["last_run"] = self.last_run
        return result


def get_status(
    manifest_path: Path | str | None = None,
    command_runner: CommandRunner | None = None,
    mock_mode: bool = False,
    run_log: Path | None = None,
) -> StatusResult:
    """Probe every step of the manifest's plan.

    Args:
        run_log: Run log to read the last recorded run from.
    """
    result = StatusResult()

    try:
        result.manifest_path = resolve_manifest_path(manifest_path)
        manifest = load_manifest(result.manifest_path)
        result.manifest = manifest
    except ConfigError as e:
        result.error = str(e)
        return result

    if command_runner is None:
        command_runner = MockCommandRunner() if mock_mode else CommandRunner()
    registry = AdapterRegistry(manifest, command_runner)

    try:
        plan = Plan.build(build_steps(manifest, registry))
    except PlanError as e:
        result.error = str(e)
        return result

    for step in plan:
        result.steps.append(StepStatus(
            name=step.name,
            severity=step.severity.value,
            satisfied=bool(step.probe()),
            description=step.description,
        ))

    result.adapters = registry.adapter_status()

    if run_log is not None:
        runs = RunLogWriter(run_log).runs()
        if runs:
            result.last_run = runs[-1].model_dump(mode="json")

    return result
