"""
Provision use case — load a manifest, build the plan, run it.

This is the top-level orchestrator behind ``provisioner run`` and
``provisioner plan``: manifest → adapters → steps → plan → runner →
report, with the run log appended along the way.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.config.loader import load_manifest, resolve_manifest_path
from provisioner.core.engine.plan import Plan
from provisioner.core.engine.report import EXIT_FATAL, RunReport
from provisioner.core.engine.reporting import CompositeReporter, Reporter
from provisioner.core.engine.runner import Runner
from provisioner.core.errors import ConfigError, PlanError
from provisioner.core.models.manifest import Manifest
from provisioner.core.observability.reporter import JsonLinesReporter
from provisioner.core.persistence.run_log import RunLogWriter
from provisioner.core.services.step_builders import build_steps

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of planning and (optionally) running a manifest."""

    manifest: Manifest | None = None
    manifest_path: Path | None = None
    plan: Plan | None = None
    report: RunReport | None = None
    run_log: Path | None = None
    mock_mode: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return EXIT_FATAL
        return self.report.exit_code if self.report else 0

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["manifest"] = self.manifest.name if self.manifest else ""
        result["manifest_path"] = str(self.manifest_path) if self.manifest_path else None
        result["mock_mode"] = self.mock_mode
        if self.plan is not None:
            result["plan"] = self.plan.to_dict()
        if self.report is not None:
            result["report"] = self.report.to_dict()
        if self.run_log is not None:
            result["run_log"] = str(self.run_log)
        return result


def build_plan(
    manifest: Manifest,
    command_runner: CommandRunner,
    only: Iterable[str] | None = None,
) -> Plan:
    """Steps for ``manifest`` ordered into a plan.

    Args:
        only: Restrict the plan to these steps and their prerequisites.

    Raises:
        PlanError: The steps cannot be ordered.
    """
    registry = AdapterRegistry(manifest, command_runner)
    plan = Plan.build(build_steps(manifest, registry))
    selected = [n for n in (only or []) if n]
    if selected:
        plan = plan.subset(selected)
    return plan


def plan_manifest(
    manifest_path: Path | str | None = None,
    only: Iterable[str] | None = None,
) -> ProvisionResult:
    """Load and plan without running anything."""
    result = ProvisionResult(mock_mode=True)
    try:
        result.manifest_path = resolve_manifest_path(manifest_path)
        result.manifest = load_manifest(result.manifest_path)
        result.plan = build_plan(result.manifest, MockCommandRunner(), only)
    except (ConfigError, PlanError) as e:
        result.error = str(e)
    return result


def provision(
    manifest_path: Path | str | None = None,
    only: Iterable[str] | None = None,
    mock_mode: bool = False,
    runner: Runner | None = None,
    reporter: Reporter | None = None,
    command_runner: CommandRunner | None = None,
    run_log: Path | None = None,
    halt_on_fatal: bool = False,
) -> ProvisionResult:
    """Provision the workstation described by a manifest.

    Args:
        manifest_path: Manifest file or shipped manifest name. None
            applies the discovery order.
        only: Restrict the run to these steps and their prerequisites.
        mock_mode: Record commands instead of executing them.
        runner: Pre-built runner (the CLI keeps a handle for signals).
        reporter: Progress sink, e.g. the terminal reporter.
        command_runner: Explicit command runner, overrides ``mock_mode``.
        run_log: NDJSON file to append events and the report to.
        halt_on_fatal: Stop everything at the first fatal failure.
            Ignored when ``runner`` is given.

    Returns:
        ProvisionResult with the plan and the run report, or ``error``
        set when the manifest or plan is invalid (nothing ran).
    """
    result = ProvisionResult(mock_mode=mock_mode, run_log=run_log)

    try:
        result.manifest_path = resolve_manifest_path(manifest_path)
        manifest = load_manifest(result.manifest_path)
        result.manifest = manifest

        if command_runner is None:
            command_runner = MockCommandRunner() if mock_mode else CommandRunner()
        result.mock_mode = command_runner.simulated

        plan = build_plan(manifest, command_runner, only)
        result.plan = plan
    except (ConfigError, PlanError) as e:
        logger.error("Cannot provision: %s", e)
        result.error = str(e)
        return result

    reporters: list[Reporter] = [reporter] if reporter else []
    if run_log is not None:
        reporters.append(JsonLinesReporter(RunLogWriter(run_log)))

    runner = runner or Runner(halt_on_fatal=halt_on_fatal)
    own_reporter = runner.reporter
    if reporters:
        runner.reporter = CompositeReporter([own_reporter, *reporters])

    logger.info(
        "Provisioning '%s' for %s (%d steps%s)",
        manifest.name, manifest.target.account, len(plan),
        ", simulated" if result.mock_mode else "",
    )
    try:
        result.report = runner.run(plan)
    finally:
        runner.reporter = own_reporter
    return result
