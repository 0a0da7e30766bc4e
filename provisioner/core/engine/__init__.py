"""Provisioning engine — steps, plans, the runner and its contracts.

    from provisioner.core.engine import Plan, Runner, Severity, Step
"""

from provisioner.core.engine.events import Level, Phase, StepEvent
from provisioner.core.engine.plan import Plan
from provisioner.core.engine.report import Outcome, RunReport, StepResult
from provisioner.core.engine.reporting import (
    CompositeReporter,
    NullReporter,
    RecordingReporter,
    Reporter,
)
from provisioner.core.engine.runner import Runner
from provisioner.core.engine.step import Severity, Step

__all__ = [
    "CompositeReporter",
    "Level",
    "NullReporter",
    "Outcome",
    "Phase",
    "Plan",
    "RecordingReporter",
    "Reporter",
    "RunReport",
    "Runner",
    "Severity",
    "Step",
    "StepEvent",
    "StepResult",
]
