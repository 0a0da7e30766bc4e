"""
Error taxonomy for the provisioning engine.

Two families:

    PlanError   — the step set is malformed (cycle, duplicate, dangling
                  prerequisite). Raised while building a plan, before any
                  step runs.
    StepError   — raised from a step's ``apply``. The runner catches it
                  (and any other ``Exception``) and records ``failed``.

Adapters never raise for a failing external command; they return a
Receipt. Step actions turn failing receipts into ``StepError``s.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all provisioner errors."""


# ── Plan construction ──────────────────────────────────────────


class PlanError(ProvisionError):
    """The step set cannot be ordered into a plan."""


class DuplicateName(PlanError):
    """Two or more steps share a name."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(f"Duplicate step name(s): {', '.join(self.names)}")


class UnknownPrerequisite(PlanError):
    """A step lists a prerequisite that names no step in the set."""

    def __init__(self, step: str, missing: list[str]):
        self.step = step
        self.missing = list(missing)
        super().__init__(
            f"Step '{step}' depends on unknown step(s): {', '.join(self.missing)}"
        )


class CycleDetected(PlanError):
    """The prerequisite graph contains a cycle.

    ``cycle`` lists the member names in dependency order, closing on the
    first member (``["a", "b", "a"]``).
    """

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


# ── Step execution ─────────────────────────────────────────────


class StepError(ProvisionError):
    """A step's apply action failed."""


class PrivilegeError(StepError):
    """Not running with the rights the run requires."""


class PrecheckFailed(StepError):
    """A foundational dependency is missing after its install ran."""


class InstallFailed(StepError):
    """Every attempted install source failed for a target.

    ``attempts`` holds one ``(source, error)`` pair per source tried,
    in the order they were tried.
    """

    def __init__(self, target: str, attempts: list[tuple[str, str]] | None = None):
        self.target = target
        self.attempts = list(attempts or [])
        if self.attempts:
            detail = "; ".join(f"{src}: {err}" for src, err in self.attempts)
            message = f"Failed to install {target} ({detail})"
        else:
            message = f"Failed to install {target}"
        super().__init__(message)


# ── Configuration ──────────────────────────────────────────────


class ConfigError(ProvisionError):
    """The manifest is missing, unreadable, or fails validation."""
