"""
Step — the atomic unit of provisioning work.

A step names a target state, knows how to check for it (probe) and how
to reach it (apply). Steps are authored once per run and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable


class Severity(StrEnum):
    """How a step's failure affects the rest of the run."""

    FATAL = "fatal"        # dependents cannot run without it
    ADVISORY = "advisory"  # record and continue


def _never() -> bool:
    return False


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Step:
    """A named, idempotent unit of work.

    Args:
        name: Unique name; the join key for prerequisites.
        apply: Action that brings the system to the target state.
            Returns nothing; raises on failure.
        probe: Read-only check; True means the target state already
            holds and ``apply`` is skipped.
        prerequisites: Names of steps that must run first.
        severity: Fatal or advisory.
        description: Human-readable label for reports.
        timeout: Seconds each external command of ``apply`` may take.
            None waits indefinitely.
    """

    name: str
    apply: Callable[[], None] = _noop
    probe: Callable[[], bool] = _never
    prerequisites: frozenset[str] = field(default_factory=frozenset)
    severity: Severity = Severity.ADVISORY
    description: str = ""
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Step name must not be empty")
        # Accept any iterable of names from callers
        if not isinstance(self.prerequisites, frozenset):
            object.__setattr__(self, "prerequisites", frozenset(self.prerequisites))

    @property
    def fatal(self) -> bool:
        return self.severity == Severity.FATAL

    @property
    def label(self) -> str:
        return self.description or self.name
