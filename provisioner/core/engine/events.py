"""
Status events — what the runner tells reporters.

One event per phase of a step: ``attempting`` before the probe, then
exactly one terminal phase. Each phase maps to one of the four print
levels the terminal reporter renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from provisioner.core.engine.report import Outcome


class Phase(StrEnum):
    ATTEMPTING = "attempting"
    SATISFIED = "satisfied"
    APPLIED = "applied"
    FAILED = "failed"
    BLOCKED = "blocked"


class Level(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


PHASE_LEVELS: dict[Phase, Level] = {
    Phase.ATTEMPTING: Level.INFO,
    Phase.SATISFIED: Level.SUCCESS,
    Phase.APPLIED: Level.SUCCESS,
    Phase.FAILED: Level.ERROR,
    Phase.BLOCKED: Level.WARNING,
}

OUTCOME_PHASES: dict[Outcome, Phase] = {
    Outcome.SKIPPED: Phase.SATISFIED,
    Outcome.APPLIED: Phase.APPLIED,
    Outcome.FAILED: Phase.FAILED,
    Outcome.BLOCKED: Phase.BLOCKED,
}


@dataclass(frozen=True)
class StepEvent:
    """A single status update for one step."""

    step: str
    phase: Phase
    message: str = ""
    error: str | None = None
    position: int = 0
    total: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def level(self) -> Level:
        return PHASE_LEVELS[self.phase]

    @property
    def terminal(self) -> bool:
        return self.phase != Phase.ATTEMPTING

    def to_dict(self) -> dict:
        return {
            "type": "step",
            "step": self.step,
            "phase": self.phase.value,
            "level": self.level.value,
            "message": self.message,
            "error": self.error,
            "position": self.position,
            "total": self.total,
            "timestamp": self.timestamp,
        }
