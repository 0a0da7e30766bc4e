"""
Outcomes and the run report.

One StepResult per step, recorded once by the runner. The RunReport is
the ordered collection plus the aggregate view the reporters and the
CLI exit code are derived from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from provisioner.core.engine.step import Severity

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Outcome(StrEnum):
    """Terminal status of a step after a run."""

    SKIPPED = "skipped"  # target state already held
    APPLIED = "applied"  # action ran and succeeded
    FAILED = "failed"    # action ran and raised
    BLOCKED = "blocked"  # not attempted


@dataclass(frozen=True)
class StepResult:
    """The recorded outcome of one step."""

    name: str
    outcome: Outcome
    severity: Severity = Severity.ADVISORY
    error: str | None = None
    reason: str = ""
    duration_ms: int = 0

    @property
    def fatal_failure(self) -> bool:
        return self.outcome == Outcome.FAILED and self.severity == Severity.FATAL

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "severity": self.severity.value,
            "error": self.error,
            "reason": self.reason,
            "duration_ms": self.duration_ms,
        }


@dataclass
class RunReport:
    """Result of executing a plan.

    Outcomes are write-once: recording a second result for the same
    step is a programming error.
    """

    started_at: str = field(default_factory=_now_iso)
    finished_at: str = ""
    cancelled: bool = False
    halted_by: str | None = None

    _results: list[StepResult] = field(default_factory=list, repr=False)
    _by_name: dict[str, StepResult] = field(default_factory=dict, repr=False)

    def record(self, result: StepResult) -> None:
        if result.name in self._by_name:
            raise ValueError(f"Outcome for step '{result.name}' already recorded")
        self._results.append(result)
        self._by_name[result.name] = result

    def finish(self) -> None:
        self.finished_at = _now_iso()

    # ── Queries ─────────────────────────────────────────────────

    @property
    def results(self) -> tuple[StepResult, ...]:
        return tuple(self._results)

    @property
    def pairs(self) -> list[tuple[str, Outcome]]:
        """Ordered ``(step name, outcome)`` pairs."""
        return [(r.name, r.outcome) for r in self._results]

    def outcome_of(self, name: str) -> Outcome | None:
        result = self._by_name.get(name)
        return result.outcome if result else None

    def result_of(self, name: str) -> StepResult | None:
        return self._by_name.get(name)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self._results if r.outcome == outcome)

    @property
    def total(self) -> int:
        return len(self._results)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def applied(self) -> int:
        return self._count(Outcome.APPLIED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def blocked(self) -> int:
        return self._count(Outcome.BLOCKED)

    @property
    def failures(self) -> list[StepResult]:
        return [r for r in self._results if r.outcome == Outcome.FAILED]

    @property
    def blocked_steps(self) -> list[StepResult]:
        return [r for r in self._results if r.outcome == Outcome.BLOCKED]

    @property
    def fatal_failed(self) -> bool:
        return any(r.fatal_failure for r in self._results)

    @property
    def status(self) -> str:
        if self.failed == 0 and self.blocked == 0:
            return "ok"
        if self.fatal_failed or self.cancelled:
            return "failed"
        return "partial"

    @property
    def exit_code(self) -> int:
        if self.cancelled:
            return EXIT_CANCELLED
        if self.fatal_failed:
            return EXIT_FATAL
        return EXIT_OK

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "exit_code": self.exit_code,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "cancelled": self.cancelled,
            "halted_by": self.halted_by,
            "total": self.total,
            "skipped": self.skipped,
            "applied": self.applied,
            "failed": self.failed,
            "blocked": self.blocked,
            "results": [r.to_dict() for r in self._results],
        }
