"""
Runner — the sequential execution loop.

Flow per step, in plan order:
    blocked by a prerequisite?  → blocked
    probe says satisfied?       → skipped
    apply returns               → applied
    apply raises                → failed

Severity policy:
    advisory failure  → recorded, run continues, dependents still run
    fatal failure     → dependents are blocked; with ``halt_on_fatal``
                        every remaining step is blocked and the run stops

A prerequisite that was itself blocked blocks its dependents whatever
its severity: nothing downstream of a step that never ran is attempted.
"""

from __future__ import annotations

import logging
import threading
import time

from provisioner.core.engine.events import OUTCOME_PHASES, Phase, StepEvent
from provisioner.core.engine.plan import Plan
from provisioner.core.engine.report import Outcome, RunReport, StepResult
from provisioner.core.engine.reporting import NullReporter, Reporter
from provisioner.core.engine.step import Severity, Step

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"


class Runner:
    """Execute a plan one step at a time.

    Args:
        reporter: Sink for status events and the final report.
        halt_on_fatal: Stop the whole run at the first fatal failure
            instead of only blocking its dependents.
    """

    def __init__(
        self,
        reporter: Reporter | None = None,
        halt_on_fatal: bool = False,
    ):
        self._reporter = reporter or NullReporter()
        self._halt_on_fatal = halt_on_fatal
        self._cancel = threading.Event()

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    @reporter.setter
    def reporter(self, reporter: Reporter) -> None:
        self._reporter = reporter

    @property
    def halt_on_fatal(self) -> bool:
        return self._halt_on_fatal

    # ── Cancellation ────────────────────────────────────────────

    def cancel(self) -> None:
        """Request the run stop before the next step's apply.

        Safe to call from a signal handler or another thread.
        """
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    # ── Execution ───────────────────────────────────────────────

    def run(self, plan: Plan) -> RunReport:
        """Execute every step of ``plan`` and return the report."""
        report = RunReport()
        steps = list(plan)
        total = len(steps)

        logger.info("Running plan with %d steps", total)

        for index, step in enumerate(steps):
            position = index + 1

            if self._cancel.is_set():
                report.cancelled = True
                self._block_all(steps[index:], report, CANCELLED_REASON, index, total)
                break

            blocker = self._blocking_prerequisite(step, plan, report)
            if blocker is not None:
                self._record(
                    report,
                    StepResult(
                        name=step.name,
                        outcome=Outcome.BLOCKED,
                        severity=step.severity,
                        reason=f"prerequisite '{blocker}' did not complete",
                    ),
                    position,
                    total,
                )
                continue

            result = self._execute(step, position, total)
            self._record(report, result, position, total)

            if result.reason == CANCELLED_REASON:
                report.cancelled = True
                self._block_all(steps[position:], report, CANCELLED_REASON, position, total)
                break

            if result.fatal_failure and self._halt_on_fatal:
                report.halted_by = step.name
                logger.error("Fatal step '%s' failed, halting run", step.name)
                self._block_all(
                    steps[position:],
                    report,
                    f"halted after fatal failure in '{step.name}'",
                    position,
                    total,
                )
                break

        report.finish()
        logger.info(
            "Run finished: %d applied, %d skipped, %d failed, %d blocked",
            report.applied, report.skipped, report.failed, report.blocked,
        )
        self._notify_finish(report)
        return report

    def _execute(self, step: Step, position: int, total: int) -> StepResult:
        self._notify(StepEvent(
            step=step.name,
            phase=Phase.ATTEMPTING,
            message=f"{step.label}...",
            position=position,
            total=total,
        ))

        start = time.monotonic()
        if self._probe(step):
            return StepResult(
                name=step.name,
                outcome=Outcome.SKIPPED,
                severity=step.severity,
                reason="already satisfied",
                duration_ms=_elapsed_ms(start),
            )

        if self._cancel.is_set():
            return StepResult(
                name=step.name,
                outcome=Outcome.BLOCKED,
                severity=step.severity,
                reason=CANCELLED_REASON,
            )

        try:
            step.apply()
        except Exception as e:
            logger.debug("Step '%s' raised", step.name, exc_info=True)
            return StepResult(
                name=step.name,
                outcome=Outcome.FAILED,
                severity=step.severity,
                error=str(e) or e.__class__.__name__,
                duration_ms=_elapsed_ms(start),
            )

        return StepResult(
            name=step.name,
            outcome=Outcome.APPLIED,
            severity=step.severity,
            duration_ms=_elapsed_ms(start),
        )

    # ── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _probe(step: Step) -> bool:
        """Run a step's probe; an error means "not present"."""
        try:
            return bool(step.probe())
        except Exception as e:
            logger.debug("Probe for '%s' raised, treating as absent: %s", step.name, e)
            return False

    @staticmethod
    def _blocking_prerequisite(step: Step, plan: Plan, report: RunReport) -> str | None:
        for dep in sorted(step.prerequisites, key=plan.index_of):
            result = report.result_of(dep)
            if result is None:
                continue
            if result.outcome == Outcome.BLOCKED:
                return dep
            if result.outcome == Outcome.FAILED and result.severity == Severity.FATAL:
                return dep
        return None

    def _block_all(
        self,
        steps: list[Step],
        report: RunReport,
        reason: str,
        offset: int,
        total: int,
    ) -> None:
        for i, step in enumerate(steps, start=offset + 1):
            if report.result_of(step.name) is not None:
                continue
            self._record(
                report,
                StepResult(
                    name=step.name,
                    outcome=Outcome.BLOCKED,
                    severity=step.severity,
                    reason=reason,
                ),
                i,
                total,
            )

    def _record(self, report: RunReport, result: StepResult, position: int, total: int) -> None:
        report.record(result)
        self._notify(StepEvent(
            step=result.name,
            phase=OUTCOME_PHASES[result.outcome],
            message=_describe(result),
            error=result.error,
            position=position,
            total=total,
        ))

    def _notify(self, event: StepEvent) -> None:
        try:
            self._reporter.on_event(event)
        except Exception as e:
            logger.warning("Reporter failed on event for '%s': %s", event.step, e)

    def _notify_finish(self, report: RunReport) -> None:
        try:
            self._reporter.on_finish(report)
        except Exception as e:
            logger.warning("Reporter failed on finish: %s", e)


def _describe(result: StepResult) -> str:
    if result.outcome == Outcome.SKIPPED:
        return f"{result.name} already satisfied"
    if result.outcome == Outcome.APPLIED:
        return f"{result.name} completed"
    if result.outcome == Outcome.FAILED:
        return f"{result.name} failed: {result.error}"
    return f"{result.name} blocked: {result.reason}"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
