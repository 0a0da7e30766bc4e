"""
Reporter contract — purely observational sinks for run progress.

The runner calls ``on_event`` synchronously for every step phase and
``on_finish`` once with the completed report. Reporters own no run
state and never influence control flow.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from provisioner.core.engine.events import StepEvent
from provisioner.core.engine.report import RunReport

logger = logging.getLogger(__name__)


class Reporter(ABC):
    """Base class for run reporters."""

    @abstractmethod
    def on_event(self, event: StepEvent) -> None:
        """Render one step status event."""

    @abstractmethod
    def on_finish(self, report: RunReport) -> None:
        """Render the final summary."""


class NullReporter(Reporter):
    """Discards everything."""

    def on_event(self, event: StepEvent) -> None:
        pass

    def on_finish(self, report: RunReport) -> None:
        pass


class CompositeReporter(Reporter):
    """Fans every call out to several reporters, in order."""

    def __init__(self, reporters: Iterable[Reporter]):
        self._reporters = list(reporters)

    @property
    def reporters(self) -> list[Reporter]:
        return list(self._reporters)

    def on_event(self, event: StepEvent) -> None:
        for reporter in self._reporters:
            try:
                reporter.on_event(event)
            except Exception as e:
                logger.warning(
                    "%s failed on event for '%s': %s", type(reporter).__name__, event.step, e,
                )

    def on_finish(self, report: RunReport) -> None:
        for reporter in self._reporters:
            try:
                reporter.on_finish(report)
            except Exception as e:
                logger.warning("%s failed on finish: %s", type(reporter).__name__, e)


class RecordingReporter(Reporter):
    """Keeps every event and the final report in memory."""

    def __init__(self) -> None:
        self.events: list[StepEvent] = []
        self.report: RunReport | None = None

    def on_event(self, event: StepEvent) -> None:
        self.events.append(event)

    def on_finish(self, report: RunReport) -> None:
        self.report = report

    def phases_for(self, step: str) -> list[str]:
        return [e.phase.value for e in self.events if e.step == step]
