"""
Concrete reporters — terminal output and the NDJSON run log.
"""

from __future__ import annotations

import click

from provisioner.core.engine.events import Level, Phase, StepEvent
from provisioner.core.engine.report import RunReport
from provisioner.core.engine.reporting import Reporter
from provisioner.core.persistence.run_log import RunLogWriter

# Glyph and colour per print level
LEVEL_STYLES: dict[Level, tuple[str, str]] = {
    Level.INFO: ("[*]", "blue"),
    Level.SUCCESS: ("[+]", "green"),
    Level.ERROR: ("[-]", "red"),
    Level.WARNING: ("[!]", "yellow"),
}


def format_event(event: StepEvent) -> str:
    """One plain-text line for ``event``, without colour."""
    glyph, _ = LEVEL_STYLES[event.level]
    text = event.message or f"{event.step}: {event.phase}"
    return f"{glyph} {text}"


class TerminalReporter(Reporter):
    """Human-readable progress on the terminal.

    Args:
        color: Force colour on or off; None lets click decide.
        show_attempts: Also print the ``attempting`` line per step.
    """

    def __init__(self, color: bool | None = None, show_attempts: bool = True):
        self._color = color
        self._show_attempts = show_attempts

    def _echo(self, level: Level, text: str, err: bool = False) -> None:
        _, fg = LEVEL_STYLES[level]
        click.secho(text, fg=fg, color=self._color, err=err)

    def on_event(self, event: StepEvent) -> None:
        if event.phase == Phase.ATTEMPTING and not self._show_attempts:
            return
        self._echo(event.level, format_event(event))

    def on_finish(self, report: RunReport) -> None:
        click.echo()
        summary_level = {
            "ok": Level.SUCCESS,
            "partial": Level.WARNING,
            "failed": Level.ERROR,
        }[report.status]
        glyph, _ = LEVEL_STYLES[summary_level]
        self._echo(
            summary_level,
            f"{glyph} {report.total} steps: {report.applied} applied, "
            f"{report.skipped} skipped, {report.failed} failed, {report.blocked} blocked",
        )

        if report.failures:
            self._echo(Level.ERROR, "Failed:")
            for result in report.failures:
                self._echo(Level.ERROR, f"    {result.name} [{result.severity}]: {result.error}")

        if report.blocked_steps:
            self._echo(Level.WARNING, "Blocked:")
            for result in report.blocked_steps:
                self._echo(Level.WARNING, f"    {result.name}: {result.reason}")

        if report.cancelled:
            self._echo(Level.WARNING, "[!] Run cancelled")
        elif report.halted_by:
            self._echo(Level.ERROR, f"[-] Run halted by fatal step '{report.halted_by}'")


class JsonLinesReporter(Reporter):
    """Appends every event and the final report to a run log."""

    def __init__(self, writer: RunLogWriter):
        self._writer = writer

    @property
    def writer(self) -> RunLogWriter:
        return self._writer

    def on_event(self, event: StepEvent) -> None:
        self._writer.write(event.to_dict())

    def on_finish(self, report: RunReport) -> None:
        self._writer.write({"type": "run", **report.to_dict()})
