"""
Tests for observability — logging setup and the run reporters.
"""

import json
import logging
from pathlib import Path

import pytest

from provisioner.core.engine.events import Phase, StepEvent
from provisioner.core.engine.plan import Plan
from provisioner.core.engine.runner import Runner
from provisioner.core.engine.step import Severity, Step
from provisioner.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_LEVEL,
    resolve_level,
    setup_logging,
)
from provisioner.core.observability.reporter import (
    JsonLinesReporter,
    TerminalReporter,
    format_event,
)
from provisioner.core.persistence.run_log import RunLogWriter


def _boom() -> None:
    raise RuntimeError("target not found")


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# ── Logging ──────────────────────────────────────────────────────────


class TestLogging:
    def test_resolve_level_precedence(self, monkeypatch):
        monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
        assert resolve_level() == "WARNING"
        monkeypatch.setenv(ENV_LOG_LEVEL, "INFO")
        assert resolve_level() == "INFO"
        assert resolve_level("DEBUG") == "DEBUG"

    def test_console_level(self, restore_logging, monkeypatch):
        monkeypatch.delenv(ENV_LOG_FILE, raising=False)
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back(self, restore_logging, monkeypatch):
        monkeypatch.delenv(ENV_LOG_FILE, raising=False)
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_console_format_follows_level(self, restore_logging, monkeypatch):
        monkeypatch.delenv(ENV_LOG_FILE, raising=False)
        setup_logging(level="DEBUG")
        assert "%(lineno)d" in logging.getLogger().handlers[0].formatter._fmt
        setup_logging(level="WARNING")
        assert logging.getLogger().handlers[0].formatter._fmt == "%(levelname)s: %(message)s"

    def test_file_handler_from_env(self, restore_logging, monkeypatch, tmp_path: Path):
        log_file = tmp_path / "provisioner.log"
        monkeypatch.setenv(ENV_LOG_FILE, str(log_file))
        monkeypatch.setenv("PROVISIONER_LOG_FILE_LEVEL", "DEBUG")

        setup_logging(level="WARNING")
        logging.getLogger("provisioner.test").debug("written to file only")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert "written to file only" in log_file.read_text()


# ── Terminal reporter ────────────────────────────────────────────────


class TestTerminalReporter:
    def test_format_event(self):
        event = StepEvent(step="nmap", phase=Phase.APPLIED, message="nmap completed")
        assert format_event(event) == "[+] nmap completed"
        assert format_event(StepEvent(step="nmap", phase=Phase.BLOCKED)) == "[!] nmap: blocked"

    def test_glyph_per_outcome(self, capsys):
        plan = Plan.build([
            Step(name="done", probe=lambda: True),
            Step(name="new"),
            Step(name="bad", apply=_boom, severity=Severity.FATAL),
            Step(name="after", prerequisites={"bad"}),
        ])
        Runner(reporter=TerminalReporter(color=False)).run(plan)
        out = capsys.readouterr().out

        assert "[*] done..." in out
        assert "[+] done already satisfied" in out
        assert "[+] new completed" in out
        assert "[-] bad failed: target not found" in out
        assert "[!] after blocked: prerequisite 'bad'" in out

    def test_summary(self, capsys):
        plan = Plan.build([
            Step(name="bad", apply=_boom, severity=Severity.FATAL),
            Step(name="after", prerequisites={"bad"}),
            Step(name="ok"),
        ])
        Runner(reporter=TerminalReporter(color=False)).run(plan)
        out = capsys.readouterr().out

        assert "[-] 3 steps: 1 applied, 0 skipped, 1 failed, 1 blocked" in out
        assert "    bad [fatal]: target not found" in out
        assert "Blocked:" in out

    def test_hide_attempts(self, capsys):
        reporter = TerminalReporter(color=False, show_attempts=False)
        Runner(reporter=reporter).run(Plan.build([Step(name="a")]))
        out = capsys.readouterr().out
        assert "a..." not in out
        assert "[+] a completed" in out

    def test_halted_and_cancelled(self, capsys):
        plan = Plan.build([
            Step(name="bad", apply=_boom, severity=Severity.FATAL),
            Step(name="other"),
        ])
        Runner(reporter=TerminalReporter(color=False), halt_on_fatal=True).run(plan)
        assert "Run halted by fatal step 'bad'" in capsys.readouterr().out

        runner = Runner(reporter=TerminalReporter(color=False))
        runner.cancel()
        runner.run(Plan.build([Step(name="a")]))
        assert "[!] Run cancelled" in capsys.readouterr().out


# ── NDJSON reporter ──────────────────────────────────────────────────


class TestJsonLinesReporter:
    def test_events_then_summary(self, tmp_path: Path):
        writer = RunLogWriter(tmp_path / "run.ndjson")
        plan = Plan.build([Step(name="a"), Step(name="b", probe=lambda: True)])
        Runner(reporter=JsonLinesReporter(writer)).run(plan)

        lines = [json.loads(line) for line in writer.path.read_text().splitlines()]
        assert [(e.get("step"), e.get("phase")) for e in lines[:-1]] == [
            ("a", "attempting"),
            ("a", "applied"),
            ("b", "attempting"),
            ("b", "satisfied"),
        ]
        summary = lines[-1]
        assert summary["type"] == "run"
        assert summary["applied"] == 1
        assert summary["skipped"] == 1
        assert [r["name"] for r in summary["results"]] == ["a", "b"]
