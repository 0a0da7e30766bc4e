"""
Tests for persistence — the append-only run log.
"""

import json
from pathlib import Path

from provisioner.core.persistence.run_log import (
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
    RunLogEntry,
    RunLogWriter,
)


class TestRunLogEntry:
    def test_defaults(self):
        entry = RunLogEntry()
        assert entry.type == "step"
        assert entry.timestamp

    def test_extra_keys_kept(self):
        entry = RunLogEntry.model_validate({"type": "run", "status": "ok", "total": 3})
        data = entry.model_dump()
        assert data["status"] == "ok"
        assert data["total"] == 3


class TestRunLogWriter:
    """Tests for the NDJSON run log."""

    def test_default_path_under_root(self, tmp_path: Path):
        writer = RunLogWriter(root=tmp_path)
        assert writer.path == tmp_path / DEFAULT_LOG_DIR / DEFAULT_LOG_FILE

    def test_write_creates_file(self, tmp_path: Path):
        path = tmp_path / "nested" / "run.ndjson"
        writer = RunLogWriter(path)
        writer.write({"step": "nmap", "phase": "applied"})

        assert path.is_file()
        data = json.loads(path.read_text().strip())
        assert data["step"] == "nmap"
        assert data["type"] == "step"

    def test_append_only(self, tmp_path: Path):
        writer = RunLogWriter(tmp_path / "run.ndjson")
        writer.write({"step": "a"})
        writer.write({"step": "b"})
        # A second writer on the same file appends after the first
        RunLogWriter(tmp_path / "run.ndjson").write({"type": "run", "status": "ok"})

        entries = writer.read_all()
        assert [e.type for e in entries] == ["step", "step", "run"]

    def test_read_missing(self, tmp_path: Path):
        assert RunLogWriter(tmp_path / "missing.ndjson").read_all() == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "run.ndjson"
        writer = RunLogWriter(path)
        writer.write({"step": "a"})
        with path.open("a") as f:
            f.write("not json {{{\n\n")
        writer.write({"step": "b"})

        entries = writer.read_all()
        assert len(entries) == 2

    def test_runs_only(self, tmp_path: Path):
        writer = RunLogWriter(tmp_path / "run.ndjson")
        writer.write({"step": "a"})
        writer.write({"type": "run", "status": "partial"})
        writer.write({"step": "a"})
        writer.write({"type": "run", "status": "ok"})

        runs = writer.runs()
        assert len(runs) == 2
        assert runs[-1].model_dump()["status"] == "ok"

    def test_write_failure_does_not_raise(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        writer = RunLogWriter(blocker / "run.ndjson")
        writer.write({"step": "a"})
        assert writer.read_all() == []
