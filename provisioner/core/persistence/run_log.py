"""
Run log — append-only execution history.

Every step event and every final run summary is written as one line of
an NDJSON (newline-delimited JSON) file. Entries are never modified or
deleted; a second run appends after the first.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = ".state"
DEFAULT_LOG_FILE = "provision.ndjson"


class RunLogEntry(BaseModel):
    """A single run-log line.

    ``type`` is ``step`` for status events and ``run`` for the summary
    written at the end of a run. Other keys are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    type: str = "step"
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class RunLogWriter:
    """Append-only run-log writer.

    Each call to write() appends one JSON line. The file and its parent
    directory are created on first write.
    """

    def __init__(self, path: Path | None = None, root: Path | None = None):
        if path is not None:
            self._path = Path(path)
        elif root is not None:
            self._path = root / DEFAULT_LOG_DIR / DEFAULT_LOG_FILE
        else:
            self._path = Path(DEFAULT_LOG_DIR) / DEFAULT_LOG_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, data: dict[str, Any]) -> None:
        """Append one entry.

        Write failures are logged, never raised: losing a log line must
        not fail a provisioning run.
        """
        entry = RunLogEntry.model_validate(data)
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write run log entry: %s", e)

    def read_all(self) -> list[RunLogEntry]:
        """Read all entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(RunLogEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt run log entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run log: %s", e)

        return entries

    def runs(self) -> list[RunLogEntry]:
        """Only the end-of-run summaries."""
        return [e for e in self.read_all() if e.type == "run"]
