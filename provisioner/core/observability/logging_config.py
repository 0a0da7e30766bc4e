"""
Process-wide logging for provisioner runs.

The ``cli`` group calls ``setup_logging`` before any command body runs;
adapters and services only ever ask for ``logging.getLogger(__name__)``.
Step progress is the reporters' job, so the console stays at WARNING
unless ``-v``/``--debug`` or ``PROVISIONER_LOG_LEVEL`` raise it.
``PROVISIONER_LOG_FILE`` adds a file that can hold every command line
at its own level while the console stays quiet.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "PROVISIONER_LOG_LEVEL"
ENV_LOG_FILE = "PROVISIONER_LOG_FILE"
ENV_LOG_FILE_LEVEL = "PROVISIONER_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s"

# console level -> (format, datefmt); the first entry whose level is >= wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s: %(message)s", None),
)

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(cli_level: str | None = None) -> str:
    """Pick the console level: CLI flag, then environment, then WARNING."""
    if cli_level:
        return cli_level
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the stderr handler and, if asked, a file handler.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: File to append records to. Falls back to
            ``PROVISIONER_LOG_FILE``.
        log_file_level: Level for the file. Falls back to
            ``PROVISIONER_LOG_FILE_LEVEL``, then to ``level``.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(ENV_LOG_FILE) or None
    log_file_level = log_file_level or os.environ.get(ENV_LOG_FILE_LEVEL) or None

    root = logging.getLogger()
    root.handlers.clear()

    # stderr, so --json output on stdout stays parseable
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    root.addHandler(console)

    lowest = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        lowest = min(lowest, file_level)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_DETAILED, datefmt=_FILE_DATEFMT))
        root.addHandler(file_handler)

    root.setLevel(lowest)

    # handler errors are dropped, never raised into a run
    logging.raiseExceptions = False


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_CONSOLE_FORMATS[-1][1])


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value, WARNING when unrecognised."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
