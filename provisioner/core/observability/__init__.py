"""Observability — logging setup and run reporters."""

from provisioner.core.observability.logging_config import setup_logging
from provisioner.core.observability.reporter import JsonLinesReporter, TerminalReporter

__all__ = ["JsonLinesReporter", "TerminalReporter", "setup_logging"]
