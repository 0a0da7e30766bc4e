"""Persistence — the append-only run log."""

from provisioner.core.persistence.run_log import RunLogEntry, RunLogWriter

__all__ = ["RunLogEntry", "RunLogWriter"]
