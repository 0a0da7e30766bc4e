"""Use cases — the operations behind each CLI command."""
