"""Language adapters — python, go."""

from provisioner.adapters.languages.go import GoAdapter
from provisioner.adapters.languages.python import PythonEnvAdapter

__all__ = ["GoAdapter", "PythonEnvAdapter"]
