"""Exceptions raised by claudx."""

from __future__ import annotations


class ClaudxError(Exception):
    """Base class for claudx errors."""


class ConfigError(ClaudxError):
    """Raised when a configuration file cannot be parsed."""


class ExecutableNotFoundError(ClaudxError):
    """Raised when an executable cannot be resolved on the search path."""

    def __init__(self, executable: str):
        super().__init__(f"Executable '{executable}' not found in PATH")
        self.executable = executable
