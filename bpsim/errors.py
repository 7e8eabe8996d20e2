"""
Error Types

Exceptions raised by trace handling, configuration and simulation.
"""

from pathlib import Path
from typing import Union


class BranchSimError(Exception):
    """Base class for all simulator errors."""


class TraceIOError(BranchSimError, OSError):
    """A trace file could not be opened or read."""

    def __init__(self, path: Union[str, Path], reason: str = ""):
        self.path = str(path)
        self.reason = reason
        message = f"Cannot read trace file: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MalformedTraceLine(BranchSimError, ValueError):
    """A trace line does not carry a parseable instruction address."""

    def __init__(self, line_number: int, line: str):
        self.line_number = line_number
        self.line = line.rstrip("\r\n")
        super().__init__(
            f"Malformed trace line {line_number}: {self.line!r}"
        )


class ConfigError(BranchSimError, ValueError):
    """Invalid simulator or predictor configuration."""
