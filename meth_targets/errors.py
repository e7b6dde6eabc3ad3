"""
errors.py

Exception hierarchy for the methylation target summariser.

Every failure is fatal: the CLI reports the message and exits non-zero.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class MethTargetsError(Exception):
    """Base class for all errors raised by meth_targets."""


class ConfigurationError(MethTargetsError, ValueError):
    """Conflicting or missing column flags, or an invalid thread count."""


class MalformedRecord(MethTargetsError, ValueError):
    """A line in either input file could not be decoded."""

    def __init__(
        self,
        reason: str,
        *,
        path: str | Path | None = None,
        line_no: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.path = str(path) if path is not None else None
        self.line_no = line_no
        self.line = line
        super().__init__(self._render())

    def _render(self) -> str:
        where = self.path or "<input>"
        if self.line_no is not None:
            where = f"{where} line {self.line_no}"
        msg = f"{where}: {self.reason}"
        if self.line is not None:
            msg += f" [{self.line.rstrip()!r}]"
        return msg


class UnsortedInputError(MalformedRecord):
    """The methylation stream is not coordinate-sorted per chromosome."""


class InvalidInterval(MethTargetsError, ValueError):
    """A target interval with start >= end."""


class InputReadError(MethTargetsError, OSError):
    """An input could not be read or decompressed."""
