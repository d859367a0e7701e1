"""Exception types raised by termline."""

from __future__ import annotations


class TermlineError(Exception):
    """Base class for all termline errors."""


class OutOfRangeError(TermlineError, IndexError):
    """A buffer index fell outside ``0 <= index <= len(buffer)``."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"index {index} out of range for buffer of length {length}")
        self.index = index
        self.length = length


class GeometryUnavailableError(TermlineError):
    """The terminal could not report the cursor position."""
