"""Line history providers."""

from __future__ import annotations

from typing import Protocol


class History(Protocol):
    """Interface of a history source used by the shell."""

    def append(self, line: str) -> None: ...

    def get(self, index: int) -> str:
        """Return the entry *index* steps back, 0 being the most recent."""
        ...

    def suggest(self, line: str) -> str:
        """Return the most recent entry extending *line*, or ``""``."""
        ...

    def __len__(self) -> int: ...


class MemoryHistory:
    """In-memory history bounded to *max_entries* lines.

    Empty lines and consecutive duplicates are not recorded.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        self._entries: list[str] = []
        self._max_entries = max(1, max_entries)

    def append(self, line: str) -> None:
        if not line.strip():
            return
        if self._entries and self._entries[-1] == line:
            return
        self._entries.append(line)
        if len(self._entries) > self._max_entries:
            del self._entries[0]

    def get(self, index: int) -> str:
        if not 0 <= index < len(self._entries):
            raise IndexError(index)
        return self._entries[-1 - index]

    def suggest(self, line: str) -> str:
        if not line:
            return ""
        for entry in reversed(self._entries):
            if entry.startswith(line) and entry != line:
                return entry
        return ""

    def __len__(self) -> int:
        return len(self._entries)


class HistoryCursor:
    """Walks a history back and forth while keeping the line being edited."""

    def __init__(self, history: History) -> None:
        self.history = history
        self._index = -1
        self._draft = ""

    @property
    def browsing(self) -> bool:
        return self._index >= 0

    def previous(self, current: str) -> str | None:
        """Step back in time. Returns ``None`` past the oldest entry."""
        if self._index + 1 >= len(self.history):
            return None
        if self._index < 0:
            self._draft = current
        self._index += 1
        return self.history.get(self._index)

    def next(self) -> str | None:
        """Step forward, ending on the line that was being edited."""
        if self._index < 0:
            return None
        self._index -= 1
        if self._index < 0:
            return self._draft
        return self.history.get(self._index)

    def reset(self) -> None:
        self._index = -1
        self._draft = ""
