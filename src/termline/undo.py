"""Undo stack of line snapshots."""

from __future__ import annotations

from dataclasses import dataclass

from termline.buffer import TextBuffer


@dataclass(frozen=True)
class Snapshot:
    text: str
    cursor: int


class UndoStack:
    """Stores ``(text, cursor)`` snapshots of a line.

    Snapshots are immutable, so nothing is cloned on push or pop. Pushing a
    snapshot identical to the most recent one is a no-op.
    """

    def __init__(self, limit: int = 100) -> None:
        self._stack: list[Snapshot] = []
        self._limit = limit

    def push(self, line: TextBuffer) -> None:
        """Record the current state of *line*."""
        snapshot = Snapshot(line.text, line.cursor)
        if self._stack and self._stack[-1] == snapshot:
            return
        self._stack.append(snapshot)
        if len(self._stack) > self._limit:
            del self._stack[0]

    def pop(self) -> Snapshot | None:
        """Pop and return the most recent snapshot, or None if empty."""
        return self._stack.pop() if self._stack else None

    def restore(self, line: TextBuffer) -> bool:
        """Put *line* back in its previous state.

        Snapshots equal to the current line are skipped. Returns ``False``
        when there is nothing to undo.
        """
        while self._stack:
            snapshot = self._stack.pop()
            if (snapshot.text, snapshot.cursor) != (line.text, line.cursor):
                line.replace_all(snapshot.text)
                line.cursor = snapshot.cursor
                return True
        return False

    def clear(self) -> None:
        self._stack.clear()

    @property
    def length(self) -> int:
        return len(self._stack)
