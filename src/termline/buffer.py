"""Rune-indexed text buffer with a cursor, and terminal coordinate resolution.

A :class:`TextBuffer` knows nothing about terminals: it holds the edited runes
and the cursor index. Terminal positions are derived on demand by
:func:`resolve` from a start column (the end of the prompt), the content and
the terminal width, and are never stored authoritatively.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from termline.errors import OutOfRangeError


@dataclass(frozen=True)
class Coordinates:
    """A terminal cell relative to the row where the input line starts."""

    column: int
    row: int


def resolve(start_column: int, content: Iterable[str], width: int) -> Coordinates:
    """Return the cell following *content* painted from *start_column*.

    With ``T = start_column + len(content)`` the result is
    ``(T % width, T // width)``. When ``T`` is an exact multiple of *width*
    the position is the first column of the next row, not one past the last
    column. A width of zero or less means the terminal size is unknown and the
    line is treated as a single unbounded row.

    Content spanning several lines is resolved line by line: each line after
    a newline starts on a new row, indented by *start_column*.
    """
    segments = "".join(content).split("\n")
    row = 0
    column = start_column

    for index, segment in enumerate(segments):
        total = start_column + len(segment)
        if width <= 0:
            rows, column = 0, total
        else:
            rows, column = divmod(total, width)
        row += rows
        if index < len(segments) - 1:
            row += 1

    return Coordinates(column=column, row=row)


class TextBuffer:
    """An ordered sequence of runes and a cursor, ``0 <= cursor <= len``."""

    def __init__(self, text: str = "", cursor: int | None = None) -> None:
        self._runes: list[str] = list(text)
        self._cursor = len(self._runes) if cursor is None else 0
        if cursor is not None:
            self.cursor = cursor

    # -- access --------------------------------------------------------------

    @property
    def text(self) -> str:
        return "".join(self._runes)

    @property
    def runes(self) -> tuple[str, ...]:
        return tuple(self._runes)

    @property
    def cursor(self) -> int:
        return self._cursor

    @cursor.setter
    def cursor(self, pos: int) -> None:
        self._cursor = max(0, min(pos, len(self._runes)))

    def __len__(self) -> int:
        return len(self._runes)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"TextBuffer({self.text!r}, cursor={self._cursor})"

    def rune_at(self, pos: int) -> str:
        if not 0 <= pos < len(self._runes):
            raise OutOfRangeError(pos, len(self._runes))
        return self._runes[pos]

    def copy(self) -> TextBuffer:
        """Return an independent buffer with the same content and cursor."""
        return TextBuffer(self.text, self._cursor)

    # -- mutation ------------------------------------------------------------

    def insert(self, pos: int, runes: Iterable[str]) -> None:
        """Insert *runes* at *pos*.

        The cursor advances when the insertion happens strictly before it.
        Inserting exactly at the cursor leaves the cursor in place; use
        :meth:`insert_at_cursor` to type text.
        """
        self._check(pos)
        new = list("".join(runes))
        if not new:
            return
        self._runes[pos:pos] = new
        if pos < self._cursor:
            self._cursor += len(new)

    def insert_at_cursor(self, runes: Iterable[str]) -> None:
        """Insert *runes* at the cursor and move the cursor past them."""
        new = "".join(runes)
        pos = self._cursor
        self.insert(pos, new)
        self._cursor = pos + len(new)

    def cut(self, start: int, end: int) -> str:
        """Remove the runes in ``[start, end)`` and return them.

        A range wholly before the cursor shifts it back by the removed length;
        a range straddling the cursor clamps it to *start*.
        """
        self._check(start)
        self._check(end)
        if end < start:
            start, end = end, start
        removed = "".join(self._runes[start:end])
        del self._runes[start:end]

        if end <= self._cursor:
            self._cursor -= end - start
        elif start < self._cursor:
            self._cursor = start
        return removed

    def replace_all(self, runes: Iterable[str]) -> None:
        """Replace the whole content; the cursor is clamped to the new length."""
        self._runes = list("".join(runes))
        self._cursor = min(self._cursor, len(self._runes))

    # -- geometry ------------------------------------------------------------

    def coordinates(self, start_column: int, width: int) -> Coordinates:
        """Position just past the last rune of the buffer."""
        return resolve(start_column, self._runes, width)

    def cursor_coordinates(self, start_column: int, width: int) -> Coordinates:
        """Position of the cursor."""
        return resolve(start_column, self._runes[: self._cursor], width)

    def _check(self, pos: int) -> None:
        if not 0 <= pos <= len(self._runes):
            raise OutOfRangeError(pos, len(self._runes))
