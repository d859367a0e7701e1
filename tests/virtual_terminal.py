"""Virtual terminal for testing -- implements the Terminal protocol in-memory.

This module provides a ``VirtualTerminal`` class that satisfies the
``termline.terminal.Terminal`` protocol without performing any real I/O.
All output is captured in a buffer for assertions, and interpreted by a
small screen model so that tests can check what a user would see and where
the cursor ends up.
"""

from __future__ import annotations

import re
from typing import Callable

from termline.errors import GeometryUnavailableError

_CSI_RE = re.compile(r"\x1b\[([0-9;?]*)([A-Za-z])")


class Screen:
    """Minimal VT100 model: printable text, CR/LF, cursor moves and clears.

    The screen grows downwards instead of scrolling, so rows are absolute
    from the first row ever written. Like real terminals, writing into the
    last column leaves the cursor pending there until the next character.
    """

    def __init__(self, columns: int) -> None:
        self.columns = columns
        self.lines: list[list[str]] = [[]]
        self.row = 0
        self.col = 0
        self.pending_wrap = False
        self.cursor_visible = True

    def feed(self, data: str) -> None:
        pos = 0
        while pos < len(data):
            ch = data[pos]
            if ch == "\x1b":
                match = _CSI_RE.match(data, pos)
                if match is None:
                    pos += 1
                    continue
                self._csi(match.group(1), match.group(2))
                pos = match.end()
                continue
            if ch == "\r":
                self.col = 0
                self.pending_wrap = False
            elif ch == "\n":
                self._line_feed()
            elif ch.isprintable():
                self._put(ch)
            pos += 1

    def text(self) -> list[str]:
        return ["".join(line).rstrip() for line in self.lines]

    # -- internals -------------------------------------------------------

    def _line_feed(self) -> None:
        self.row += 1
        self.pending_wrap = False
        while len(self.lines) <= self.row:
            self.lines.append([])

    def _put(self, ch: str) -> None:
        if self.pending_wrap:
            self.col = 0
            self._line_feed()
        line = self.lines[self.row]
        while len(line) <= self.col:
            line.append(" ")
        line[self.col] = ch
        if self.col >= self.columns - 1:
            self.pending_wrap = True
        else:
            self.col += 1

    def _csi(self, params: str, final: str) -> None:
        if params.startswith("?"):
            if params == "?25":
                self.cursor_visible = final == "h"
            return

        args = [int(p) for p in params.split(";") if p]
        count = args[0] if args else 1
        if final in "ABC":
            self.pending_wrap = False
        if final == "A":
            self.row = max(0, self.row - count)
        elif final == "B":
            self.row = min(len(self.lines) - 1, self.row + count)
        elif final == "C":
            self.col = min(self.columns - 1, self.col + count)
        elif final == "J":
            mode = args[0] if args else 0
            if mode == 0:
                del self.lines[self.row][self.col :]
                del self.lines[self.row + 1 :]
            elif mode == 2:
                self.lines = [[] for _ in range(self.row + 1)]
        elif final == "H":
            self.row = 0
            self.col = 0
            self.pending_wrap = False


class VirtualTerminal:
    """In-memory terminal that records all writes for test inspection.

    Implements the ``Terminal`` protocol from ``termline.terminal``.

    Parameters
    ----------
    rows:
        Number of terminal rows (height).
    columns:
        Number of terminal columns (width).
    report_cursor:
        Whether cursor position queries are answered from the screen model.
        When ``False`` the query raises ``GeometryUnavailableError``.
    """

    def __init__(self, rows: int = 24, columns: int = 80, report_cursor: bool = False) -> None:
        self._rows = rows
        self._columns = columns
        self._buffer: list[str] = []
        self._started = False
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self.report_cursor = report_cursor
        self.queries = 0
        self.screen = Screen(columns)

    # -- Terminal protocol: properties --------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @rows.setter
    def rows(self, value: int) -> None:
        self._rows = value

    @property
    def columns(self) -> int:
        return self._columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._columns = value
        self.screen.columns = value

    @property
    def started(self) -> bool:
        return self._started

    # -- Terminal protocol: lifecycle ---------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        self._input_handler = on_input
        self._resize_handler = on_resize
        self._started = True

    def stop(self) -> None:
        self._started = False
        self._input_handler = None
        self._resize_handler = None

    # -- Terminal protocol: output ------------------------------------------

    def write(self, data: str) -> None:
        """Append *data* to the internal buffer and the screen model."""
        self._buffer.append(data)
        self.screen.feed(data)

    # -- Terminal protocol: cursor/screen manipulation ----------------------

    def move_by(self, lines: int) -> None:
        if lines < 0:
            self.write(f"\x1b[{-lines}A")
        elif lines > 0:
            self.write(f"\x1b[{lines}B")

    def move_to_column(self, column: int) -> None:
        self.write("\r" + (f"\x1b[{column}C" if column > 0 else ""))

    def hide_cursor(self) -> None:
        self.write("\x1b[?25l")

    def show_cursor(self) -> None:
        self.write("\x1b[?25h")

    def clear_from_cursor(self) -> None:
        self.write("\x1b[0J")

    def clear_screen(self) -> None:
        self.write("\x1b[2J\x1b[H")

    def query_cursor_position(self) -> tuple[int, int]:
        self.queries += 1
        if not self.report_cursor:
            raise GeometryUnavailableError("no cursor position report")
        return self.screen.col, self.screen.row

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        """Return everything written to the terminal as a single string."""
        return "".join(self._buffer)

    @property
    def write_count(self) -> int:
        """Return the number of individual ``write`` calls made."""
        return len(self._buffer)

    @property
    def cursor(self) -> tuple[int, int]:
        """Cursor ``(column, row)`` in the screen model."""
        return self.screen.col, self.screen.row

    def lines(self) -> list[str]:
        """Visible text of every screen row, escape sequences removed."""
        return self.screen.text()

    def clear_buffer(self) -> None:
        """Discard all recorded output."""
        self._buffer.clear()

    def simulate_input(self, data: str) -> None:
        """Feed *data* into the registered input handler.

        Raises ``RuntimeError`` if no input handler has been registered
        (i.e. ``start`` was not called).
        """
        if self._input_handler is None:
            raise RuntimeError(
                "No input handler registered -- call start() first"
            )
        self._input_handler(data)

    def simulate_resize(self, rows: int | None = None, columns: int | None = None) -> None:
        """Change terminal dimensions and fire the resize callback."""
        if rows is not None:
            self._rows = rows
        if columns is not None:
            self.columns = columns
        if self._resize_handler is not None:
            self._resize_handler()
