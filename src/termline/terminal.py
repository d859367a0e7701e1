"""Terminal abstraction for raw-mode stdin/stdout interaction.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal``
implementation that manages raw mode, bracketed paste, relative cursor
movement, cursor visibility and the cursor position query, all through ANSI
escape sequences.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import select
import signal
import sys
import termios
import tty
from typing import Callable, Protocol

from termline.errors import GeometryUnavailableError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_FROM_CURSOR = "\x1b[0J"
CLEAR_SCREEN = "\x1b[2J\x1b[H"
CURSOR_UP_FMT = "\x1b[{}A"
CURSOR_DOWN_FMT = "\x1b[{}B"
CURSOR_FORWARD_FMT = "\x1b[{}C"
CURSOR_POSITION_QUERY = "\x1b[6n"

_CURSOR_POSITION_RE = re.compile(r"\x1b\[(\d+);(\d+)R")

_DEFAULT_COLUMNS = 80
_DEFAULT_ROWS = 24


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def move_by(self, lines: int) -> None: ...

    def move_to_column(self, column: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_from_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def query_cursor_position(self) -> tuple[int, int]:
        """Return the zero-based ``(column, row)`` of the cursor.

        Raises :class:`GeometryUnavailableError` when the terminal does not
        answer.
        """
        ...


def move_by_sequence(lines: int) -> str:
    """Escape sequence moving the cursor up (negative) or down (positive)."""
    if lines < 0:
        return CURSOR_UP_FMT.format(-lines)
    if lines > 0:
        return CURSOR_DOWN_FMT.format(lines)
    return ""


def move_to_column_sequence(column: int) -> str:
    """Escape sequence moving the cursor to *column* on the current row."""
    if column > 0:
        return "\r" + CURSOR_FORWARD_FMT.format(column)
    return "\r"


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal implementation backed by ``sys.stdin``/``sys.stdout``.

    The terminal size is cached and refreshed from the ``SIGWINCH`` handler
    only, so that a repaint reads one consistent width.
    """

    def __init__(self, query_timeout: float = 0.1) -> None:
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._stdin_reader_active: bool = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._resize_scheduled = False
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._write_log_path: str = os.environ.get("TERMLINE_WRITE_LOG", "")
        self._query_timeout = query_timeout
        self._pending_input: str = ""
        self._columns, self._rows = _query_size()

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def rows(self) -> int:
        return self._rows

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enable raw mode, bracketed paste, and begin reading stdin."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        self._raw_write(BRACKETED_PASTE_ENABLE)

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._start_stdin_reader()

    def stop(self) -> None:
        """Restore terminal state and clean up all handlers."""
        self._raw_write(BRACKETED_PASTE_DISABLE)
        self._remove_stdin_reader()

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        fd = sys.stdin.fileno()
        if self._original_termios is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._original_termios)
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to stdout and optionally to the write log."""
        self._raw_write(data)

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a") as f:
                    f.write(data)
            except OSError:
                logger.debug("cannot append to write log %s", self._write_log_path)

    # -- cursor / screen manipulation --------------------------------------

    def move_by(self, lines: int) -> None:
        """Move the cursor up (negative) or down (positive) by *lines*."""
        self._raw_write(move_by_sequence(lines))

    def move_to_column(self, column: int) -> None:
        self._raw_write(move_to_column_sequence(column))

    def hide_cursor(self) -> None:
        self._raw_write(HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(SHOW_CURSOR)

    def clear_from_cursor(self) -> None:
        self._raw_write(CLEAR_FROM_CURSOR)

    def clear_screen(self) -> None:
        self._raw_write(CLEAR_SCREEN)

    def query_cursor_position(self) -> tuple[int, int]:
        """Ask the terminal where the cursor is, waiting up to the timeout.

        Input that arrives before the answer is kept and delivered to the
        input handler with the next read.
        """
        fd = sys.stdin.fileno()
        self._raw_write(CURSOR_POSITION_QUERY)

        received = ""
        while True:
            try:
                ready, _, _ = select.select([fd], [], [], self._query_timeout)
            except (OSError, ValueError) as exc:
                raise GeometryUnavailableError(str(exc)) from exc
            if not ready:
                self._pending_input += received
                raise GeometryUnavailableError("no cursor position report")
            try:
                chunk = os.read(fd, 64)
            except OSError as exc:
                raise GeometryUnavailableError(str(exc)) from exc
            if not chunk:
                raise GeometryUnavailableError("stdin closed")
            received += chunk.decode("utf-8", errors="replace")

            match = _CURSOR_POSITION_RE.search(received)
            if match:
                self._pending_input += received[: match.start()] + received[match.end():]
                row, column = int(match.group(1)), int(match.group(2))
                return column - 1, row - 1

    # -- private: stdin reading --------------------------------------------

    def _start_stdin_reader(self) -> None:
        """Register an asyncio reader on stdin."""
        if self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_event_loop()
            loop.add_reader(sys.stdin.fileno(), self._on_stdin_readable)
            self._loop = loop
            self._stdin_reader_active = True
        except RuntimeError:
            logger.debug("no event loop, stdin reader not registered")

    def _remove_stdin_reader(self) -> None:
        if not self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_event_loop()
            loop.remove_reader(sys.stdin.fileno())
        except (RuntimeError, ValueError):
            pass
        self._stdin_reader_active = False
        self._loop = None

    def _on_stdin_readable(self) -> None:
        """Callback invoked by the event loop when stdin has data."""
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError:
            return

        data = self._pending_input + raw.decode("utf-8", errors="replace")
        self._pending_input = ""
        if data and self._input_handler is not None:
            self._input_handler(data)

    # -- private: SIGWINCH -------------------------------------------------

    def _on_sigwinch(
        self,
        signum: int,
        frame: object,
    ) -> None:
        """Refresh the cached size and schedule the resize handler.

        The handler runs from the event loop rather than from the signal
        frame, which may have interrupted a repaint. Signals arriving before
        it runs are coalesced into one call.
        """
        self._columns, self._rows = _query_size()
        if self._resize_scheduled:
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            self._notify_resize()
            return
        self._resize_scheduled = True
        loop.call_soon_threadsafe(self._notify_resize)

    def _notify_resize(self) -> None:
        self._resize_scheduled = False
        if self._resize_handler is not None:
            self._resize_handler()

    # -- private: raw write ------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        if not data:
            return
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError as exc:
            logger.warning("terminal write failed: %s", exc)


def _query_size() -> tuple[int, int]:
    try:
        size = os.get_terminal_size(sys.stdout.fileno())
    except (ValueError, OSError):
        return _DEFAULT_COLUMNS, _DEFAULT_ROWS
    return size.columns, size.lines
