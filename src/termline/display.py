"""Display engine: repaints the prompt line, hints and completion menu.

Every repaint is relative to the row holding the start of the input line, so
the engine never needs absolute screen positions. The previous repaint leaves
a :class:`Geometry` snapshot behind, which is how the next repaint finds its
way back to the line start before clearing and painting again::

    prompt> some input that wraps over
    two rows|                               <- cursor
    hint line                               <- helpers, below the line
    completion menu rows...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

from termline.buffer import TextBuffer, resolve
from termline.completion import CompletionEngine
from termline.errors import GeometryUnavailableError
from termline.history import History
from termline.prompt import Prompt
from termline.terminal import (
    CLEAR_FROM_CURSOR,
    HIDE_CURSOR,
    SHOW_CURSOR,
    Terminal,
    move_by_sequence,
    move_to_column_sequence,
)
from termline.utils import blue, dim, truncate_to_width, visible_width

logger = logging.getLogger(__name__)

Highlighter = Callable[[str], str]
Hinter = Callable[[str, int], str]


@dataclass(frozen=True)
class Geometry:
    """Positions of one repaint, rows relative to the input start row.

    ``start_row`` is the absolute terminal row of the input start when the
    terminal reported it, and 0 otherwise.
    """

    start_column: int = 0
    start_row: int = 0
    line_column: int = 0
    line_row: int = 0
    cursor_column: int = 0
    cursor_row: int = 0
    hint_rows: int = 0
    completion_rows: int = 0

    @property
    def helper_rows(self) -> int:
        return self.hint_rows + self.completion_rows


@dataclass
class DisplayOptions:
    history_autosuggest: bool = False
    query_cursor_position: bool = False
    hint_style: Highlighter = blue
    suggestion_style: Highlighter = dim
    password_mask: str = ""


class Hint:
    """A message shown under the input line until reset."""

    def __init__(self) -> None:
        self.text = ""

    def set(self, text: str) -> None:
        self.text = text

    def reset(self) -> None:
        self.text = ""

    def render(self, width: int, style: Highlighter) -> list[str]:
        return render_hint(self.text, width, style)


def render_hint(text: str, width: int, style: Highlighter) -> list[str]:
    """Style and fit every line of a hint message."""
    if not text:
        return []
    return [truncate_to_width(style(line), width) for line in text.split("\n")]


class DisplayEngine:
    """Repaints the interface after every keystroke."""

    def __init__(
        self,
        terminal: Terminal,
        completion: CompletionEngine,
        prompt: Prompt | None = None,
        options: DisplayOptions | None = None,
        *,
        history: History | None = None,
        highlighter: Highlighter | None = None,
        selection_highlighter: Highlighter | None = None,
        hinter: Hinter | None = None,
    ) -> None:
        self.terminal = terminal
        self.completion = completion
        self.prompt = prompt if prompt is not None else Prompt()
        self.options = options if options is not None else DisplayOptions()
        self.history = history
        self.highlighter = highlighter
        self.selection_highlighter = selection_highlighter
        self.hinter = hinter
        self.hint = Hint()

        self._previous: Geometry | None = None
        self._last_start_column: int | None = None

    @property
    def geometry(self) -> Geometry | None:
        """Snapshot of the last repaint, ``None`` before the first one."""
        return self._previous

    # -- public operations ---------------------------------------------------

    def print_prompt(self) -> None:
        """Print the primary prompt and start a new input line."""
        self._previous = None
        self._last_start_column = None
        self.terminal.write(self.prompt.primary_text().replace("\n", "\r\n"))

    def refresh(self) -> None:
        """Repaint the line, the right prompt and the helpers below the line."""
        width = self.terminal.columns
        out = [HIDE_CURSOR, self._to_line_start()]

        start_column, start_row = self._start_position(width, out)

        visible = self.completion.visible_line()
        suggestion = self._suggestion(visible)
        shown = self._masked(visible)
        line_end = resolve(start_column, shown.text + suggestion, width)
        cursor = shown.cursor_coordinates(start_column, width)

        out.append(CLEAR_FROM_CURSOR)
        out.append(self._paint(shown, suggestion, start_column, width, selection=True))
        out.append(self._right_prompt(line_end.column, width))

        geometry = Geometry(
            start_column=start_column,
            start_row=start_row,
            line_column=line_end.column,
            line_row=line_end.row,
            cursor_column=cursor.column,
            cursor_row=cursor.row,
        )

        hint_lines = self._hint_lines(visible, width)
        menu_lines = self._menu_lines(geometry, len(hint_lines), width)
        helpers = hint_lines + menu_lines
        if helpers:
            out.append("\r\n" + "\r\n".join(helpers))
            out.append(move_by_sequence(-len(helpers)))

        out.append(move_by_sequence(geometry.cursor_row - geometry.line_row))
        out.append(move_to_column_sequence(geometry.cursor_column))
        out.append(SHOW_CURSOR)
        self.terminal.write("".join(out))

        self._previous = replace(
            geometry, hint_rows=len(hint_lines), completion_rows=len(menu_lines)
        )
        self._last_start_column = start_column

    def clear_helpers(self) -> None:
        """Remove hint and completion rows, leaving the line untouched."""
        previous = self._previous
        if previous is None or not previous.helper_rows:
            return

        below = previous.line_row - previous.cursor_row + 1
        self.terminal.move_by(below)
        self.terminal.move_to_column(0)
        self.terminal.clear_from_cursor()
        self.terminal.move_by(-below)
        self.terminal.move_to_column(previous.cursor_column)
        self._previous = replace(previous, hint_rows=0, completion_rows=0)

    def reset_helpers(self) -> None:
        """Reset the hint and close the completion menu."""
        self.hint.reset()
        self.completion.clear_menu()
        self.clear_helpers()

    def accept_line(self) -> None:
        """Repaint the committed line and move below it.

        The repaint shows the real line only: no preview, no suggestion, no
        helpers. A transient prompt, when configured, replaces the whole
        primary prompt.
        """
        width = self.terminal.columns
        line = self._masked(self.completion.line)
        out = [HIDE_CURSOR, self._to_line_start()]

        if self.prompt.has_transient:
            out.append(move_by_sequence(-self.prompt.rows(width)))
            out.append("\r")
            out.append(CLEAR_FROM_CURSOR)
            transient = self.prompt.transient_text()
            out.append(transient.replace("\n", "\r\n"))
            start_column = visible_width(transient.rsplit("\n", 1)[-1])
            if width > 0:
                start_column %= width
            out.append(self._paint(line, "", start_column, width, selection=False))
        else:
            start_column = (
                self._previous.start_column
                if self._previous is not None
                else self.prompt.start_column(width)
            )
            out.append(CLEAR_FROM_CURSOR)
            out.append(self._paint(line, "", start_column, width, selection=False))
            line_end = line.coordinates(start_column, width)
            out.append(self._right_prompt(line_end.column, width))

        out.append("\r\n")
        out.append(SHOW_CURSOR)
        self.terminal.write("".join(out))

        self._previous = None
        self._last_start_column = None

    # -- positions -----------------------------------------------------------

    def _to_line_start(self) -> str:
        previous = self._previous
        if previous is None:
            return ""
        return move_by_sequence(-previous.cursor_row) + move_to_column_sequence(
            previous.start_column
        )

    def _start_position(self, width: int, out: list[str]) -> tuple[int, int]:
        """Column and row where the input starts, the cursor being there."""
        fallback = self._last_start_column
        if fallback is None:
            fallback = self.prompt.start_column(width)

        if not self.options.query_cursor_position:
            return fallback, 0

        # The query answers for the physical cursor: flush pending moves first.
        self.terminal.write("".join(out))
        out.clear()
        try:
            column, row = self.terminal.query_cursor_position()
        except GeometryUnavailableError as exc:
            logger.debug("cursor position unavailable (%s), using column %d", exc, fallback)
            return fallback, 0

        if width > 0:
            column %= width
        return column, row

    # -- painting ------------------------------------------------------------

    def _suggestion(self, visible: TextBuffer) -> str:
        """The part of the history suggestion past the end of the line."""
        if not self.options.history_autosuggest or self.history is None:
            return ""
        if self.options.password_mask:
            return ""
        if self.completion.is_inserting():
            return ""
        text = visible.text
        suggested = self.history.suggest(text)
        if not suggested.startswith(text):
            return ""
        return suggested[len(text) :]

    def _masked(self, line: TextBuffer) -> TextBuffer:
        """A copy of *line* with every rune but newlines hidden by the mask."""
        mask = self.options.password_mask
        if not mask:
            return line
        hidden = "".join(rune if rune == "\n" else mask for rune in line.runes)
        return TextBuffer(hidden, line.cursor)

    def _styled(self, line: TextBuffer, selection: bool) -> str:
        text = line.text
        if self.options.password_mask:
            return text
        highlight = self.highlighter or (lambda s: s)
        span = self.completion.inserted_span() if selection else None
        if span is None or self.selection_highlighter is None:
            return highlight(text)
        start, end = span
        return (
            highlight(text[:start])
            + self.selection_highlighter(text[start:end])
            + highlight(text[end:])
        )

    def _paint(
        self,
        line: TextBuffer,
        suggestion: str,
        start_column: int,
        width: int,
        selection: bool,
    ) -> str:
        raw = line.text.split("\n")
        styled = self._styled(line, selection).split("\n")
        if len(styled) != len(raw):
            styled = list(raw)

        if suggestion:
            first, *rest = suggestion.split("\n")
            raw[-1] += first
            styled[-1] += self.options.suggestion_style(first) if first else ""
            for part in rest:
                raw.append(part)
                styled.append(self.options.suggestion_style(part) if part else "")

        out: list[str] = []
        for index, (plain, painted) in enumerate(zip(raw, styled)):
            if index:
                out.append("\r\n" + move_to_column_sequence(start_column))
            out.append(painted)
            total = start_column + len(plain)
            # A row filled to the last column leaves the cursor pending there.
            if width > 0 and total and total % width == 0:
                out.append("\r\n")
        return "".join(out)

    def _right_prompt(self, line_column: int, width: int) -> str:
        text = self.prompt.right_text()
        if not text:
            return ""
        size = visible_width(text)
        column = width - size - 1
        if width <= 0 or column <= line_column:
            return ""
        return move_to_column_sequence(column) + text

    def _hint_lines(self, visible: TextBuffer, width: int) -> list[str]:
        pattern = self.completion.search_pattern
        if pattern is not None:
            text = f"search: {pattern}"
            if pattern and self.completion.store.is_empty():
                text += " (no match)"
            return render_hint(text, width, self.options.hint_style)
        if not self.hint.text and self.hinter is not None:
            hinted = self.hinter(visible.text, visible.cursor)
            if hinted:
                return render_hint(hinted, width, self.options.hint_style)
        return self.hint.render(width, self.options.hint_style)

    def _menu_lines(self, geometry: Geometry, hint_rows: int, width: int) -> list[str]:
        store = self.completion.store
        if store.is_empty():
            return []

        rows = self.terminal.rows
        available = rows - geometry.start_row - geometry.line_row - hint_rows - 1
        if available < rows // 3:
            available = rows // 2 - 1

        store.layout(width)
        return store.render(width, available)
