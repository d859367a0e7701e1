"""Tests for termline.display -- repaint protocol, helpers and accepted lines.

The VirtualTerminal screen model interprets every escape sequence written,
so these tests check what the user would see and where the cursor lands.
"""

from __future__ import annotations

import logging

from termline.buffer import TextBuffer
from termline.candidates import Candidate, Direction, Group, RenderMode
from termline.completion import CompletionEngine
from termline.display import DisplayEngine, DisplayOptions, Geometry
from termline.history import MemoryHistory
from termline.prompt import Prompt
from termline.utils import strip_ansi

from .virtual_terminal import VirtualTerminal


def _setup(
    text: str = "",
    prompt: Prompt | None = None,
    columns: int = 20,
    rows: int = 24,
    generator=None,
    **kwargs,
) -> tuple[VirtualTerminal, TextBuffer, CompletionEngine, DisplayEngine]:
    term = VirtualTerminal(rows=rows, columns=columns, report_cursor=kwargs.pop("report_cursor", False))
    line = TextBuffer()
    engine = CompletionEngine(line, generator)
    display = DisplayEngine(term, engine, prompt or Prompt("> "), **kwargs)
    display.print_prompt()
    line.insert_at_cursor(text)
    return term, line, engine, display


def _menu(*values: str, mode: RenderMode = RenderMode.GRID):
    def generate(line: str, cursor: int):
        return "", [Group([Candidate(v) for v in values], mode=mode)]

    return generate


# ---------------------------------------------------------------------------
# Line painting and cursor placement
# ---------------------------------------------------------------------------


class TestRefreshLine:
    """Painting the input line after the prompt."""

    def test_wrapped_line_and_cursor(self) -> None:
        term, _, _, display = _setup("hello world", Prompt("abc>"), columns=10)
        display.refresh()
        assert term.lines() == ["abc>hello", "world"]
        assert term.cursor == (5, 1)
        assert display.geometry == Geometry(
            start_column=4, line_column=5, line_row=1, cursor_column=5, cursor_row=1
        )

    def test_cursor_inside_line(self) -> None:
        term, line, _, display = _setup("hello world", Prompt("abc>"), columns=10)
        display.refresh()
        line.cursor = 2
        display.refresh()
        assert term.lines() == ["abc>hello", "world"]
        assert term.cursor == (6, 0)

    def test_exact_width_puts_cursor_on_next_row(self) -> None:
        term, _, _, display = _setup("abcdef", Prompt("abc>"), columns=10)
        display.refresh()
        assert term.lines() == ["abc>abcdef", ""]
        assert term.cursor == (0, 1)
        geometry = display.geometry
        assert (geometry.line_column, geometry.line_row) == (0, 1)

    def test_typing_after_exact_wrap(self) -> None:
        term, line, _, display = _setup("abcdef", Prompt("abc>"), columns=10)
        display.refresh()
        line.insert_at_cursor("g")
        display.refresh()
        assert term.lines() == ["abc>abcdef", "g"]
        assert term.cursor == (1, 1)

    def test_shrinking_line_clears_old_rows(self) -> None:
        term, line, _, display = _setup("hello world", Prompt("abc>"), columns=10)
        display.refresh()
        line.replace_all("hi")
        display.refresh()
        assert term.lines() == ["abc>hi"]
        assert term.cursor == (6, 0)

    def test_repeated_refresh_is_stable(self) -> None:
        term, _, _, display = _setup("a fairly long line of input", columns=12)
        display.refresh()
        first = (term.lines(), term.cursor)
        display.refresh()
        display.refresh()
        assert (term.lines(), term.cursor) == first

    def test_multiline_buffer_is_indented(self) -> None:
        term, _, _, display = _setup("ab\ncd")
        display.refresh()
        assert term.lines() == ["> ab", "  cd"]
        assert term.cursor == (4, 1)

    def test_cursor_is_hidden_during_repaint(self) -> None:
        term, _, _, display = _setup("x")
        display.refresh()
        assert term.output.index("\x1b[?25l") < term.output.index("x")
        assert term.output.endswith("\x1b[?25h")
        assert term.screen.cursor_visible

    def test_highlighter_styles_line(self) -> None:
        term, _, _, display = _setup("ls", highlighter=lambda s: f"\x1b[1m{s}\x1b[0m")
        display.refresh()
        assert "\x1b[1mls\x1b[0m" in term.output
        assert term.lines() == ["> ls"]

    def test_password_mask_hides_every_rune(self) -> None:
        term, line, _, display = _setup(
            "s3cr€t",
            options=DisplayOptions(password_mask="*"),
            highlighter=lambda s: f"\x1b[1m{s}\x1b[0m",
        )
        line.cursor = 2
        display.refresh()
        assert term.lines() == ["> ******"]
        assert term.cursor == (4, 0)
        assert "s3cr" not in term.output
        assert "\x1b[1m" not in term.output
        display.accept_line()
        assert term.lines() == ["> ******", ""]

    def test_right_prompt(self) -> None:
        term, _, _, display = _setup("hi", Prompt("> ", right="[rp]"))
        display.refresh()
        assert term.lines() == ["> hi" + " " * 11 + "[rp]"]
        assert term.cursor == (4, 0)

    def test_right_prompt_skipped_when_line_too_long(self) -> None:
        term, _, _, display = _setup("x" * 15, Prompt("> ", right="[rp]"))
        display.refresh()
        assert "[rp]" not in term.output


class TestStartColumn:
    """Start column from the terminal query or the prompt."""

    def test_query_answer_is_used(self) -> None:
        term, _, _, display = _setup(
            "ab", options=DisplayOptions(query_cursor_position=True), report_cursor=True
        )
        term.write("\r\n" * 3 + "> ")
        display.refresh()
        assert term.queries == 1
        assert display.geometry.start_column == 2
        assert display.geometry.start_row == 3

    def test_failed_query_falls_back_to_prompt_width(self, caplog) -> None:
        caplog.set_level(logging.DEBUG, logger="termline.display")
        term, _, _, display = _setup(
            "ab", Prompt("$$$ "), options=DisplayOptions(query_cursor_position=True)
        )
        display.refresh()
        assert term.queries == 1
        assert display.geometry.start_column == 4
        assert term.lines() == ["$$$ ab"]
        assert "cursor position unavailable" in caplog.text

    def test_failed_query_falls_back_to_last_column(self) -> None:
        term, _, _, display = _setup(
            "ab", options=DisplayOptions(query_cursor_position=True), report_cursor=True
        )
        display.refresh()
        term.report_cursor = False
        display.prompt = Prompt("a much longer prompt> ")
        display.refresh()
        assert display.geometry.start_column == 2

    def test_no_query_by_default(self) -> None:
        term, _, _, display = _setup("ab")
        display.refresh()
        assert term.queries == 0


# ---------------------------------------------------------------------------
# Suggestions, hints and completions
# ---------------------------------------------------------------------------


class TestAutosuggest:
    """History suggestions painted past the line end."""

    def test_suggestion_is_dimmed_after_line(self) -> None:
        history = MemoryHistory()
        history.append("git status")
        term, _, _, display = _setup(
            "git s", options=DisplayOptions(history_autosuggest=True), history=history
        )
        display.refresh()
        assert term.lines() == ["> git status"]
        assert "\x1b[90mtatus\x1b[0m" in term.output
        assert term.cursor == (7, 0)
        assert display.geometry.line_column == 12

    def test_suggestion_off_by_default(self) -> None:
        history = MemoryHistory()
        history.append("git status")
        term, _, _, display = _setup("git s", history=history)
        display.refresh()
        assert term.lines() == ["> git s"]

    def test_no_suggestion_while_previewing(self) -> None:
        history = MemoryHistory()
        history.append("foobar")
        term, _, engine, display = _setup(
            "",
            generator=_menu("foo", "fob"),
            options=DisplayOptions(history_autosuggest=True),
            history=history,
        )
        engine.complete()
        display.refresh()
        assert term.lines()[0] == "> foo"


class TestHints:
    """Hint rows under the line."""

    def test_hint_is_shown_below_line(self) -> None:
        term, _, _, display = _setup("hi")
        display.hint.set("try tab")
        display.refresh()
        assert term.lines() == ["> hi", "try tab"]
        assert term.cursor == (4, 0)
        assert display.geometry.hint_rows == 1

    def test_hint_is_styled_and_fitted(self) -> None:
        term, _, _, display = _setup("", columns=10)
        display.hint.set("a very long hint message")
        display.refresh()
        assert term.lines()[1] == "a very ..."

    def test_hinter_callback(self) -> None:
        term, _, _, display = _setup("abc", hinter=lambda text, cursor: f"{len(text)} chars")
        display.refresh()
        assert term.lines()[1] == "3 chars"
        assert "\x1b[34m3 chars\x1b[0m" in term.output

    def test_clear_helpers_keeps_line(self) -> None:
        term, _, _, display = _setup("hi")
        display.hint.set("try tab")
        display.refresh()
        display.clear_helpers()
        assert "try tab" not in "".join(term.lines())
        assert term.lines()[0] == "> hi"
        assert term.cursor == (4, 0)
        assert display.geometry.helper_rows == 0

    def test_clear_helpers_without_helpers_writes_nothing(self) -> None:
        term, _, _, display = _setup("hi")
        display.refresh()
        count = term.write_count
        display.clear_helpers()
        assert term.write_count == count

    def test_reset_helpers_resets_hint_and_menu(self) -> None:
        term, _, engine, display = _setup("", generator=_menu("foo", "bar"))
        display.hint.set("hint")
        engine.list_completions()
        display.refresh()
        display.reset_helpers()
        assert display.hint.text == ""
        assert engine.store.is_empty()
        assert term.lines() == [">", ""]


class TestCompletionMenu:
    """Completion rows and the preview line."""

    def test_preview_and_menu(self) -> None:
        term, line, engine, display = _setup("", generator=_menu("foo", "bar", "baz"))
        engine.complete()
        display.refresh()
        lines = term.lines()
        assert lines[0] == "> foo"
        assert lines[1].split() == ["foo", "bar", "baz"]
        assert line.text == ""
        assert term.cursor == (5, 0)
        assert display.geometry.completion_rows == 1

    def test_selection_highlighter_marks_preview(self) -> None:
        term, _, engine, display = _setup(
            "", generator=_menu("foo", "bar"), selection_highlighter=lambda s: f"\x1b[4m{s}\x1b[0m"
        )
        engine.complete()
        display.refresh()
        assert "\x1b[4mfoo\x1b[0m" in term.output

    def test_menu_height_uses_rows_below_line(self) -> None:
        values = [f"c{i:02d}" for i in range(20)]
        term, _, engine, display = _setup("", rows=9, generator=_menu(*values, mode=RenderMode.MAP))
        engine.list_completions()
        display.refresh()
        assert display.geometry.completion_rows == 8

    def test_menu_height_raised_near_screen_bottom(self) -> None:
        values = [f"c{i:02d}" for i in range(20)]
        term, _, engine, display = _setup(
            "",
            rows=9,
            generator=_menu(*values, mode=RenderMode.MAP),
            options=DisplayOptions(query_cursor_position=True),
            report_cursor=True,
        )
        term.write("\r\n" * 7)
        display.print_prompt()
        engine.list_completions()
        display.refresh()
        assert display.geometry.start_row == 7
        assert display.geometry.completion_rows == 3

    def test_tall_menu_follows_selection(self) -> None:
        values = [f"c{i:02d}" for i in range(20)]
        term, _, engine, display = _setup("", rows=8, generator=_menu(*values, mode=RenderMode.MAP))
        engine.complete()
        display.refresh()
        for _ in range(8):
            engine.select(Direction.DOWN)
            display.refresh()
        lines = term.lines()
        assert lines[0] == "> c08"
        assert lines[1:] == ["c03", "c04", "c05", "c06", "c07", "c08", "(9/20)"]
        assert display.geometry.completion_rows == 7
        assert "\x1b[7mc08" in term.output

    def test_search_pattern_is_shown_above_matches(self) -> None:
        term, line, engine, display = _setup(
            "", columns=40, generator=_menu("foo", "bar", "baz", mode=RenderMode.MAP)
        )
        engine.start_search()
        engine.search_insert("ba")
        display.refresh()
        assert term.lines() == ["> bar", "search: ba", "bar", "baz"]
        assert line.text == ""
        engine.search_insert("x")
        display.refresh()
        assert term.lines() == [">", "search: bax (no match)"]

    def test_menu_closes_on_refresh_after_session(self) -> None:
        term, _, engine, display = _setup("", generator=_menu("foo", "bar"))
        engine.complete()
        display.refresh()
        engine.accept()
        display.refresh()
        assert term.lines() == ["> foo"]
        assert display.geometry.completion_rows == 0


# ---------------------------------------------------------------------------
# Accepted lines
# ---------------------------------------------------------------------------


class TestAcceptLine:
    """Final repaint of an accepted line."""

    def test_accept_moves_below_line_and_drops_helpers(self) -> None:
        term, _, _, display = _setup("ls -la")
        display.hint.set("hint")
        display.refresh()
        display.accept_line()
        assert term.lines() == ["> ls -la", ""]
        assert term.cursor == (0, 1)
        assert display.geometry is None

    def test_accept_from_middle_of_wrapped_line(self) -> None:
        term, line, _, display = _setup("hello world", Prompt("abc>"), columns=10)
        display.refresh()
        line.cursor = 0
        display.refresh()
        display.accept_line()
        assert term.lines() == ["abc>hello", "world", ""]
        assert term.cursor == (0, 2)

    def test_accept_shows_real_line_without_preview(self) -> None:
        term, _, engine, display = _setup("", generator=_menu("foo", "bar"))
        engine.complete()
        display.refresh()
        display.accept_line()
        assert term.lines()[0] == ">"
        assert "foo" not in "".join(term.lines())

    def test_accept_keeps_right_prompt(self) -> None:
        term, _, _, display = _setup("hi", Prompt("> ", right="[rp]"))
        display.refresh()
        display.accept_line()
        assert term.lines()[0].endswith("[rp]")

    def test_transient_prompt_replaces_primary(self) -> None:
        term, _, _, display = _setup("ls", Prompt("long prompt\n> ", transient="$ "))
        display.refresh()
        assert term.lines() == ["long prompt", "> ls"]
        display.accept_line()
        assert term.lines() == ["$ ls", ""]
        assert term.cursor == (0, 1)

    def test_transient_prompt_replaces_wrapped_primary(self) -> None:
        term, _, _, display = _setup(
            "ls", Prompt("abcdefghijklmno\n> ", transient="$ "), columns=10
        )
        display.refresh()
        assert term.lines() == ["abcdefghij", "klmno", "> ls"]
        display.accept_line()
        assert term.lines() == ["$ ls", ""]

    def test_next_prompt_starts_below(self) -> None:
        term, line, _, display = _setup("first")
        display.refresh()
        display.accept_line()
        line.replace_all("")
        display.print_prompt()
        line.insert_at_cursor("second")
        display.refresh()
        assert [strip_ansi(s) for s in term.lines()] == ["> first", "> second"]
