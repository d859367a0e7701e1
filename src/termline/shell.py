"""Interactive shell: reads a line with completion, history and hints.

The shell routes every key either to the completion engine or to a line
editing action, then repaints the display::

    shell = Shell(generator=complete_paths, prompt=Prompt("$ "))
    line = await shell.read_line()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from termline.buffer import TextBuffer
from termline.candidates import CandidateStore, Direction
from termline.completion import CompletionEngine, CompletionState, Generator
from termline.display import DisplayEngine, DisplayOptions, Highlighter, Hinter
from termline.history import History, HistoryCursor, MemoryHistory
from termline.keymap import KeymapManager, get_keymap
from termline.keys import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    KeyId,
    is_paste,
    is_printable,
    matches_key,
    paste_content,
    split_keys,
)
from termline.prompt import Prompt
from termline.terminal import ProcessTerminal, Terminal
from termline.tokenize import TOKENIZERS, Tokenizer
from termline.undo import UndoStack
from termline.utils import blue

logger = logging.getLogger(__name__)

SyntaxCompleter = Callable[[str, int], "tuple[str, int]"]


@dataclass
class KeyEvent:
    """What a key handler asks of the shell once it has run.

    ``line`` and ``cursor`` replace the input line and move the cursor. With
    ``forward_key`` the key is then processed as usual, otherwise it is
    consumed by the handler.
    """

    forward_key: bool = False
    clear_helpers: bool = False
    close_line: bool = False
    hint: str | None = None
    line: str | None = None
    cursor: int | None = None


KeyHandler = Callable[[str, str, int], "KeyEvent | None"]


@dataclass
class ShellOptions:
    history_autosuggest: bool = False
    auto_complete: bool = False
    cascade_groups: bool = False
    max_completion_rows: int = 10
    tokenizer: str = "spaces"
    query_cursor_position: bool = False
    cursor_query_timeout: float = 0.1
    hint_style: Highlighter = blue
    password_mask: str = ""

    def __post_init__(self) -> None:
        self.max_completion_rows = max(3, min(100, self.max_completion_rows))
        if self.tokenizer not in ("line", "spaces"):
            raise ValueError(f"unknown tokenizer {self.tokenizer!r}")
        if len(self.password_mask) > 1:
            raise ValueError(f"password mask must be one character, got {self.password_mask!r}")

    @property
    def tokenize(self) -> Tokenizer:
        return TOKENIZERS[self.tokenizer]


class Shell:
    """Line editor session bound to one terminal."""

    def __init__(
        self,
        terminal: Terminal | None = None,
        options: ShellOptions | None = None,
        *,
        prompt: Prompt | None = None,
        history: History | None = None,
        generator: Generator | None = None,
        highlighter: Highlighter | None = None,
        selection_highlighter: Highlighter | None = None,
        hinter: Hinter | None = None,
        syntax_completer: SyntaxCompleter | None = None,
        keymap: KeymapManager | None = None,
        on_accept: Callable[[str], None] | None = None,
    ) -> None:
        self.options = options if options is not None else ShellOptions()
        self.terminal = (
            terminal
            if terminal is not None
            else ProcessTerminal(query_timeout=self.options.cursor_query_timeout)
        )
        self.history = history if history is not None else MemoryHistory()
        self.keymap = keymap if keymap is not None else get_keymap()
        self.on_accept = on_accept
        self.syntax_completer = syntax_completer

        self.line = TextBuffer()
        self.completion = CompletionEngine(
            self.line,
            generator,
            tokenizer=self.options.tokenize,
            store=CandidateStore(
                max_rows=self.options.max_completion_rows,
                cascade=self.options.cascade_groups,
            ),
            auto=self.options.auto_complete,
        )
        self.display = DisplayEngine(
            self.terminal,
            self.completion,
            prompt,
            DisplayOptions(
                history_autosuggest=self.options.history_autosuggest,
                query_cursor_position=self.options.query_cursor_position,
                hint_style=self.options.hint_style,
                password_mask=self.options.password_mask,
            ),
            history=self.history,
            highlighter=highlighter,
            selection_highlighter=selection_highlighter,
            hinter=hinter,
        )
        self.undo = UndoStack()

        self._history_cursor = HistoryCursor(self.history)
        self._running = False
        self._line_done = False
        self._pending: asyncio.Future[str] | None = None
        self._typeahead = ""
        self._in_paste = False
        self._paste_buffer = ""
        self._last_action: str | None = None
        self._key_handlers: dict[KeyId, KeyHandler] = {}

    @property
    def running(self) -> bool:
        return self._running

    def add_key_handler(self, key_id: KeyId, handler: KeyHandler) -> None:
        """Call *handler* with the key, line and cursor before the keymap does.

        A handler returning ``None`` lets the key through untouched.
        """
        self._key_handlers[key_id] = handler

    def remove_key_handler(self, key_id: KeyId) -> None:
        self._key_handlers.pop(key_id, None)

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Take over the terminal and print the prompt."""
        if self._running:
            return
        self._running = True
        self.line.replace_all("")
        self.terminal.start(self.handle_input, self._on_resize)
        self.display.print_prompt()
        self.display.refresh()

        typeahead, self._typeahead = self._typeahead, ""
        if typeahead:
            self.handle_input(typeahead)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.terminal.show_cursor()
        self.terminal.stop()

    async def read_line(self) -> str:
        """Read one line from the terminal.

        Raises ``KeyboardInterrupt`` on Ctrl-C and ``EOFError`` on Ctrl-D
        with an empty line.
        """
        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        try:
            self.start()
            return await self._pending
        finally:
            self._pending = None
            self.stop()

    # -- input ---------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        # Handle bracketed paste spanning several reads
        if self._in_paste:
            self._paste_buffer += data
            end_index = self._paste_buffer.find(BRACKETED_PASTE_END)
            if end_index == -1:
                return
            content = self._paste_buffer[:end_index]
            data = self._paste_buffer[end_index + len(BRACKETED_PASTE_END) :]
            self._in_paste = False
            self._paste_buffer = ""
            self._process(lambda: self._paste(content))

        keys = split_keys(data)
        while keys:
            key = keys.pop(0)

            if is_paste(key) and not key.endswith(BRACKETED_PASTE_END):
                self._in_paste = True
                self._paste_buffer = key[len(BRACKETED_PASTE_START) :]
                return

            self._process(lambda: self._handle_key(key))

            if self._line_done:
                self._line_done = False
                if self._pending is not None or not self._running:
                    # The awaiting caller owns whatever was typed ahead.
                    self._typeahead = "".join(keys)
                    return
                self._new_line()

    def _process(self, action: Callable[[], None]) -> None:
        action()
        if self._line_done or not self._running:
            return
        self.completion.autocomplete()
        self.display.refresh()

    def _handle_key(self, key: str) -> None:
        if is_paste(key):
            self._paste(paste_content(key))
            return

        if self._run_key_handler(key):
            return

        if self._handle_completion_key(key):
            return

        if self.completion.is_inserting():
            self.undo.push(self.line)
        self.completion.update_inserted()
        if is_printable(key):
            self.completion.trim_suffix(key)

        self._dispatch(key)

    def _handle_completion_key(self, key: str) -> bool:  # noqa: C901
        kb = self.keymap
        completion = self.completion

        if kb.matches(key, "complete"):
            if not completion.is_active():
                self.undo.push(self.line)
            completion.complete()
            return True

        if kb.matches(key, "completePrevious"):
            if completion.is_active():
                completion.select(Direction.PREVIOUS)
            else:
                self.undo.push(self.line)
                completion.complete()
            return True

        if kb.matches(key, "completeSearch"):
            if not completion.is_active():
                self.undo.push(self.line)
            completion.start_search()
            return True

        if completion.is_searching():
            if kb.matches(key, "deleteCharBackward"):
                completion.search_backspace()
                return True
            if kb.matches(key, "selectCancel"):
                completion.cancel()
                return True
            if is_printable(key):
                completion.search_insert(key)
                return True

        if completion.state is not CompletionState.PREVIEWING:
            if completion.is_active() and kb.matches(key, "selectCancel"):
                completion.cancel()
                return True
            return False

        for action, direction in (
            ("selectUp", Direction.UP),
            ("selectDown", Direction.DOWN),
            ("selectLeft", Direction.LEFT),
            ("selectRight", Direction.RIGHT),
        ):
            if kb.matches(key, action):
                completion.select(direction)
                return True

        if kb.matches(key, "submit"):
            self.undo.push(self.line)
            completion.accept()
            return True

        if kb.matches(key, "selectCancel"):
            completion.cancel()
            return True

        return False

    def _dispatch(self, key: str) -> None:  # noqa: C901
        kb = self.keymap
        line = self.line
        action: str | None = None

        if kb.matches(key, "submit"):
            self._accept()
            return
        if kb.matches(key, "interrupt"):
            self._abort(KeyboardInterrupt())
            return
        if kb.matches(key, "endOfFile"):
            if len(line) == 0:
                self._abort(EOFError())
                return
            action = "deleteCharForward"
        elif kb.matches(key, "clearScreen"):
            self.terminal.clear_screen()
            self.display.print_prompt()
            return
        elif kb.matches(key, "undo"):
            self.undo.restore(line)
            self._last_action = None
            return
        elif self._accept_suggestion(key):
            return

        if action is None:
            action = next(
                (
                    name
                    for name in (
                        "cursorLeft",
                        "cursorRight",
                        "cursorWordLeft",
                        "cursorWordRight",
                        "cursorLineStart",
                        "cursorLineEnd",
                        "deleteCharBackward",
                        "deleteCharForward",
                        "deleteWordBackward",
                        "deleteToLineStart",
                        "deleteToLineEnd",
                        "historyPrevious",
                        "historyNext",
                    )
                    if kb.matches(key, name)
                ),
                None,
            )

        if action is None:
            if is_printable(key):
                self._insert_text(key)
            else:
                logger.debug("unbound key %r", key)
            return

        if not action.startswith("history"):
            self._history_cursor.reset()
        self._edit(action)

    def _edit(self, action: str) -> None:  # noqa: C901
        line = self.line
        cursor = line.cursor

        if action == "cursorLeft":
            line.cursor = cursor - 1
        elif action == "cursorRight":
            line.cursor = cursor + 1
        elif action == "cursorWordLeft":
            line.cursor = self._word_start()
        elif action == "cursorWordRight":
            line.cursor = self._word_end()
        elif action == "cursorLineStart":
            line.cursor = 0
        elif action == "cursorLineEnd":
            line.cursor = len(line)
        elif action == "historyPrevious":
            self._load_history(self._history_cursor.previous(line.text))
        elif action == "historyNext":
            self._load_history(self._history_cursor.next())
        else:
            start, end = {
                "deleteCharBackward": (max(0, cursor - 1), cursor),
                "deleteCharForward": (cursor, min(len(line), cursor + 1)),
                "deleteWordBackward": (self._word_start(), cursor),
                "deleteToLineStart": (0, cursor),
                "deleteToLineEnd": (cursor, len(line)),
            }[action]
            if start != end:
                self.undo.push(line)
                line.cut(start, end)

        self._last_action = action

    # -- editing helpers -----------------------------------------------------

    def _insert_text(self, text: str) -> None:
        # Consecutive typing is undone word by word.
        if self._last_action != "type" or text.isspace():
            self.undo.push(self.line)
        self.line.insert_at_cursor(text)
        if self.syntax_completer is not None:
            completed, cursor = self.syntax_completer(self.line.text, self.line.cursor)
            self.line.replace_all(completed)
            self.line.cursor = cursor
        self._history_cursor.reset()
        self._last_action = "type"

    def _paste(self, content: str) -> None:
        self.completion.update_inserted()
        self.undo.push(self.line)
        self.line.insert_at_cursor(content)
        self._last_action = None

    def _load_history(self, entry: str | None) -> None:
        if entry is None:
            return
        self.line.replace_all(entry)
        self.line.cursor = len(self.line)

    def _accept_suggestion(self, key: str) -> bool:
        if not self.options.history_autosuggest:
            return False
        if self.line.cursor != len(self.line) or not self.keymap.matches(key, "acceptSuggestion"):
            return False
        suggested = self.history.suggest(self.line.text)
        if not suggested:
            return False
        self.undo.push(self.line)
        self.line.replace_all(suggested)
        self.line.cursor = len(self.line)
        return True

    def _run_key_handler(self, key: str) -> bool:
        """Run the handler registered for *key*; ``True`` if it consumed the key."""
        handler = next(
            (h for key_id, h in self._key_handlers.items() if matches_key(key, key_id)),
            None,
        )
        if handler is None:
            return False
        event = handler(key, self.line.text, self.line.cursor)
        if event is None:
            return False

        if event.clear_helpers:
            self.display.reset_helpers()
        if event.hint is not None:
            self.display.hint.set(event.hint)
        if event.line is not None:
            self.completion.clear_menu()
            self.undo.push(self.line)
            self.line.replace_all(event.line)
            self.line.cursor = len(self.line)
        if event.cursor is not None:
            self.line.cursor = event.cursor
        if event.close_line:
            self._accept()
            return True
        return not event.forward_key

    def _word_start(self) -> int:
        split, index, pos = self.options.tokenize(self.line.text, self.line.cursor)
        if not split:
            return 0
        start = sum(len(s) for s in split[:index])
        if pos == 0 or not split[index][:pos].strip():
            return start - len(split[index - 1]) if index > 0 else 0
        return start

    def _word_end(self) -> int:
        split, index, pos = self.options.tokenize(self.line.text, self.line.cursor)
        if not split:
            return len(self.line)
        start = sum(len(s) for s in split[:index])
        segment = split[index]
        end = start + len(segment.rstrip())
        if self.line.cursor < end:
            return end
        if index + 1 < len(split):
            return start + len(segment) + len(split[index + 1].rstrip())
        return len(self.line)

    # -- line completion -----------------------------------------------------

    def _accept(self) -> None:
        text = self.line.text
        self.completion.clear_menu()
        self.display.accept_line()
        if not self.options.password_mask:
            self.history.append(text)
        self._finish_line()

        if self.on_accept is not None:
            self.on_accept(text)
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(text)

    def _abort(self, exc: BaseException) -> None:
        self.completion.clear_menu()
        self.display.accept_line()
        self._finish_line()

        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(exc)
        elif isinstance(exc, EOFError):
            self.stop()

    def _finish_line(self) -> None:
        self.display.hint.reset()
        self.undo.clear()
        self._history_cursor.reset()
        self._last_action = None
        self._line_done = True

    def _new_line(self) -> None:
        self.line.replace_all("")
        self.display.print_prompt()
        self.display.refresh()

    def _on_resize(self) -> None:
        if self._running:
            self.display.refresh()
