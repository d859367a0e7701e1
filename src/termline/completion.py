"""Completion engine: candidate generation, virtual preview and suffix trimming.

The engine moves through three states::

    IDLE -> LISTING -> PREVIEWING -> IDLE

A selected candidate is previewed in a *shadow* copy of the input line, so the
real line stays untouched until the candidate is accepted. In ``auto`` mode the
candidate is written to the real line directly instead, and replaced on every
selection move.

Accepting a candidate may leave a :class:`SuffixMatcher` behind: if the very
next key typed is a blank or one of the candidate's separators, the
candidate's trailing separator is removed so that the typed key does not
duplicate it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from termline.buffer import TextBuffer
from termline.candidates import CandidateStore, Candidate, Direction, Group
from termline.tokenize import Tokenizer, is_punctuation, tokenize_spaces, word_around

logger = logging.getLogger(__name__)

Generator = Callable[[str, int], "tuple[str | None, Iterable[Group]]"]


class CompletionState(Enum):
    IDLE = "idle"
    LISTING = "listing"
    PREVIEWING = "previewing"


@dataclass(frozen=True)
class SuffixMatcher:
    """Separators that collapse the rune recorded at *position*."""

    separators: str
    position: int

    def matches(self, key: str) -> bool:
        if not key:
            return False
        if "*" in self.separators:
            return key.isspace() or is_punctuation(key)
        return key in self.separators

    def collapsible(self, char: str) -> bool:
        """Whether *char* is a suffix this matcher may remove."""
        return char.isspace() or self.matches(char)


def compile_search(pattern: str) -> re.Pattern[str]:
    """Case-insensitive regex for *pattern*, taken literally when invalid."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(pattern), re.IGNORECASE)


class CompletionEngine:
    """Drives one completion session at a time over a real input line."""

    def __init__(
        self,
        line: TextBuffer,
        generator: Generator | None = None,
        *,
        tokenizer: Tokenizer = tokenize_spaces,
        store: CandidateStore | None = None,
        auto: bool = False,
    ) -> None:
        self.line = line
        self.generator = generator
        self.tokenizer = tokenizer
        self.store = store if store is not None else CandidateStore()
        self.auto = auto
        self.force = False

        self.shadow: TextBuffer | None = None
        self.selected: Candidate | None = None
        self.prefix = ""
        self.suffix = ""
        self.inserted = ""
        self.search_pattern: str | None = None

        self.on_transition: Callable[[CompletionState, CompletionState], None] | None = None

        self._state = CompletionState.IDLE
        self._matcher: SuffixMatcher | None = None
        self._shadow_base: tuple[str, int] | None = None
        self._unfiltered: list[Group] = []

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def suffix_matcher(self) -> SuffixMatcher | None:
        return self._matcher

    def is_active(self) -> bool:
        return self._state is not CompletionState.IDLE

    def is_inserting(self) -> bool:
        """Whether a candidate is currently shown in the line."""
        return self.selected is not None

    def inserted_span(self) -> tuple[int, int] | None:
        """Range of the inserted candidate text in :meth:`visible_line`."""
        if self.selected is None or not self.inserted:
            return None
        if self.auto:
            return self.line.cursor - len(self.inserted), self.line.cursor
        return self.line.cursor, self.line.cursor + len(self.inserted)

    def _set_state(self, state: CompletionState) -> None:
        if state is self._state:
            return
        old, self._state = self._state, state
        logger.debug("completion %s -> %s", old.value, state.value)
        if self.on_transition:
            self.on_transition(old, state)

    def visible_line(self) -> TextBuffer:
        """Return the buffer to display: the shadow line while previewing."""
        if self.shadow is None or self.selected is None:
            return self.line
        if self._preview_is_stale():
            self._drop_preview()
            return self.line
        return self.shadow

    def _preview_is_stale(self) -> bool:
        """Whether the real line changed since the shadow was built from it."""
        if self.shadow is None or self._shadow_base is None:
            return False
        if (self.line.text, self.line.cursor) == self._shadow_base:
            return False
        logger.debug("input line changed under the preview, dropping it")
        return True

    # -- sessions ------------------------------------------------------------

    def complete(self, force: bool = False) -> None:
        """Tab: open a session and select the next candidate.

        A single candidate across all groups is accepted straight away,
        without ever listing it.
        """
        if force:
            self.force = True

        if self.is_searching():
            # Cycle through the matches only.
            if not self.store.is_empty():
                self.select(Direction.NEXT)
            return

        if self._state is CompletionState.IDLE or self.store.is_empty():
            if not self._generate():
                return
            if self.store.has_unique_candidate():
                self.store.select_first()
                self._accept_candidate()
                self._end_session()
                return
            self._set_state(CompletionState.LISTING)

        self.select(Direction.NEXT)

    def list_completions(self) -> None:
        """Generate candidates and show them without selecting any."""
        if self._generate():
            self._set_state(CompletionState.LISTING)

    def autocomplete(self) -> None:
        """Regenerate the listing after a keystroke in auto or forced mode."""
        if not (self.auto or self.force) or self.selected is not None or self.is_searching():
            return
        if self._generate():
            self._set_state(CompletionState.LISTING)

    def select(self, direction: Direction) -> None:
        """Move the menu selection and show the new candidate.

        Candidates listed for a line that has since changed are regenerated.
        """
        if self._preview_is_stale():
            self._end_session()
        if self._state is CompletionState.IDLE:
            self.complete()
            return
        self.store.select(direction)
        self._refresh_line()

    def accept(self) -> bool:
        """Commit the selected candidate to the real line.

        Returns ``False`` when no candidate was selected, or when the real
        line changed under the preview, in which case the session ends.
        """
        if self._preview_is_stale():
            self._end_session()
            return False
        if self.selected is None and not self.store.active:
            return False
        if not self.auto:
            self._accept_candidate()
        self._end_session()
        return True

    def cancel(self, remove_inserted: bool = True, keep_cache: bool = False) -> TextBuffer | None:
        """Abort the preview and drop the selected candidate.

        The shadow line, when there is one, is reset to mirror the real line
        and returned. In auto mode *remove_inserted* also removes the inserted
        candidate from the real line. With *keep_cache* the candidates stay
        listed.
        """
        restored: TextBuffer | None = None
        if self.shadow is not None:
            restored = self.line.copy()
            self.shadow = restored

        if self.auto and remove_inserted and self.inserted:
            self._remove_inserted()

        self.selected = None
        self.inserted = ""

        if keep_cache and not self.store.is_empty():
            self.store.set_groups(self.store.groups)
            self._drop_preview()
            self._set_state(CompletionState.LISTING)
        else:
            self._end_session()
        return restored

    def update_inserted(self) -> None:
        """Settle the session before a key that is not a completion key.

        A previewed candidate is committed. The menu is closed, unless auto
        or forced completion is about to regenerate it. A preview built from
        an older version of the line is dropped instead of committed.
        """
        if self._preview_is_stale():
            self._drop_preview()
        if self.selected is None:
            if not (self.auto or self.force):
                self._end_session()
            return

        if not self.auto:
            self._accept_candidate()
        self._end_session()

    def clear_menu(self) -> None:
        self._end_session()

    # -- candidate search ----------------------------------------------------

    def is_searching(self) -> bool:
        return self.search_pattern is not None

    def start_search(self) -> bool:
        """Filter the listed candidates with an incrementally typed pattern.

        Candidates are generated first when no session is open. Returns
        ``False`` when there is nothing to search.
        """
        if self.is_searching():
            return True
        if self._state is CompletionState.IDLE or self.store.is_empty():
            if not self._generate():
                return False
        self._unfiltered = list(self.store.groups)
        self._apply_search("")
        return True

    def search_insert(self, text: str) -> None:
        if self.search_pattern is None:
            return
        self._apply_search(self.search_pattern + text)

    def search_backspace(self) -> None:
        if not self.search_pattern:
            return
        self._apply_search(self.search_pattern[:-1])

    def _apply_search(self, pattern: str) -> None:
        # The previous match is never left in the line: the new pattern
        # may select another candidate.
        if self.auto and self.inserted:
            self._remove_inserted()
        self._drop_preview()
        self.inserted = ""

        self.search_pattern = pattern
        regex = compile_search(pattern)
        self.store.set_groups(
            Group(
                [c for c in group.candidates if regex.search(c.value)],
                mode=group.mode,
                title=group.title,
            )
            for group in self._unfiltered
        )
        self._set_state(CompletionState.LISTING)
        logger.debug("search %r matches %d candidates", pattern, len(self.store))

        if pattern and not self.store.is_empty():
            self.store.select_first()
            self._insert_candidate()

    # -- suffix handling -----------------------------------------------------

    def prepare_suffix(self) -> str:
        """Return the selected value and record its suffix matcher.

        Candidates at most one rune longer than the prefix (stacked flags,
        for example) never get a matcher.
        """
        candidate = self.selected
        if candidate is None:
            return ""

        value = candidate.value
        if len(value) - len(self.prefix) <= 1:
            return value

        self._matcher = SuffixMatcher(
            separators=candidate.no_space,
            position=self.line.cursor + len(value) - len(self.prefix) - 1,
        )
        return value

    def trim_suffix(self, key: str) -> bool:
        """Remove the accepted candidate's trailing separator if *key* repeats it.

        Returns ``True`` when a rune was removed. The recorded matcher only
        concerns the first key typed after acceptance and is consumed here.
        """
        if self._matcher is None or self.selected is not None:
            return False

        matcher, self._matcher = self._matcher, None
        cursor = self.line.cursor
        if len(self.line) == 0 or cursor == 0:
            return False

        if matcher.position != cursor - 1:
            logger.debug("orphaned suffix matcher at %d (cursor %d)", matcher.position, cursor)
            return False

        suffix = self.line.rune_at(cursor - 1)
        if not matcher.collapsible(suffix):
            return False

        # Paths keep their slash unless a blank or a separator follows.
        if suffix == "/" and key != " " and not matcher.matches(key):
            return False

        if matcher.matches(key) or key.isspace():
            self.line.cut(cursor - 1, cursor)
            return True
        return False

    # -- internals -----------------------------------------------------------

    def _generate(self) -> bool:
        if self.generator is None:
            return False

        text, cursor = self.line.text, self.line.cursor
        prefix, groups = self.generator(text, cursor)
        word_prefix, word_suffix = word_around(text, cursor, self.tokenizer)
        self.prefix = word_prefix if prefix is None else prefix
        self.suffix = word_suffix
        self.store.set_groups(groups)

        if self.store.is_empty():
            logger.debug("no candidates for %r", self.prefix)
            self._end_session()
            return False
        return True

    def _refresh_line(self) -> None:
        if self.store.is_empty():
            self.cancel()
            return
        if self.store.has_unique_candidate():
            if self.auto:
                self._remove_inserted()
            self._accept_candidate()
            self._end_session()
            return
        self._insert_candidate()

    def _insert_candidate(self) -> None:
        candidate = self.store.selected()
        if candidate is None or len(candidate.value) < len(self.prefix):
            return

        if self.auto:
            self._remove_inserted()

        self.selected = candidate
        completion = self.prepare_suffix()
        inserted = completion[len(self.prefix):]

        if self.auto:
            self.line.insert_at_cursor(inserted)
            self.inserted = inserted
        else:
            self.inserted = inserted
            self.shadow = self._completed(self.line.copy(), inserted)
            self._shadow_base = (self.line.text, self.line.cursor)

        self._set_state(CompletionState.PREVIEWING)

    def _accept_candidate(self) -> None:
        """Write the selected candidate into the real line."""
        self.selected = self.store.selected()
        if self.selected is None:
            return
        completion = self.prepare_suffix()
        self._completed(self.line, completion[len(self.prefix):])
        self.inserted = ""
        self.prefix = ""
        self.suffix = ""
        self.selected = None

    def _completed(self, buffer: TextBuffer, inserted: str) -> TextBuffer:
        # Cut the suffix, insert the candidate, then add the suffix back.
        cursor = buffer.cursor
        end = min(cursor + len(self.suffix), len(buffer))
        removed = buffer.cut(cursor, end)
        buffer.insert_at_cursor(inserted)
        buffer.insert(buffer.cursor, removed)
        return buffer

    def _remove_inserted(self) -> None:
        cursor = self.line.cursor
        start = max(0, cursor - len(self.inserted))
        self.line.cut(start, cursor)
        self.inserted = ""

    def _drop_preview(self) -> None:
        self.shadow = None
        self.selected = None
        self._shadow_base = None

    def _end_session(self) -> None:
        self.store.clear()
        self._drop_preview()
        self.prefix = ""
        self.suffix = ""
        self.inserted = ""
        self.force = False
        self.search_pattern = None
        self._unfiltered = []
        self._set_state(CompletionState.IDLE)
