"""Completion candidates, display groups and 2-D menu navigation.

Candidates are partitioned into :class:`Group` objects, each rendered in one
of three modes. A group lays its candidates out on a ``columns x rows`` grid
whose shape depends on the terminal width, and keeps the selected cell
``(x, y)`` together with the first visible row of its rolling window.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from termline.utils import bold, dim, reverse, truncate_to_width, visible_width

_CELL_PADDING = 2


class RenderMode(Enum):
    GRID = "grid"
    LIST = "list"
    MAP = "map"


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    NEXT = "next"
    PREVIOUS = "previous"


@dataclass(frozen=True)
class Candidate:
    """A single completion produced by a generator callback.

    ``no_space`` holds the separator characters that collapse the
    candidate's trailing character when typed right after it, or ``"*"``.
    """

    value: str
    display: str = ""
    description: str = ""
    tag: str = ""
    no_space: str = ""

    @property
    def label(self) -> str:
        return self.display or self.value


class Group:
    """Candidates sharing one render mode, with a selection cursor."""

    def __init__(
        self,
        candidates: Iterable[Candidate],
        mode: RenderMode = RenderMode.GRID,
        title: str = "",
        max_rows: int = 10,
    ) -> None:
        self.candidates: list[Candidate] = list(candidates)
        self.mode = mode
        self.title = title
        self.max_rows = max(1, max_rows)

        self.x = 0
        self.y = 0
        self.origin = 0

        self.columns = 1
        self.rows = len(self.candidates)
        self._label_width = max((visible_width(c.label) for c in self.candidates), default=0)
        self._desc_width = max(
            (visible_width(c.description) for c in self.candidates), default=0
        )

    def __len__(self) -> int:
        return len(self.candidates)

    # -- layout --------------------------------------------------------------

    @property
    def cell_width(self) -> int:
        if self.mode is RenderMode.GRID:
            return self._label_width + _CELL_PADDING
        if self._desc_width:
            return self._label_width + self._desc_width + 2 * _CELL_PADDING
        return self._label_width + _CELL_PADDING

    def layout(self, width: int) -> None:
        """Compute the grid shape for *width* and keep the selection valid."""
        count = len(self.candidates)
        selected = self.index
        if self.mode is RenderMode.MAP or count == 0 or width <= 0:
            self.columns = 1
        else:
            self.columns = max(1, min(count, width // max(1, self.cell_width)))
        self.rows = math.ceil(count / self.columns) if count else 0

        if count:
            self.set_index(min(selected, count - 1))

    def set_max_rows(self, max_rows: int) -> None:
        self.max_rows = max(1, max_rows)
        self._scroll()

    def _index(self, x: int, y: int) -> int:
        if self.mode is RenderMode.GRID:
            return y * self.columns + x
        if self.mode is RenderMode.LIST:
            return x * self.rows + y
        return y

    def _exists(self, x: int, y: int) -> bool:
        return (
            0 <= x < self.columns
            and 0 <= y < self.rows
            and self._index(x, y) < len(self.candidates)
        )

    # -- selection -----------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index(self.x, self.y)

    def set_index(self, index: int) -> None:
        if self.mode is RenderMode.GRID:
            self.y, self.x = divmod(index, self.columns)
        elif self.mode is RenderMode.LIST:
            self.x, self.y = divmod(index, max(1, self.rows))
        else:
            self.x, self.y = 0, index
        self._scroll()

    def selected(self) -> Candidate | None:
        if not self.candidates:
            return None
        return self.candidates[self.index]

    def first(self) -> None:
        self.set_index(0)

    def last(self) -> None:
        self.set_index(len(self.candidates) - 1)

    def move(self, direction: Direction, wrap: bool = True) -> bool:
        """Move the selection one step.

        Returns ``False`` when the move overflowed the group bounds. The
        selection then wraps to the opposite edge if *wrap* is set, and is
        left untouched otherwise so that the caller can cascade.
        """
        if not self.candidates:
            return False

        if direction is Direction.RIGHT:
            self.x = self.x + 1 if self._exists(self.x + 1, self.y) else 0
        elif direction is Direction.LEFT:
            if self.x > 0:
                self.x -= 1
            else:
                self.x = max(c for c in range(self.columns) if self._exists(c, self.y))
        elif direction is Direction.DOWN:
            if self._exists(self.x, self.y + 1):
                self.y += 1
            else:
                if wrap:
                    self.y = 0
                    self._scroll()
                return False
        elif direction is Direction.UP:
            if self.y > 0:
                self.y -= 1
            else:
                if wrap:
                    self.y = max(r for r in range(self.rows) if self._exists(self.x, r))
                    self._scroll()
                return False
        elif direction is Direction.NEXT:
            if self.index + 1 < len(self.candidates):
                self.set_index(self.index + 1)
            else:
                if wrap:
                    self.first()
                return False
        elif direction is Direction.PREVIOUS:
            if self.index > 0:
                self.set_index(self.index - 1)
            else:
                if wrap:
                    self.last()
                return False

        self._scroll()
        return True

    def _scroll(self) -> None:
        # Window follows the selection from its previous origin.
        if self.y < self.origin:
            self.origin = self.y
        elif self.y >= self.origin + self.max_rows:
            self.origin = self.y - self.max_rows + 1
        self.origin = max(0, min(self.origin, max(0, self.rows - self.max_rows)))

    # -- rendering -----------------------------------------------------------

    def render(self, width: int, active: bool) -> list[str]:
        """Render the title, the visible rows and a scroll indicator."""
        lines: list[str] = []
        if self.title:
            lines.append(truncate_to_width(bold(self.title), width))

        end = min(self.rows, self.origin + self.max_rows)
        for y in range(self.origin, end):
            cells: list[str] = []
            for x in range(self.columns):
                if not self._exists(x, y):
                    continue
                selected = active and (x, y) == (self.x, self.y)
                cells.append(self._render_cell(self.candidates[self._index(x, y)], selected))
            lines.append(truncate_to_width("".join(cells).rstrip(), width))

        if self.rows > self.max_rows:
            lines.append(dim(f"({self.y + 1}/{self.rows})"))
        return lines

    def _render_cell(self, candidate: Candidate, selected: bool) -> str:
        label = truncate_to_width(candidate.label, self._label_width, pad=True)
        if self.mode is RenderMode.GRID or not self._desc_width:
            cell = reverse(label) if selected else label
            return cell + " " * _CELL_PADDING

        desc = truncate_to_width(candidate.description, self._desc_width, pad=True)
        if self.mode is RenderMode.MAP:
            # Descriptions are the primary column, values follow.
            left, right = desc, label
        else:
            left, right = label, desc
        if selected:
            left = reverse(left)
        return f"{left}{' ' * _CELL_PADDING}{dim(right)}{' ' * _CELL_PADDING}"


class CandidateStore:
    """All groups of one completion session and the active selection."""

    def __init__(self, max_rows: int = 10, cascade: bool = False) -> None:
        self.groups: list[Group] = []
        self.max_rows = max(1, max_rows)
        self.cascade = cascade
        self._current: int | None = None

    def set_groups(self, groups: Iterable[Group]) -> None:
        self.groups = [g for g in groups if g.candidates]
        for group in self.groups:
            group.set_max_rows(self.max_rows)
        self._current = None

    def clear(self) -> None:
        self.groups = []
        self._current = None

    def __len__(self) -> int:
        return sum(len(g) for g in self.groups)

    def is_empty(self) -> bool:
        return not self.groups

    def has_unique_candidate(self) -> bool:
        return len(self) == 1

    @property
    def active(self) -> bool:
        """Whether a candidate is currently selected."""
        return self._current is not None

    def current_group(self) -> Group | None:
        if self._current is None:
            return None
        return self.groups[self._current]

    def selected(self) -> Candidate | None:
        group = self.current_group()
        return group.selected() if group else None

    def set_max_rows(self, max_rows: int) -> None:
        self.max_rows = max(1, max_rows)
        for group in self.groups:
            group.set_max_rows(self.max_rows)

    def layout(self, width: int) -> None:
        for group in self.groups:
            group.layout(width)

    def select_first(self) -> None:
        """Select the first candidate of the first group."""
        if not self.groups:
            return
        self._current = 0
        self.groups[0].first()

    def select(self, direction: Direction) -> Candidate | None:
        """Move the selection and return the selected candidate.

        The first call of a session selects the first candidate (the last
        one when moving backwards) without moving further.
        """
        if not self.groups:
            return None

        if self._current is None:
            if direction in (Direction.PREVIOUS, Direction.UP):
                self._current = len(self.groups) - 1
                self.groups[-1].last()
            else:
                self.select_first()
            return self.selected()

        group = self.groups[self._current]
        cascading = self.cascade and len(self.groups) > 1 and direction in (
            Direction.NEXT,
            Direction.PREVIOUS,
            Direction.DOWN,
            Direction.UP,
        )
        if group.move(direction, wrap=not cascading) or not cascading:
            return self.selected()

        if direction in (Direction.NEXT, Direction.DOWN):
            self._current = (self._current + 1) % len(self.groups)
            self.groups[self._current].first()
        else:
            self._current = (self._current - 1) % len(self.groups)
            self.groups[self._current].last()
        return self.selected()

    def render(self, width: int, max_lines: int) -> list[str]:
        """Render every group, windowed on the selected group when too tall.

        Group windows shrink to what *max_lines* leaves room for, so the
        selected candidate is always among the returned lines.
        """
        if max_lines <= 0:
            return []
        for group in self.groups:
            group.set_max_rows(self._window_rows(group, max_lines))

        blocks = [
            group.render(width, active=index == self._current)
            for index, group in enumerate(self.groups)
        ]
        lines = [line for block in blocks for line in block]
        if len(lines) <= max_lines:
            return lines

        start = sum(len(block) for block in blocks[: self._current or 0])
        return lines[start : start + max_lines]

    def _window_rows(self, group: Group, max_lines: int) -> int:
        # Title and scroll indicator take a line each.
        rows = min(self.max_rows, max_lines - (1 if group.title else 0))
        if group.rows > rows:
            rows -= 1
        return max(1, rows)
