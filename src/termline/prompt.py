"""Prompt strings shown around the input line."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Union

from termline.utils import visible_width

PromptSource = Union[str, Callable[[], str]]


def _render(source: PromptSource | None) -> str:
    if source is None:
        return ""
    return source() if callable(source) else source


@dataclass
class Prompt:
    """Primary, right and transient prompts.

    The primary prompt may span several lines; input starts after its last
    line. Each part is either a string or a callable returning one, so that
    dynamic prompts are re-evaluated on every print.
    """

    primary: PromptSource = "> "
    right: PromptSource | None = None
    transient: PromptSource | None = None

    def primary_text(self) -> str:
        return _render(self.primary)

    def right_text(self) -> str:
        return _render(self.right)

    def transient_text(self) -> str:
        return _render(self.transient)

    @property
    def has_transient(self) -> bool:
        return self.transient is not None

    def rows(self, width: int = 0) -> int:
        """Number of terminal rows the primary prompt adds above the input.

        With a *width*, prompt lines wider than the terminal count for every
        row they wrap over.
        """
        *above, last = self.primary_text().split("\n")
        if width <= 0:
            return len(above)
        rows = sum(max(1, math.ceil(visible_width(line) / width)) for line in above)
        return rows + visible_width(last) // width

    def start_column(self, width: int = 0) -> int:
        """Visible width of the last primary line, wrapped to *width*."""
        last = self.primary_text().rsplit("\n", 1)[-1]
        column = visible_width(last)
        if width > 0:
            column %= width
        return column
