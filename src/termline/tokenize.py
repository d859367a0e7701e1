"""Line tokenizers used to find words around the cursor.

Every tokenizer has the signature ``(line, cursor) -> (segments, index, pos)``:
the line split into segments whose concatenation is the line (or a part of it
for bracket matching), the index of the segment holding the cursor, and the
cursor offset inside that segment.
"""

from __future__ import annotations

from typing import Callable

Tokenizer = Callable[[str, int], tuple[list[str], int, int]]

_BLANKS = (" ", "\t", "\n")
_BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}


def is_punctuation(char: str) -> bool:
    """Return ``True`` for non-blank ASCII word delimiters."""
    cp = ord(char)
    return (
        33 <= cp <= 47
        or 58 <= cp <= 64
        or 91 <= cp <= 94
        or cp == 96
        or 123 <= cp <= 126
    )


def _locate(split: list[str], line: str, cursor: int, marks: list[int]) -> tuple[int, int]:
    if cursor >= len(line):
        return len(split) - 1, len(split[-1])
    index = marks[cursor]
    start = sum(len(s) for s in split[:index])
    return index, cursor - start


def tokenize_line(line: str, cursor: int) -> tuple[list[str], int, int]:
    """Split on whitespace and on runs of identical punctuation characters."""
    if not line:
        return [], 0, 0

    split = [""]
    marks: list[int] = []
    punct = False

    for i, ch in enumerate(line):
        if is_punctuation(ch):
            if i > 0 and line[i - 1] != ch:
                split.append("")
            split[-1] += ch
            punct = True
        elif ch in _BLANKS:
            split[-1] += ch
            punct = True
        else:
            if punct:
                split.append("")
            split[-1] += ch
            punct = False
        marks.append(len(split) - 1)

    index, pos = _locate(split, line, cursor, marks)
    return split, index, pos


def tokenize_spaces(line: str, cursor: int) -> tuple[list[str], int, int]:
    """Split on whitespace only; blanks stay attached to the preceding word."""
    if not line:
        return [], 0, 0

    split = [""]
    marks: list[int] = []

    for i, ch in enumerate(line):
        if ch not in _BLANKS and i > 0 and line[i - 1] in _BLANKS:
            split.append("")
        split[-1] += ch
        marks.append(len(split) - 1)

    index, pos = _locate(split, line, cursor, marks)
    return split, index, pos


def tokenize_brackets(line: str, cursor: int) -> tuple[list[str], int, int]:
    """Match the bracket under the cursor with its pair, ignoring quoted text.

    Returns ``[text before the opening bracket, bracketed text]`` with index 1
    and the cursor offset inside the bracketed text, or an empty split when the
    cursor is not on a bracket or the bracket is unbalanced.
    """
    if not 0 <= cursor < len(line):
        return [], 0, 0

    char = line[cursor]
    if char in _BRACKET_PAIRS:
        opening, closing = char, _BRACKET_PAIRS[char]
    elif char in _BRACKET_PAIRS.values():
        closing = char
        opening = next(o for o, c in _BRACKET_PAIRS.items() if c == char)
    else:
        return [], 0, 0

    stack: list[int] = []
    single = double = False

    for i, ch in enumerate(line):
        if ch == "'" and not double:
            single = not single
        elif ch == '"' and not single:
            double = not double
        elif single or double:
            if i == cursor:
                return [], 0, 0
        elif ch == opening:
            stack.append(i)
        elif ch == closing:
            if not stack:
                return [], 0, 0
            start = stack.pop()
            if cursor in (start, i):
                return [line[:start], line[start : i + 1]], 1, cursor - start

    return [], 0, 0


def word_around(line: str, cursor: int, tokenizer: Tokenizer) -> tuple[str, str]:
    """Return the word parts left and right of *cursor*.

    The left part is the completion prefix. It is empty when the cursor
    follows a blank. The right part stops at the first blank.
    """
    split, index, pos = tokenizer(line, cursor)
    if not split:
        return "", ""

    segment = split[index]
    before, after = segment[:pos], segment[pos:]
    if any(ch in _BLANKS for ch in before):
        before = ""
    for i, ch in enumerate(after):
        if ch in _BLANKS:
            after = after[:i]
            break
    return before, after


TOKENIZERS: dict[str, Tokenizer] = {
    "line": tokenize_line,
    "spaces": tokenize_spaces,
    "brackets": tokenize_brackets,
}
