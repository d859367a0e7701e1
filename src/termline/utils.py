"""Terminal text utilities: ANSI stripping, width measurement and SGR styles.

Prompts, hints and completion menus can hold escape sequences and wide
characters, so they are measured with :func:`visible_width`. The edited buffer
itself is one cell per rune and never goes through these helpers.
"""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Regex patterns for ANSI / OSC / APC sequences
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"              # CSI
    r"|\x1b\]8;;[^\x07]*\x07"              # OSC 8
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"   # APC
)

# ---------------------------------------------------------------------------
# SGR styles
# ---------------------------------------------------------------------------

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
REVERSE = "\x1b[7m"
FG_BLUE = "\x1b[34m"
FG_BRIGHT_BLACK = "\x1b[90m"


def bold(text: str) -> str:
    return f"{BOLD}{text}{RESET}"


def dim(text: str) -> str:
    """Style used for history autosuggestions."""
    return f"{FG_BRIGHT_BLACK}{text}{RESET}"


def reverse(text: str) -> str:
    """Style used for the selected completion cell."""
    return f"{REVERSE}{text}{RESET}"


def blue(text: str) -> str:
    return f"{FG_BLUE}{text}{RESET}"


# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster."""
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tones and regional indicators render as emoji
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000 or 0x2600 <= ord(first) <= 0x27BF:
        return 2

    category = unicodedata.category(first)
    if category.startswith("M") or category == "Cf":
        return 0

    return max(_wcwidth.wcwidth(first), 0)


def strip_ansi(text: str) -> str:
    """Remove escape sequences from *text*."""
    return _STRIP_RE.sub("", text)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*.

    Escape sequences are ignored and tabs count as 3 columns.
    """
    if not text:
        return 0

    stripped = strip_ansi(text)
    if not stripped:
        return 0
    stripped = stripped.replace("\t", "   ")

    if all(0x20 <= ord(ch) <= 0x7E for ch in stripped):
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _cache_width(stripped, total)


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = "...",
    pad: bool = False,
) -> str:
    """Truncate *text* to fit within *max_width* visible columns.

    Escape sequences are dropped from truncated text so that a cut never
    leaves a dangling style; untouched text is returned as is.
    """
    if max_width <= 0:
        return ""

    width = visible_width(text)
    if width <= max_width:
        if pad:
            return text + " " * (max_width - width)
        return text

    ellipsis_width = visible_width(ellipsis)
    target = max_width - ellipsis_width
    if target <= 0:
        return _take_columns(ellipsis, max_width)

    result = _take_columns(strip_ansi(text), target) + ellipsis
    if pad:
        result += " " * (max_width - visible_width(result))
    return result


def _take_columns(text: str, max_cols: int) -> str:
    out: list[str] = []
    used = 0
    for g in grapheme.graphemes(text):
        w = _grapheme_width(g)
        if used + w > max_cols:
            break
        out.append(g)
        used += w
    return "".join(out)
