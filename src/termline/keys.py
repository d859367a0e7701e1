"""Keyboard input parsing for legacy terminal sequences.

Raw stdin data is first split into single key sequences with
:func:`split_keys`, then each sequence is named by :func:`parse_key` using
identifiers such as ``"a"``, ``"ctrl+a"``, ``"shift+tab"`` or ``"alt+left"``.
:func:`matches_key` checks raw input against such an identifier.
"""

from __future__ import annotations

import re

KeyId = str

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

# ---------------------------------------------------------------------------
# Legacy escape sequences -> key names
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}

# xterm modifier parameter -> identifier prefix
_MODIFIER_PREFIXES: dict[int, str] = {
    2: "shift+",
    3: "alt+",
    4: "shift+alt+",
    5: "ctrl+",
    6: "ctrl+shift+",
    7: "ctrl+alt+",
    8: "ctrl+shift+alt+",
}

_CSI_FINALS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_TILDE_CODES: dict[str, str] = {
    "2": "insert",
    "3": "delete",
    "5": "pageUp",
    "6": "pageDown",
}

_MODIFIED_CSI_RE = re.compile(r"\x1b\[1;(\d)([A-DHF])$")
_MODIFIED_TILDE_RE = re.compile(r"\x1b\[(\d);(\d)~$")

_MODIFIER_ORDER = ("ctrl", "shift", "alt")


# ---------------------------------------------------------------------------
# split_keys: cut a stdin chunk into single key sequences
# ---------------------------------------------------------------------------


def _sequence_length(data: str, pos: int) -> int:
    """Length of the escape sequence starting at *pos*."""
    remaining = len(data) - pos
    if remaining == 1:
        return 1

    kind = data[pos + 1]
    if kind == "[":
        end = pos + 2
        while end < len(data):
            if 0x40 <= ord(data[end]) <= 0x7E:
                return end - pos + 1
            end += 1
        return remaining
    if kind == "O":
        return min(3, remaining)
    return 2


def split_keys(data: str) -> list[str]:
    """Split raw input into key sequences.

    A bracketed paste, markers included, is returned as one item. Escape
    sequences cut short at the end of *data* are returned as they are.
    """
    keys: list[str] = []
    pos = 0

    while pos < len(data):
        if data.startswith(BRACKETED_PASTE_START, pos):
            end = data.find(BRACKETED_PASTE_END, pos)
            end = len(data) if end < 0 else end + len(BRACKETED_PASTE_END)
            keys.append(data[pos:end])
            pos = end
        elif data[pos] == ESC:
            length = _sequence_length(data, pos)
            keys.append(data[pos : pos + length])
            pos += length
        else:
            keys.append(data[pos])
            pos += 1

    return keys


def is_paste(data: str) -> bool:
    return data.startswith(BRACKETED_PASTE_START)


def paste_content(data: str) -> str:
    """Strip the paste markers and normalize line endings."""
    content = data[len(BRACKETED_PASTE_START) :]
    if content.endswith(BRACKETED_PASTE_END):
        content = content[: -len(BRACKETED_PASTE_END)]
    return content.replace("\r\n", "\n").replace("\r", "\n")


# ---------------------------------------------------------------------------
# parse_key: determine what key was pressed from raw input
# ---------------------------------------------------------------------------


def parse_key(data: str) -> str | None:  # noqa: C901
    """Parse one key sequence and return its identifier, or ``None``."""
    if not data:
        return None

    name = LEGACY_KEY_SEQUENCES.get(data)
    if name is not None:
        return name

    match = _MODIFIED_CSI_RE.match(data)
    if match:
        prefix = _MODIFIER_PREFIXES.get(int(match.group(1)))
        return prefix + _CSI_FINALS[match.group(2)] if prefix else None

    match = _MODIFIED_TILDE_RE.match(data)
    if match and match.group(1) in _TILDE_CODES:
        prefix = _MODIFIER_PREFIXES.get(int(match.group(2)))
        return prefix + _TILDE_CODES[match.group(1)] if prefix else None

    # --- Simple single-byte keys ---
    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"
    if data == "\x1f":
        return "ctrl+_"

    # --- Ctrl + letter (0x01 - 0x1a) ---
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == ESC:
        ch = data[1]
        if ch in ("\r", "\n"):
            return "alt+enter"
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if 1 <= ord(ch) <= 26:
            return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
        if ch.isupper():
            return "shift+alt+" + ch.lower()
        if ch.isprintable():
            return "alt+" + ch.lower()

    if len(data) == 1 and data.isprintable():
        return data

    return None


def normalize_key_id(key_id: KeyId) -> KeyId:
    """Put modifiers in canonical ``ctrl+shift+alt+`` order."""
    parts = key_id.split("+")
    if len(parts) == 1 or key_id.endswith("++"):
        return key_id
    *mods, base = parts
    ordered = [m for m in _MODIFIER_ORDER if m in {p.lower() for p in mods}]
    return "+".join([*ordered, base])


def matches_key(data: str, key_id: KeyId) -> bool:
    """Check whether raw key *data* is the key named by *key_id*."""
    parsed = parse_key(data)
    if parsed is None:
        return False
    return parsed == normalize_key_id(key_id)


def is_printable(data: str) -> bool:
    """Whether *data* is text to insert rather than a control key."""
    return len(data) == 1 and data.isprintable()
