"""Tests for termline.keys -- splitting and naming key sequences."""

from __future__ import annotations

import pytest

from termline.keys import (
    is_paste,
    is_printable,
    matches_key,
    normalize_key_id,
    parse_key,
    paste_content,
    split_keys,
)


# ---------------------------------------------------------------------------
# split_keys
# ---------------------------------------------------------------------------


class TestSplitKeys:
    """Cutting raw input into single keys."""

    def test_plain_characters(self) -> None:
        assert split_keys("ab") == ["a", "b"]

    def test_csi_sequences(self) -> None:
        assert split_keys("a\x1b[Ab\x1b[1;5C") == ["a", "\x1b[A", "b", "\x1b[1;5C"]

    def test_ss3_and_alt_sequences(self) -> None:
        assert split_keys("\x1bOA\x1bb") == ["\x1bOA", "\x1bb"]

    def test_lone_escape(self) -> None:
        assert split_keys("x\x1b") == ["x", "\x1b"]

    def test_paste_is_one_item(self) -> None:
        data = "\x1b[200~a\x1b[Ab\x1b[201~c"
        assert split_keys(data) == ["\x1b[200~a\x1b[Ab\x1b[201~", "c"]

    def test_unterminated_paste_takes_rest(self) -> None:
        assert split_keys("\x1b[200~abc") == ["\x1b[200~abc"]


class TestPaste:
    """Paste markers."""

    def test_is_paste(self) -> None:
        assert is_paste("\x1b[200~x\x1b[201~")
        assert not is_paste("x")

    def test_content_normalizes_line_endings(self) -> None:
        assert paste_content("\x1b[200~a\r\nb\rc\x1b[201~") == "a\nb\nc"


# ---------------------------------------------------------------------------
# parse_key / matches_key
# ---------------------------------------------------------------------------


class TestParseKey:
    """Naming key sequences."""

    @pytest.mark.parametrize(
        ("data", "name"),
        [
            ("\x1b[A", "up"),
            ("\x1bOD", "left"),
            ("\x1b[3~", "delete"),
            ("\x1b[Z", "shift+tab"),
            ("\x1b[1;5C", "ctrl+right"),
            ("\x1b[1;3D", "alt+left"),
            ("\x1b[3;5~", "ctrl+delete"),
            ("\x1b", "escape"),
            ("\r", "enter"),
            ("\t", "tab"),
            (" ", "space"),
            ("\x7f", "backspace"),
            ("\x01", "ctrl+a"),
            ("\x1f", "ctrl+_"),
            ("\x1bb", "alt+b"),
            ("\x1bB", "shift+alt+b"),
            ("\x1b\x7f", "alt+backspace"),
            ("x", "x"),
        ],
    )
    def test_names(self, data: str, name: str) -> None:
        assert parse_key(data) == name

    def test_unknown_sequence(self) -> None:
        assert parse_key("\x1b[99x") is None
        assert parse_key("") is None


class TestMatchesKey:
    """Matching raw input against key identifiers."""

    def test_modifier_order_is_normalized(self) -> None:
        assert normalize_key_id("alt+ctrl+x") == "ctrl+alt+x"
        assert matches_key("\x1b[1;7A", "alt+ctrl+up")

    def test_mismatch(self) -> None:
        assert not matches_key("\x1b[A", "down")
        assert not matches_key("\x1b[99x", "up")


class TestIsPrintable:
    """Text versus control keys."""

    def test_printable(self) -> None:
        assert is_printable("a")
        assert is_printable(" ")
        assert is_printable("é")

    def test_control_keys(self) -> None:
        assert not is_printable("\t")
        assert not is_printable("\x1b[A")
        assert not is_printable("")
