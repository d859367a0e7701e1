"""Line editing keymap."""

from __future__ import annotations

from typing import Literal

from termline.keys import KeyId, matches_key

LineAction = Literal[
    # Cursor movement
    "cursorLeft",
    "cursorRight",
    "cursorWordLeft",
    "cursorWordRight",
    "cursorLineStart",
    "cursorLineEnd",
    # Deletion
    "deleteCharBackward",
    "deleteCharForward",
    "deleteWordBackward",
    "deleteToLineStart",
    "deleteToLineEnd",
    # History
    "historyPrevious",
    "historyNext",
    "acceptSuggestion",
    # Completion
    "complete",
    "completePrevious",
    "completeSearch",
    "selectUp",
    "selectDown",
    "selectLeft",
    "selectRight",
    "selectCancel",
    # Line
    "submit",
    "undo",
    "clearScreen",
    "interrupt",
    "endOfFile",
]

KeymapConfig = dict[LineAction, KeyId | list[KeyId]]

DEFAULT_KEYMAP: dict[LineAction, KeyId | list[KeyId]] = {
    # Cursor movement
    "cursorLeft": ["left", "ctrl+b"],
    "cursorRight": ["right", "ctrl+f"],
    "cursorWordLeft": ["alt+left", "ctrl+left", "alt+b"],
    "cursorWordRight": ["alt+right", "ctrl+right", "alt+f"],
    "cursorLineStart": ["home", "ctrl+a"],
    "cursorLineEnd": ["end", "ctrl+e"],
    # Deletion
    "deleteCharBackward": "backspace",
    "deleteCharForward": "delete",
    "deleteWordBackward": ["ctrl+w", "alt+backspace"],
    "deleteToLineStart": "ctrl+u",
    "deleteToLineEnd": "ctrl+k",
    # History
    "historyPrevious": ["up", "ctrl+p"],
    "historyNext": ["down", "ctrl+n"],
    "acceptSuggestion": ["right", "end", "ctrl+e", "ctrl+f"],
    # Completion
    "complete": "tab",
    "completePrevious": "shift+tab",
    "completeSearch": "ctrl+r",
    "selectUp": "up",
    "selectDown": "down",
    "selectLeft": "left",
    "selectRight": "right",
    "selectCancel": ["escape", "ctrl+g"],
    # Line
    "submit": "enter",
    "undo": ["ctrl+_", "ctrl+z"],
    "clearScreen": "ctrl+l",
    "interrupt": "ctrl+c",
    "endOfFile": "ctrl+d",
}


class KeymapManager:
    """Maps line actions to the keys bound to them."""

    def __init__(self, config: KeymapConfig | None = None) -> None:
        self._action_to_keys: dict[LineAction, list[KeyId]] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: KeymapConfig) -> None:
        self._action_to_keys.clear()

        for source in (DEFAULT_KEYMAP, config):
            for action, keys in source.items():
                key_array = keys if isinstance(keys, list) else [keys]
                self._action_to_keys[action] = list(key_array)

    def matches(self, data: str, action: LineAction) -> bool:
        """Check if input matches a specific action."""
        return any(matches_key(data, key) for key in self._action_to_keys.get(action, []))

    def get_keys(self, action: LineAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

    def set_config(self, config: KeymapConfig) -> None:
        self._build_maps(config)


_global_keymap: KeymapManager | None = None


def get_keymap() -> KeymapManager:
    global _global_keymap
    if _global_keymap is None:
        _global_keymap = KeymapManager()
    return _global_keymap


def set_keymap(manager: KeymapManager) -> None:
    global _global_keymap
    _global_keymap = manager
