"""termline: readline-style line editing with completion menus."""

# Text buffer and coordinates
from termline.buffer import Coordinates, TextBuffer, resolve

# Completion candidates
from termline.candidates import (
    Candidate,
    CandidateStore,
    Direction,
    Group,
    RenderMode,
)

# Completion engine
from termline.completion import (
    CompletionEngine,
    CompletionState,
    Generator,
    SuffixMatcher,
)

# Display
from termline.display import (
    DisplayEngine,
    DisplayOptions,
    Geometry,
    Hint,
)

# Errors
from termline.errors import (
    GeometryUnavailableError,
    OutOfRangeError,
    TermlineError,
)

# History
from termline.history import History, HistoryCursor, MemoryHistory

# Keymap
from termline.keymap import (
    DEFAULT_KEYMAP,
    KeymapManager,
    LineAction,
    get_keymap,
    set_keymap,
)

# Keyboard input handling
from termline.keys import KeyId, matches_key, parse_key, split_keys

# Prompt
from termline.prompt import Prompt

# Shell
from termline.shell import KeyEvent, Shell, ShellOptions, SyntaxCompleter

# Terminal
from termline.terminal import ProcessTerminal, Terminal

# Tokenizers
from termline.tokenize import (
    TOKENIZERS,
    Tokenizer,
    tokenize_brackets,
    tokenize_line,
    tokenize_spaces,
    word_around,
)

# Undo
from termline.undo import Snapshot, UndoStack

# Utilities
from termline.utils import truncate_to_width, visible_width

__all__ = [
    # Buffer
    "Coordinates",
    "TextBuffer",
    "resolve",
    # Candidates
    "Candidate",
    "CandidateStore",
    "Direction",
    "Group",
    "RenderMode",
    # Completion
    "CompletionEngine",
    "CompletionState",
    "Generator",
    "SuffixMatcher",
    # Display
    "DisplayEngine",
    "DisplayOptions",
    "Geometry",
    "Hint",
    # Errors
    "GeometryUnavailableError",
    "OutOfRangeError",
    "TermlineError",
    # History
    "History",
    "HistoryCursor",
    "MemoryHistory",
    # Keymap
    "DEFAULT_KEYMAP",
    "KeymapManager",
    "LineAction",
    "get_keymap",
    "set_keymap",
    # Keys
    "KeyId",
    "matches_key",
    "parse_key",
    "split_keys",
    # Prompt
    "Prompt",
    # Shell
    "KeyEvent",
    "Shell",
    "ShellOptions",
    "SyntaxCompleter",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Tokenizers
    "TOKENIZERS",
    "Tokenizer",
    "tokenize_brackets",
    "tokenize_line",
    "tokenize_spaces",
    "word_around",
    # Undo
    "Snapshot",
    "UndoStack",
    # Utilities
    "truncate_to_width",
    "visible_width",
]
