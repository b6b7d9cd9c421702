"""Messages delivered to the session controller.

Key presses, widget notifications and resolved commands all travel through
the same channel as one of the variants of ``Message``.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .models import Turn


class Key(Enum):
    """Named keys understood by the controller and widgets."""
    CHARACTER = "character"
    ACCEPT = "accept"
    CANCEL = "cancel"
    INTERRUPT = "interrupt"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    BACKSPACE = "backspace"
    NEWLINE = "newline"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    FINISH = "finish"


@dataclass(frozen=True)
class KeyEvent:
    """A key press. ``text`` carries the typed (or pasted) characters."""

    key: Key
    text: str = ""

    @classmethod
    def typed(cls, text: str) -> "KeyEvent":
        return cls(Key.CHARACTER, text)


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    is_dir: bool


@dataclass(frozen=True)
class DirectoryListed:
    """Result of listing a directory for the file browser."""

    path: Path
    entries: tuple[DirectoryEntry, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class FileSelected:
    path: str


@dataclass(frozen=True)
class FileContentReady:
    path: str
    content: str


@dataclass(frozen=True)
class FileReadFailed:
    path: str
    reason: str


@dataclass(frozen=True)
class AiReplyReady:
    turn: Turn


@dataclass(frozen=True)
class AiFailed:
    reason: str


@dataclass(frozen=True)
class DraftSaved:
    path: str


@dataclass(frozen=True)
class CommandFailed:
    """A command raised something it was not written to handle."""

    command: str
    reason: str


Message = (
    KeyEvent
    | Resized
    | DirectoryListed
    | FileSelected
    | FileContentReady
    | FileReadFailed
    | AiReplyReady
    | AiFailed
    | DraftSaved
    | CommandFailed
)
