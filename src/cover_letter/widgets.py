"""Widget adapters driven by the session controller.

Each widget owns only its own cursor, scroll and focus state. ``update``
receives every message the controller routes to it and returns the widget
plus an optional command; ``render`` returns plain text.

Text editing is delegated to Textual's ``Document`` (the model behind
``TextArea``) and wrapping to rich, so the adapters only translate keys.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from rich.console import Console
from rich.text import Text
from textual.widgets.text_area import Document

from .commands import Command, Emit, ListDirectory
from .messages import DirectoryEntry, DirectoryListed, FileSelected, Key, KeyEvent, Message, Resized

CURSOR = "█"


class Widget(ABC):
    """Common capability set: receive a message, return self plus a command."""

    def __init__(self) -> None:
        self._focused = False

    @property
    def focused(self) -> bool:
        return self._focused

    def focus(self) -> None:
        self._focused = True

    def blur(self) -> None:
        self._focused = False

    @abstractmethod
    def update(self, message: Message) -> tuple["Widget", Command | None]:
        ...

    @abstractmethod
    def render(self) -> str:
        ...


class TextBox(Widget):
    """Multi-line text entry for pasting long text."""

    def __init__(self, placeholder: str = "", char_limit: int = 3200, height: int = 10) -> None:
        super().__init__()
        self.placeholder = placeholder
        self.char_limit = char_limit
        self.height = height
        self._document = Document("")

    @property
    def value(self) -> str:
        return self._document.text

    def _insert(self, text: str) -> None:
        room = self.char_limit - len(self.value)
        if room > 0:
            end = self._document.end
            self._document.replace_range(end, end, text[:room])

    def _delete_last(self) -> None:
        end = self._document.end
        if end == (0, 0):
            return
        index = self._document.get_index_from_location(end)
        start = self._document.get_location_from_index(index - 1)
        self._document.replace_range(start, end, "")

    def update(self, message: Message) -> tuple["TextBox", Command | None]:
        if not self._focused or not isinstance(message, KeyEvent):
            return self, None

        if message.key is Key.CHARACTER:
            self._insert(message.text)
        elif message.key is Key.NEWLINE:
            self._insert("\n")
        elif message.key is Key.BACKSPACE:
            self._delete_last()
        return self, None

    def render(self) -> str:
        if not self.value:
            body = (CURSOR if self._focused else "") + self.placeholder
            lines = [body]
        else:
            lines = list(self._document.lines)
            if self._focused:
                lines[-1] += CURSOR
        # Keep the tail visible, like a terminal would
        lines = lines[-self.height:]
        lines += [""] * (self.height - len(lines))
        return "\n".join("┃ " + line for line in lines)


class LineInput(Widget):
    """Single-line input with a movable cursor."""

    def __init__(self, placeholder: str = "", char_limit: int = 200, prompt: str = "> ") -> None:
        super().__init__()
        self.placeholder = placeholder
        self.char_limit = char_limit
        self.prompt = prompt
        self._document = Document("")
        self._cursor = 0

    @property
    def value(self) -> str:
        return self._document.get_line(0)

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self) -> None:
        self._document = Document("")
        self._cursor = 0

    def update(self, message: Message) -> tuple["LineInput", Command | None]:
        if not self._focused or not isinstance(message, KeyEvent):
            return self, None

        key = message.key
        if key is Key.CHARACTER:
            # Line breaks from a paste collapse to spaces
            text = message.text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
            text = text[: max(0, self.char_limit - len(self.value))]
            result = self._document.replace_range((0, self._cursor), (0, self._cursor), text)
            self._cursor = result.end_location[1]
        elif key is Key.BACKSPACE and self._cursor > 0:
            self._document.replace_range((0, self._cursor - 1), (0, self._cursor), "")
            self._cursor -= 1
        elif key is Key.LEFT:
            self._cursor = max(0, self._cursor - 1)
        elif key is Key.RIGHT:
            self._cursor = min(len(self.value), self._cursor + 1)
        return self, None

    def render(self) -> str:
        value = self.value
        if not value:
            if self._focused:
                return self.prompt + CURSOR + self.placeholder
            return self.prompt + self.placeholder
        if not self._focused:
            return self.prompt + value
        return self.prompt + value[: self._cursor] + CURSOR + value[self._cursor:]


class Viewport(Widget):
    """Scrollable window over wrapped text.

    Scroll keys apply whether or not the viewport is focused.
    """

    def __init__(self, width: int = 80, height: int = 20) -> None:
        super().__init__()
        self.width = width
        self.height = height
        self._console = Console(width=width, color_system=None)
        self._content = ""
        self._lines: list[str] = []
        self.y_offset = 0

    @property
    def content(self) -> str:
        return self._content

    @property
    def max_offset(self) -> int:
        return max(0, len(self._lines) - self.height)

    @property
    def at_bottom(self) -> bool:
        return self.y_offset >= self.max_offset

    def set_content(self, content: str) -> None:
        self._content = content
        self._rewrap()

    def _rewrap(self) -> None:
        if self._content:
            wrapped = Text(self._content).wrap(self._console, self.width, overflow="fold")
            self._lines = [line.plain for line in wrapped]
        else:
            self._lines = []
        self.y_offset = min(self.y_offset, self.max_offset)

    def goto_bottom(self) -> None:
        self.y_offset = self.max_offset

    def scroll(self, delta: int) -> None:
        self.y_offset = min(max(0, self.y_offset + delta), self.max_offset)

    def update(self, message: Message) -> tuple["Viewport", Command | None]:
        if isinstance(message, Resized):
            was_at_bottom = self.at_bottom
            self.width = max(20, message.width)
            # Leave room for the status line and the input below
            self.height = max(3, message.height - 4)
            self._rewrap()
            if was_at_bottom:
                self.goto_bottom()
        elif isinstance(message, KeyEvent):
            if message.key is Key.UP:
                self.scroll(-1)
            elif message.key is Key.DOWN:
                self.scroll(1)
            elif message.key is Key.PAGE_UP:
                self.scroll(-self.height)
            elif message.key is Key.PAGE_DOWN:
                self.scroll(self.height)
        return self, None

    def render(self) -> str:
        visible = self._lines[self.y_offset:self.y_offset + self.height]
        visible += [""] * (self.height - len(visible))
        return "\n".join(visible)


class FileBrowser(Widget):
    """Directory navigator that reports the file the user picks."""

    def __init__(
        self,
        start_dir: Path,
        allowed_suffixes: tuple[str, ...] = (),
        show_hidden: bool = False,
        height: int = 12,
    ) -> None:
        super().__init__()
        self.current_dir = start_dir.expanduser().resolve()
        self.allowed_suffixes = tuple(s.lower() for s in allowed_suffixes)
        self.show_hidden = show_hidden
        self.height = height
        self.entries: tuple[DirectoryEntry, ...] = ()
        self.selected_index = 0
        self.error: str | None = None
        self._loading = False

    def init(self) -> Command:
        """Issue the initial listing of the start directory."""
        return self._list(self.current_dir)

    def _list(self, path: Path) -> Command:
        self._loading = True
        return ListDirectory(path, self.show_hidden)

    def is_selectable(self, entry: DirectoryEntry) -> bool:
        if entry.is_dir:
            return True
        if not self.allowed_suffixes:
            return True
        return Path(entry.name).suffix.lower() in self.allowed_suffixes

    @property
    def highlighted(self) -> DirectoryEntry | None:
        if not self.entries:
            return None
        return self.entries[self.selected_index]

    def update(self, message: Message) -> tuple["FileBrowser", Command | None]:
        if isinstance(message, DirectoryListed):
            self._loading = False
            if message.error is not None:
                self.error = f"{message.path}: {message.error}"
                return self, None
            self.error = None
            self.current_dir = message.path
            self.entries = message.entries
            self.selected_index = 0
            return self, None

        if not self._focused or not isinstance(message, KeyEvent) or self._loading:
            return self, None

        key = message.key
        if key is Key.UP:
            self.selected_index = max(0, self.selected_index - 1)
        elif key is Key.DOWN:
            self.selected_index = min(max(0, len(self.entries) - 1), self.selected_index + 1)
        elif key in (Key.LEFT, Key.BACKSPACE):
            parent = self.current_dir.parent
            if parent != self.current_dir:
                return self, self._list(parent)
        elif key is Key.ACCEPT:
            entry = self.highlighted
            if entry is None or not self.is_selectable(entry):
                return self, None
            path = self.current_dir / entry.name
            if entry.is_dir:
                return self, self._list(path)
            return self, Emit(FileSelected(str(path)))
        return self, None

    def render(self) -> str:
        lines = [str(self.current_dir)]
        if self.error:
            lines.append(f"! {self.error}")
        if self._loading and not self.entries:
            lines.append("  loading...")
        elif not self.entries:
            lines.append("  (empty directory)")

        # Window the listing around the highlighted entry
        start = max(0, min(self.selected_index - self.height // 2, len(self.entries) - self.height))
        for i, entry in enumerate(self.entries[start:start + self.height], start=start):
            marker = "> " if i == self.selected_index and self._focused else "  "
            name = entry.name + ("/" if entry.is_dir else "")
            if not self.is_selectable(entry):
                name += " (not selectable)"
            lines.append(marker + name)
        return "\n".join(lines)
