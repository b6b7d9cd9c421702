"""Textual host loop for the cover letter wizard."""

from __future__ import annotations

from rich.text import Text as RichText
from textual import events, on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import Static

from .commands import Command, CommandDispatcher
from .controller import SessionController, SessionSnapshot
from .messages import Key, KeyEvent, Resized
from .messages import Message as SessionMessage
from .view import compose_view

# Textual key name -> controller key
KEY_MAP = {
    "enter": Key.ACCEPT,
    "escape": Key.CANCEL,
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "backspace": Key.BACKSPACE,
    "pageup": Key.PAGE_UP,
    "pagedown": Key.PAGE_DOWN,
    "ctrl+j": Key.NEWLINE,
    "shift+enter": Key.NEWLINE,
    "ctrl+d": Key.FINISH,
}

CSS = """
Screen {
    padding: 0 1;
}

#screen {
    width: 1fr;
    height: 1fr;
}
"""


def translate_key(key: str, character: str | None, is_printable: bool) -> KeyEvent | None:
    """Map a Textual key press onto a controller ``KeyEvent``."""
    if key in KEY_MAP:
        return KeyEvent(KEY_MAP[key])
    if is_printable and character:
        return KeyEvent.typed(character)
    return None


class CoverLetterApp(App):
    """Feeds terminal events into the session controller and shows its view."""

    CSS = CSS

    BINDINGS = [
        Binding("ctrl+c", "interrupt", "Quit", priority=True, show=False),
        Binding("ctrl+q", "interrupt", "Quit", priority=True, show=False),
    ]

    # Custom message for thread-safe delivery of resolved commands
    class Resolved(Message):
        """Posted when a command resolves, possibly from a worker thread."""
        def __init__(self, message: SessionMessage) -> None:
            super().__init__()
            self.message = message

    def __init__(self, controller: SessionController, dispatcher: CommandDispatcher) -> None:
        super().__init__()
        self.controller = controller
        self.dispatcher = dispatcher
        self.fatal_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Static(id="screen")

    def on_mount(self) -> None:
        self._dispatch(self.controller.init())
        self._render(self.controller.snapshot())

    def on_unmount(self) -> None:
        self.dispatcher.shutdown()

    def on_resize(self, event: events.Resize) -> None:
        self.feed(Resized(event.size.width, event.size.height))

    def on_key(self, event: events.Key) -> None:
        key_event = translate_key(event.key, event.character, event.is_printable)
        if key_event is None:
            return
        event.stop()
        event.prevent_default()
        self.feed(key_event)

    def on_paste(self, event: events.Paste) -> None:
        event.stop()
        self.feed(KeyEvent.typed(event.text))

    def action_interrupt(self) -> None:
        self.feed(KeyEvent(Key.INTERRUPT))

    def _post(self, message: SessionMessage) -> None:
        """Called from worker threads - post message for thread safety."""
        self.post_message(self.Resolved(message))

    @on(Resolved)
    def handle_resolved(self, message: Resolved) -> None:
        """Handle a resolved command on the main thread."""
        self.feed(message.message)

    def feed(self, message: SessionMessage) -> None:
        """Run one controller tick and act on the result."""
        snapshot, command = self.controller.update(message)
        self._dispatch(command)
        self._render(snapshot)
        if snapshot.terminated:
            self.fatal_error = snapshot.fatal_error
            self.exit(return_code=1 if snapshot.fatal_error else 0)

    def _dispatch(self, command: Command | None) -> None:
        if command is not None:
            self.dispatcher.submit(command, self._post)

    def _render(self, snapshot: SessionSnapshot) -> None:
        try:
            self.query_one("#screen", Static).update(RichText(compose_view(snapshot)))
        except NoMatches:
            pass
