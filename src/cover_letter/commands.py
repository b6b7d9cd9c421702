"""Deferred side effects and the dispatcher that runs them.

A command captures everything it needs when it is issued and resolves to
exactly one message when executed. The controller never executes commands
itself; the host hands them to ``CommandDispatcher.submit``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .assistant import AssistantError
from .messages import (
    AiFailed,
    AiReplyReady,
    CommandFailed,
    DirectoryEntry,
    DirectoryListed,
    DraftSaved,
    FileContentReady,
    FileReadFailed,
    Message,
)
from .models import Turn

logger = logging.getLogger(__name__)


class Conversant(Protocol):
    """Anything that can answer a conversation (see ``Assistant``)."""

    def converse(self, system_prompt: Turn, history: Sequence[Turn]) -> Turn: ...


class Command(ABC):
    """A unit of deferred work that resolves to one message."""

    # Blocking commands run on a worker thread; the rest run inline.
    blocking = True

    @abstractmethod
    def execute(self) -> Message:
        ...

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Emit(Command):
    """Deliver a message without doing any I/O."""

    message: Message
    blocking = False

    def execute(self) -> Message:
        return self.message


@dataclass(frozen=True)
class ListDirectory(Command):
    path: Path
    show_hidden: bool = False

    def execute(self) -> Message:
        try:
            children = list(self.path.iterdir())
        except OSError as e:
            logger.debug(f"Listing {self.path} failed: {e}")
            return DirectoryListed(self.path, error=e.strerror or str(e))

        entries = []
        for child in children:
            if not self.show_hidden and child.name.startswith("."):
                continue
            try:
                is_dir = child.is_dir()
            except OSError:
                continue
            entries.append(DirectoryEntry(child.name, is_dir))
        # Directories first, then files, each alphabetical
        entries.sort(key=lambda e: (not e.is_dir, e.name.lower()))
        return DirectoryListed(self.path, tuple(entries))


@dataclass(frozen=True)
class ReadFile(Command):
    path: str

    def execute(self) -> Message:
        try:
            content = Path(self.path).read_bytes().decode("utf-8")
        except FileNotFoundError:
            return FileReadFailed(self.path, "unable to find the file")
        except UnicodeDecodeError:
            return FileReadFailed(self.path, "file is not valid UTF-8 text")
        except OSError as e:
            return FileReadFailed(self.path, e.strerror or str(e))
        return FileContentReady(self.path, content)


@dataclass(frozen=True)
class AiExchange(Command):
    """One round trip to the assistant with a frozen copy of the log."""

    assistant: Conversant
    prompt: Turn
    history: tuple[Turn, ...]

    def execute(self) -> Message:
        try:
            reply = self.assistant.converse(self.prompt, self.history)
        except AssistantError as e:
            logger.warning(f"Assistant exchange failed: {e.reason}")
            return AiFailed(e.reason)
        return AiReplyReady(reply)


@dataclass(frozen=True)
class SaveDraft(Command):
    path: Path
    content: str

    def execute(self) -> Message:
        # Save errors resolve with an empty path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self.content)
        except OSError as e:
            logger.warning(f"Failed to save draft to {self.path}: {e}")
            return DraftSaved("")
        return DraftSaved(str(self.path))


@dataclass(frozen=True)
class Batch(Command):
    commands: tuple[Command, ...]
    blocking = False

    def execute(self) -> Message:
        raise TypeError("Batch commands are flattened by the dispatcher, not executed")

    def __iter__(self) -> Iterator[Command]:
        for command in self.commands:
            if isinstance(command, Batch):
                yield from command
            else:
                yield command


def batch(*commands: Command | None) -> Command | None:
    """Combine commands, dropping ``None``. Returns ``None`` if nothing is left."""
    present = tuple(c for c in commands if c is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return Batch(present)


def flatten(command: Command | None) -> list[Command]:
    if command is None:
        return []
    if isinstance(command, Batch):
        return list(command)
    return [command]


class CommandDispatcher:
    """Issues commands and runs them off the event-processing path."""

    def __init__(self, assistant: Conversant, max_workers: int = 4):
        self.assistant = assistant
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._in_flight: set[Future] = set()
        self._lock = threading.Lock()

    def issue_file_read(self, path: str) -> ReadFile:
        return ReadFile(path)

    def issue_ai_exchange(self, prompt: Turn, snapshot: tuple[Turn, ...]) -> AiExchange:
        return AiExchange(self.assistant, prompt, tuple(snapshot))

    def issue_directory_listing(self, path: Path, show_hidden: bool = False) -> ListDirectory:
        return ListDirectory(path, show_hidden)

    def issue_draft_save(self, path: Path, content: str) -> SaveDraft:
        return SaveDraft(path, content)

    def submit(self, command: Command | None, post: Callable[[Message], None]) -> None:
        """Run ``command`` and pass its resolved message to ``post``.

        ``post`` is called from a worker thread for blocking commands, so it
        must be thread-safe.
        """
        for cmd in flatten(command):
            if cmd.blocking:
                future = self._executor.submit(self._run, cmd, post)
                with self._lock:
                    self._in_flight.add(future)
                future.add_done_callback(self._forget)
            else:
                self._run(cmd, post)

    def _run(self, command: Command, post: Callable[[Message], None]) -> None:
        try:
            message = command.execute()
        except Exception as e:
            logger.exception(f"Command {command.describe()} crashed")
            message = CommandFailed(command.describe(), f"{type(e).__name__}: {e}")
        post(message)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._in_flight.discard(future)

    @property
    def busy(self) -> bool:
        """True while a blocking command is still running or queued."""
        with self._lock:
            return any(not f.done() for f in self._in_flight)

    def shutdown(self) -> None:
        """Shutdown the executor, cancelling pending tasks."""
        self._executor.shutdown(wait=False, cancel_futures=True)
