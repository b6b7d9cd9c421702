"""Session controller: the wizard's state machine.

The controller runs on the host's single event-processing path. Every message
goes through ``update``, which mutates the controller's own state, and returns
a frozen snapshot for rendering plus at most one command (possibly a batch)
for the host to run. Commands come back later as messages.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from .assistant import context_turn, opening_turn, seed_turn
from .commands import Command, CommandDispatcher, batch
from .config import UIConfig
from .export import export_draft_markdown, get_draft_path
from .messages import (
    AiFailed,
    AiReplyReady,
    CommandFailed,
    DirectoryListed,
    DraftSaved,
    FileContentReady,
    FileReadFailed,
    FileSelected,
    Key,
    KeyEvent,
    Message,
    Resized,
)
from .models import ConversationLog, Phase, Role, SessionContext, Stage, Turn
from .widgets import FileBrowser, LineInput, TextBox, Viewport

logger = logging.getLogger(__name__)

# Default trace collaborator: swallows everything
NULL_TRACE = logging.getLogger(f"{__name__}.null")
NULL_TRACE.addHandler(logging.NullHandler())
NULL_TRACE.propagate = False
NULL_TRACE.disabled = True

VIEWPORT_HINT = "Press 'Enter' to send a message to the assistant"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the controller after one update."""

    stage: Stage
    job_description: str
    reference_document: str
    selected_file: str
    turns: tuple[Turn, ...]
    text_box: str
    file_browser: str
    viewport: str
    line_input: str
    viewport_at_bottom: bool
    saved_draft: str | None = None
    fatal_error: str | None = None

    @property
    def phase(self) -> Phase:
        return self.stage.phase

    @property
    def terminated(self) -> bool:
        return self.stage is Stage.TERMINATED


class SessionController:
    """Owns the session context, the conversation log and the current stage."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        ui: UIConfig | None = None,
        drafts_dir: Path | str | None = None,
        trace: logging.Logger | None = None,
    ) -> None:
        ui = ui or UIConfig()
        self._dispatcher = dispatcher
        self._drafts_dir = Path(drafts_dir) if drafts_dir else Path.home() / "cover-letters"
        self._trace = trace or NULL_TRACE

        self._stage = Stage.AWAITING_DESCRIPTION
        self._context = SessionContext()
        self._log = ConversationLog(seed_turn())
        self._selected_file = ""
        self._briefing: Turn | None = None  # Context sent with every follow-up
        self._pending_prompt: Turn | None = None  # Set while an AI exchange is in flight
        self._failed_prompt: Turn | None = None  # Last exchange that failed, for retry
        self._file_read_in_flight = False
        self._saved_draft: str | None = None
        self._fatal_error: str | None = None

        self.text_box = TextBox(
            placeholder="Paste the job description here...",
            char_limit=ui.description_char_limit,
        )
        self.text_box.focus()
        self.line_input = LineInput(
            placeholder="message to assistant...",
            char_limit=ui.message_char_limit,
        )
        self.viewport = Viewport(width=80, height=20)
        self.viewport.set_content(VIEWPORT_HINT)
        self.file_browser = FileBrowser(
            start_dir=Path(ui.start_dir) if ui.start_dir else Path.cwd(),
            allowed_suffixes=tuple(ui.allowed_suffixes),
            show_hidden=ui.show_hidden,
        )

    # --- Read-only state ---

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def phase(self) -> Phase:
        return self._stage.phase

    @property
    def context(self) -> SessionContext:
        return replace(self._context)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self._log.transcript()

    @property
    def selected_file(self) -> str:
        return self._selected_file

    @property
    def ai_in_flight(self) -> bool:
        return self._pending_prompt is not None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            stage=self._stage,
            job_description=self._context.job_description,
            reference_document=self._context.reference_document,
            selected_file=self._selected_file,
            turns=self._log.transcript(),
            text_box=self.text_box.render(),
            file_browser=self.file_browser.render(),
            viewport=self.viewport.render(),
            line_input=self.line_input.render(),
            viewport_at_bottom=self.viewport.at_bottom,
            saved_draft=self._saved_draft,
            fatal_error=self._fatal_error,
        )

    # --- Event loop entry points ---

    def init(self) -> Command | None:
        """Commands to run before the first message arrives."""
        return self.file_browser.init()

    def update(self, message: Message) -> tuple[SessionSnapshot, Command | None]:
        if self._stage is Stage.TERMINATED:
            self._trace.debug(f"Ignoring {type(message).__name__} after termination")
            return self.snapshot(), None

        self._trace.debug(f"msg: {type(message).__name__} in {self._stage.value}")

        # Always-live widgets first so cursor and scroll state never lag
        self.line_input, input_cmd = self.line_input.update(message)
        self.viewport, viewport_cmd = self.viewport.update(message)

        consumed, cmd = self._interpret(message)
        if self._stage is Stage.TERMINATED:
            return self.snapshot(), None
        if not consumed:
            cmd = batch(cmd, self._update_scoped_widgets(message))

        return self.snapshot(), batch(input_cmd, viewport_cmd, cmd)

    def _interpret(self, message: Message) -> tuple[bool, Command | None]:
        """Apply stage transitions. Returns (consumed, command)."""
        if isinstance(message, KeyEvent):
            return self._on_key(message)
        if isinstance(message, FileSelected):
            return True, self._on_file_selected(message.path)
        if isinstance(message, FileContentReady):
            return True, self._on_file_content(message)
        if isinstance(message, FileReadFailed):
            self._terminate(f"Unable to read {message.path}: {message.reason}")
            return True, None
        if isinstance(message, AiReplyReady):
            self._on_ai_reply(message.turn)
            return True, None
        if isinstance(message, AiFailed):
            self._on_ai_failed(message.reason)
            return True, None
        if isinstance(message, DraftSaved):
            self._saved_draft = message.path
            return True, None
        if isinstance(message, CommandFailed):
            self._terminate(f"{message.command} failed: {message.reason}")
            return True, None
        if isinstance(message, (DirectoryListed, Resized)):
            return False, None
        raise TypeError(f"Unhandled message type: {type(message).__name__}")

    def _update_scoped_widgets(self, message: Message) -> Command | None:
        """Update widgets that only live during their own stage."""
        text_box_cmd = browser_cmd = None
        if self._stage is Stage.AWAITING_DESCRIPTION:
            self.text_box, text_box_cmd = self.text_box.update(message)
        if self._stage.phase is Phase.SETUP:
            self.file_browser, browser_cmd = self.file_browser.update(message)
        return batch(text_box_cmd, browser_cmd)

    # --- Keys ---

    def _on_key(self, event: KeyEvent) -> tuple[bool, Command | None]:
        key = event.key

        if key is Key.INTERRUPT:
            self._terminate()
            return True, None

        if key is Key.CANCEL:
            if self._stage is Stage.AWAITING_DESCRIPTION and self.text_box.focused:
                self._capture_description()
                return True, None
            self._terminate()
            return True, None

        if key is Key.ACCEPT:
            if self._stage is Stage.AWAITING_DESCRIPTION and self.text_box.focused:
                self._capture_description()
                return True, None
            if self._stage is Stage.FINISHED:
                self._terminate()
                return True, None
            if self._stage.phase is Phase.CHAT and self.line_input.focused:
                return True, self._submit()
            # Let the file browser have it
            return False, None

        if key is Key.FINISH and self._stage is Stage.AWAITING_TURN:
            return True, self._finish()

        return False, None

    def _capture_description(self) -> None:
        description = self.text_box.value.strip()
        if not description:
            self._trace.debug("  empty job description, staying put")
            return
        self.text_box.blur()
        self._context.set_job_description(description)
        self._stage = Stage.AWAITING_FILE
        self.file_browser.focus()

    def _submit(self) -> Command | None:
        if self._stage is Stage.AWAITING_REPLY:
            self._trace.debug("  reply pending, rejecting submission")
            return None

        text = self.line_input.value
        if not text.strip():
            if self._failed_prompt is not None:
                self._trace.debug("  retrying failed exchange")
                return self._issue_exchange(self._failed_prompt)
            return None

        self._log.append(Turn(Role.USER, text))
        self.line_input.reset()
        self._refresh_transcript()
        return self._issue_exchange(self._briefing)

    def _finish(self) -> Command | None:
        if self._log.last(Role.ASSISTANT) is None:
            self._trace.debug("  nothing to save yet")
            return None
        self._stage = Stage.FINISHED
        self.line_input.blur()
        content = export_draft_markdown(self._context, self._log.transcript())
        return self._dispatcher.issue_draft_save(get_draft_path(self._drafts_dir), content)

    # --- Resolved commands ---

    def _on_file_selected(self, path: str) -> Command | None:
        if self._stage is not Stage.AWAITING_FILE or self._selected_file:
            self._trace.debug(f"  ignoring selection of {path}")
            return None
        self._selected_file = path
        self._file_read_in_flight = True
        self.file_browser.blur()
        self._stage = Stage.LOADING_FILE
        return self._dispatcher.issue_file_read(path)

    def _on_file_content(self, message: FileContentReady) -> Command | None:
        if not self._file_read_in_flight:
            self._trace.debug(f"  stale file content for {message.path}")
            return None
        self._file_read_in_flight = False

        if not message.content.strip():
            self._terminate(f"Unable to use {message.path}: file is empty")
            return None

        self._context.set_reference_document(message.content)
        job_description = self._context.job_description
        self._briefing = context_turn(job_description, message.content)
        self.line_input.focus()
        return self._issue_exchange(opening_turn(job_description, message.content))

    def _issue_exchange(self, prompt: Turn | None) -> Command | None:
        if prompt is None:
            return None
        if self._pending_prompt is not None:
            self._trace.debug("  exchange already in flight")
            return None
        self._pending_prompt = prompt
        self._failed_prompt = None
        self._stage = Stage.AWAITING_REPLY
        return self._dispatcher.issue_ai_exchange(prompt, self._log.snapshot_for_transmission())

    def _on_ai_reply(self, reply: Turn) -> None:
        if self._pending_prompt is None:
            self._trace.debug("  stale reply, dropping")
            return
        self._pending_prompt = None
        self._log.append(Turn(Role.ASSISTANT, reply.content))
        self._stage = Stage.AWAITING_TURN
        self._refresh_transcript()

    def _on_ai_failed(self, reason: str) -> None:
        if self._pending_prompt is None:
            self._trace.debug("  stale failure, dropping")
            return
        logger.warning(f"Assistant reply failed: {reason}")
        self._failed_prompt = self._pending_prompt
        self._pending_prompt = None
        self._log.append(Turn(
            Role.SYSTEM,
            f"The assistant could not reply ({reason}). Press Enter on an empty line to retry.",
            notice=True,
        ))
        self._stage = Stage.AWAITING_TURN
        self._refresh_transcript()

    # --- Helpers ---

    def _refresh_transcript(self) -> None:
        self.viewport.set_content(self._log.render() or VIEWPORT_HINT)
        self.viewport.goto_bottom()

    def _terminate(self, reason: str | None = None) -> None:
        if reason:
            logger.error(reason)
        self._trace.debug(f"  terminating from {self._stage.value}")
        self._stage = Stage.TERMINATED
        self._fatal_error = reason
        self.text_box.blur()
        self.line_input.blur()
        self.file_browser.blur()
