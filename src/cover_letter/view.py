"""View composer: turns a session snapshot into screen text."""

from .controller import SessionSnapshot
from .models import Stage

# Job descriptions can be long; the file step only needs a reminder
DESCRIPTION_PREVIEW_CHARS = 200


class UnhandledStageError(RuntimeError):
    """Raised when a stage has no screen."""

    def __init__(self, stage: object) -> None:
        super().__init__(f"no view for stage {stage!r}")
        self.stage = stage


def _preview(text: str, max_len: int = DESCRIPTION_PREVIEW_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def compose_view(snapshot: SessionSnapshot) -> str:
    """Render the screen for ``snapshot``. Pure; never mutates anything."""
    stage = snapshot.stage

    if stage is Stage.AWAITING_DESCRIPTION:
        return (
            "Let's make your cover letter!\n"
            "Paste in the job description below 👇\n\n"
            f"{snapshot.text_box}\n\n"
            "press 'Enter' (or 'Escape') when finished"
        )

    if stage is Stage.AWAITING_FILE:
        return (
            "\n\nSelect a file where you give your work experience.\n\n"
            f"{snapshot.file_browser}\n\n"
            f"job description: {_preview(snapshot.job_description)!r}\n"
        )

    if stage is Stage.LOADING_FILE:
        return f"\n\nReading {snapshot.selected_file}..."

    if stage is Stage.AWAITING_TURN:
        return (
            f"{snapshot.viewport}\n"
            "Enter: send · ↑/↓: scroll · Ctrl+D: done\n"
            f"{snapshot.line_input}\n"
        )

    if stage is Stage.AWAITING_REPLY:
        return (
            f"{snapshot.viewport}\n"
            "Assistant is typing...\n"
            f"{snapshot.line_input}\n"
        )

    if stage is Stage.FINISHED:
        if snapshot.saved_draft is None:
            saved = "Saving your draft..."
        elif snapshot.saved_draft:
            saved = f"Draft saved to {snapshot.saved_draft}"
        else:
            saved = "The draft could not be saved."
        return f"Good luck on the application!\n\n{saved}\n\npress 'Enter' to exit"

    if stage is Stage.TERMINATED:
        return snapshot.fatal_error or ""

    raise UnhandledStageError(stage)
