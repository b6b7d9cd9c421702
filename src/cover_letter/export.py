"""Export the finished cover letter to Markdown."""

from datetime import datetime
from pathlib import Path

from .models import Role, SessionContext, Turn


def export_draft_markdown(context: SessionContext, turns: tuple[Turn, ...], now: datetime | None = None) -> str:
    """Render the latest draft followed by the chat transcript."""
    now = now or datetime.now()
    draft = next((t.content for t in reversed(turns) if t.role is Role.ASSISTANT), "")

    lines = [
        "# Cover Letter",
        "",
        f"- **Created**: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "## Latest Draft",
        "",
        draft,
        "",
        "## Job Description",
        "",
        context.job_description,
        "",
        "## Transcript",
        "",
    ]

    # The seed system turn is an instruction, not part of the conversation
    for turn in turns[1:]:
        if turn.role is Role.USER:
            lines.append("### You")
        elif turn.role is Role.ASSISTANT:
            lines.append("### Assistant")
        else:
            lines.append("### System")
        lines.append("")
        lines.append(turn.content)
        lines.append("")

    return "\n".join(lines)


def get_draft_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"cover-letter-{now.strftime('%Y%m%d-%H%M%S')}.md"


def get_draft_path(drafts_dir: Path, now: datetime | None = None) -> Path:
    return drafts_dir.expanduser() / get_draft_filename(now)
