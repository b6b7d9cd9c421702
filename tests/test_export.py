"""Tests for cover_letter.export."""

from datetime import datetime
from pathlib import Path

from cover_letter.export import export_draft_markdown, get_draft_filename, get_draft_path
from cover_letter.models import Role, SessionContext, Turn

NOW = datetime(2024, 3, 5, 14, 7, 9)


def _context() -> SessionContext:
    ctx = SessionContext()
    ctx.set_job_description("Senior Engineer role")
    ctx.set_reference_document("5 years Go")
    return ctx


TURNS = (
    Turn(Role.SYSTEM, "seed instructions"),
    Turn(Role.ASSISTANT, "Dear hiring manager, long draft"),
    Turn(Role.USER, "Make it shorter"),
    Turn(Role.ASSISTANT, "Dear hiring manager, short draft"),
)


def test_markdown_sections():
    md = export_draft_markdown(_context(), TURNS, now=NOW)
    assert md.startswith("# Cover Letter\n")
    assert "- **Created**: 2024-03-05 14:07:09" in md
    assert md.index("## Latest Draft") < md.index("## Job Description") < md.index("## Transcript")


def test_latest_draft_is_last_assistant_turn():
    md = export_draft_markdown(_context(), TURNS, now=NOW)
    latest = md.split("## Latest Draft")[1].split("## Job Description")[0]
    assert latest.strip() == "Dear hiring manager, short draft"


def test_transcript_skips_seed():
    md = export_draft_markdown(_context(), TURNS, now=NOW)
    transcript = md.split("## Transcript")[1]
    assert "seed instructions" not in md
    assert transcript.count("### Assistant") == 2
    assert transcript.count("### You") == 1
    assert "Make it shorter" in transcript


def test_system_error_turns_are_kept():
    turns = TURNS[:1] + (Turn(Role.SYSTEM, "The assistant could not reply (timeout)."),)
    md = export_draft_markdown(_context(), turns, now=NOW)
    assert "### System\n\nThe assistant could not reply (timeout)." in md


def test_filename():
    assert get_draft_filename(NOW) == "cover-letter-20240305-140709.md"


def test_path(tmp_path):
    assert get_draft_path(tmp_path, NOW) == tmp_path / "cover-letter-20240305-140709.md"


def test_path_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_draft_path(Path("~/letters"), NOW).parent == tmp_path / "letters"
