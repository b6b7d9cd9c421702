"""Tests for cover_letter.view."""

from dataclasses import replace

import pytest

from cover_letter.controller import SessionSnapshot
from cover_letter.models import Stage
from cover_letter.view import UnhandledStageError, compose_view


def _snapshot(stage: Stage, **overrides) -> SessionSnapshot:
    snap = SessionSnapshot(
        stage=stage,
        job_description="Senior Engineer role",
        reference_document="5 years Go",
        selected_file="/home/me/resume.txt",
        turns=(),
        text_box="┃ TEXT-BOX",
        file_browser="BROWSER",
        viewport="VIEWPORT",
        line_input="> INPUT",
        viewport_at_bottom=True,
    )
    return replace(snap, **overrides)


class TestComposeView:
    def test_awaiting_description(self):
        view = compose_view(_snapshot(Stage.AWAITING_DESCRIPTION))
        assert view.startswith("Let's make your cover letter!")
        assert "┃ TEXT-BOX" in view
        assert "press 'Enter' (or 'Escape') when finished" in view

    def test_awaiting_file(self):
        view = compose_view(_snapshot(Stage.AWAITING_FILE))
        assert "Select a file where you give your work experience." in view
        assert "BROWSER" in view
        assert "'Senior Engineer role'" in view

    def test_long_description_is_previewed(self):
        view = compose_view(_snapshot(Stage.AWAITING_FILE, job_description="word " * 200))
        preview_line = [line for line in view.splitlines() if line.startswith("job description:")][0]
        assert preview_line.endswith("...'")
        assert len(preview_line) < 250

    def test_loading_file(self):
        assert "Reading /home/me/resume.txt..." in compose_view(_snapshot(Stage.LOADING_FILE))

    def test_awaiting_turn(self):
        view = compose_view(_snapshot(Stage.AWAITING_TURN))
        lines = view.splitlines()
        assert lines[0] == "VIEWPORT"
        assert "Ctrl+D" in lines[1]
        assert lines[2] == "> INPUT"

    def test_awaiting_reply_shows_typing(self):
        view = compose_view(_snapshot(Stage.AWAITING_REPLY))
        assert "Assistant is typing..." in view
        assert "> INPUT" in view

    def test_finished_states(self):
        assert "Saving your draft..." in compose_view(_snapshot(Stage.FINISHED))
        saved = compose_view(_snapshot(Stage.FINISHED, saved_draft="/tmp/letter.md"))
        assert "Good luck on the application!" in saved
        assert "Draft saved to /tmp/letter.md" in saved
        assert "could not be saved" in compose_view(_snapshot(Stage.FINISHED, saved_draft=""))

    def test_terminated(self):
        assert compose_view(_snapshot(Stage.TERMINATED)) == ""
        failed = _snapshot(Stage.TERMINATED, fatal_error="Unable to read x: unable to find the file")
        assert compose_view(failed) == "Unable to read x: unable to find the file"

    def test_every_stage_has_a_view(self):
        for stage in Stage:
            assert isinstance(compose_view(_snapshot(stage)), str)

    def test_unknown_stage_raises(self):
        with pytest.raises(UnhandledStageError) as excinfo:
            compose_view(_snapshot("bogus"))
        assert excinfo.value.stage == "bogus"

    def test_pure(self):
        snap = _snapshot(Stage.AWAITING_TURN)
        assert compose_view(snap) == compose_view(snap)
        assert snap == _snapshot(Stage.AWAITING_TURN)
