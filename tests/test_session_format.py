# tests/test_session_format.py

import pytest

from plantext.engine.model import Defects, EnergyLevel, Retrospective, Session
from plantext.engine.session_format import (
    format_timestamp,
    parse_timestamp,
    session_to_text,
    text_to_session,
)


def _full_session() -> Session:
    return Session(
        start_timestamp="2024-01-15T09:00:00Z",
        end_timestamp="2024-01-15T11:30:00Z",
        notes="Good run.",
        interruptions="- Slack ping",
        interruption_minutes=10,
        tasks=["1.1.2", "1.2"],
        session_type="coding",
        planned_duration_minutes=120,
        focus_rating=4,
        energy_level=EnergyLevel(start=3, end=2),
        context_switches=1,
        defects=Defects(found="- NPE on submit", fixed="- NPE on submit"),
        deliverables="- Login form",
        blockers="- Waiting on API keys",
        retrospective=Retrospective(
            what_went_well="- Focus",
            what_needs_improvement="- Breaks",
            lessons_learned="- Plan first",
        ),
    )


class TestTimestamps:
    def test_display_form(self):
        assert format_timestamp("2024-01-15T09:00:00Z") == "2024-01-15 09:00"
        assert format_timestamp("") == ""
        assert format_timestamp("yesterday") == "yesterday"

    def test_input_form(self):
        assert parse_timestamp("2024-01-15 09:00") == "2024-01-15T09:00:00Z"
        assert parse_timestamp("  ") == ""
        assert parse_timestamp("soon") == "soon"


class TestSessionText:
    def test_layout(self):
        text = session_to_text(_full_session())
        assert text.startswith("## Session\nStart: 2024-01-15 09:00\nEnd:   2024-01-15 11:30\n")
        assert "## Interruptions (minutes: 10)" in text
        assert "### What Went Well" in text
        assert "## Tasks\n\n- 1.1.2\n- 1.2\n" in text

    def test_round_trip(self):
        session = _full_session()
        assert text_to_session(session_to_text(session)) == session

    def test_empty_session_round_trip(self):
        text = session_to_text(Session())
        assert text_to_session(text) == Session()
        assert session_to_text(text_to_session(text)) == text

    def test_open_session(self):
        parsed = text_to_session(session_to_text(Session(start_timestamp="2024-01-15T09:00:00Z")))
        assert parsed.is_open

    def test_unknown_section_goes_to_notes(self):
        text = session_to_text(Session(notes="base")) + "\n## Mood\n\nsunny\n"
        assert text_to_session(text).notes == "base\n\nMood\n\nsunny"

    def test_tasks_without_bullets(self):
        parsed = text_to_session("## Tasks\n1.1\n- 1.2\n\n")
        assert parsed.tasks == ["1.1", "1.2"]

    def test_banner_headers(self):
        text = "── Session ──\nStart: 2024-01-15 09:00\n── Notes ──\nhello\n"
        parsed = text_to_session(text)
        assert parsed.start_timestamp == "2024-01-15T09:00:00Z"
        assert parsed.notes == "hello"

    def test_odd_timestamps_pass_through(self):
        text = "## Session\nStart: after lunch\n"
        assert text_to_session(text).start_timestamp == "after lunch"

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400", "lots"])
    def test_unusable_metric_values_read_as_zero(self, value):
        text = f"## Productivity Metrics\nFocus Rating (1-5): {value}\nContext Switches: {value}\n"
        parsed = text_to_session(text)
        assert parsed.focus_rating == 0
        assert parsed.context_switches == 0

    def test_fractional_metric_is_truncated(self):
        parsed = text_to_session("## Productivity Metrics\nFocus Rating (1-5): 4.0\n")
        assert parsed.focus_rating == 4
