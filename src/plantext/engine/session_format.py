# src/plantext/engine/session_format.py

"""
Session (time-log entry) <-> editable text.

Layout:

    ## Session
    Start: YYYY-MM-DD HH:MM
    End:   YYYY-MM-DD HH:MM
    Type:  <session_type>
    Planned Duration (min): N

    ## Productivity Metrics
    ## Notes
    ## Interruptions (minutes: N)
    ## Deliverables
    ## Defects            (### Found / ### Fixed)
    ## Blockers
    ## Retrospective      (### What Went Well / ...)
    ## Tasks              (one "- <task id>" per line)

Timestamps are shown to the minute and stored as "YYYY-MM-DDTHH:MM:00Z";
values of any other shape pass through unchanged.
"""

import re
from typing import Final, Iterable, Optional

from .grammar import (
    Section,
    banner_title,
    canonical_lines,
    finalize_section,
    format_heading,
    heading,
    heading_title,
    split_lines,
    split_sections,
)
from .model import Defects, EnergyLevel, Retrospective, Session, int_value


# ---------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------

SESSION: Final[str] = "Session"
METRICS: Final[str] = "Productivity Metrics"
NOTES: Final[str] = "Notes"
INTERRUPTIONS: Final[str] = "Interruptions"
DELIVERABLES: Final[str] = "Deliverables"
DEFECTS: Final[str] = "Defects"
BLOCKERS: Final[str] = "Blockers"
RETROSPECTIVE: Final[str] = "Retrospective"
TASKS: Final[str] = "Tasks"

SECTIONS: Final[tuple[str, ...]] = (
    SESSION,
    METRICS,
    NOTES,
    DELIVERABLES,
    DEFECTS,
    BLOCKERS,
    RETROSPECTIVE,
    TASKS,
)

DEFECT_PARTS: Final[tuple[tuple[str, str], ...]] = (
    ("Found", "found"),
    ("Fixed", "fixed"),
)
RETRO_PARTS: Final[tuple[tuple[str, str], ...]] = (
    ("What Went Well", "what_went_well"),
    ("What Needs Improvement", "what_needs_improvement"),
    ("Lessons Learned", "lessons_learned"),
)

_INTERRUPTIONS_RE = re.compile(r"^Interruptions(?:\s*\(minutes:\s*(\d+)\))?$", re.IGNORECASE)
_FIELD_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ]*?)\s*(?:\([^)]*\))?\s*:\s*(.*)$")
_TASK_ITEM_RE = re.compile(r"^\s*-\s*(.*)$")

_DISPLAY_TS_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2})")
_INPUT_TS_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2})$")


# ---------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------

def format_timestamp(timestamp: str) -> str:
    """ "2024-01-15T09:00:00Z" -> "2024-01-15 09:00"; other shapes unchanged."""
    if not timestamp:
        return ""
    m = _DISPLAY_TS_RE.match(timestamp)
    if m:
        return f"{m.group(1)} {m.group(2)}"
    return timestamp


def parse_timestamp(text: str) -> str:
    """ "2024-01-15 09:00" -> "2024-01-15T09:00:00Z"; other shapes unchanged."""
    text = text.strip()
    if not text:
        return ""
    m = _INPUT_TS_RE.match(text)
    if m:
        return f"{m.group(1)}T{m.group(2)}:00Z"
    return text


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def session_to_text(session: Session) -> str:
    lines: list[str] = [
        format_heading(2, SESSION),
        f"Start: {format_timestamp(session.start_timestamp)}".rstrip(),
        f"End:   {format_timestamp(session.end_timestamp)}".rstrip(),
        f"Type:  {session.session_type}".rstrip(),
        f"Planned Duration (min): {session.planned_duration_minutes}",
        "",
        format_heading(2, METRICS),
        f"Focus Rating (1-5): {session.focus_rating}",
        f"Energy Level Start (1-5): {session.energy_level.start}",
        f"Energy Level End (1-5): {session.energy_level.end}",
        f"Context Switches: {session.context_switches}",
    ]

    _section(lines, 2, NOTES, session.notes)
    _section(
        lines,
        2,
        f"{INTERRUPTIONS} (minutes: {session.interruption_minutes})",
        session.interruptions,
    )
    _section(lines, 2, DELIVERABLES, session.deliverables)

    _section(lines, 2, DEFECTS, "")
    for title, attr in DEFECT_PARTS:
        _section(lines, 3, title, getattr(session.defects, attr))

    _section(lines, 2, BLOCKERS, session.blockers)

    _section(lines, 2, RETROSPECTIVE, "")
    for title, attr in RETRO_PARTS:
        _section(lines, 3, title, getattr(session.retrospective, attr))

    _section(lines, 2, TASKS, "\n".join(f"- {tid}" for tid in session.tasks))

    return "\n".join(lines) + "\n"


def text_to_session(text: str) -> Session:
    """
    Parse edited session text.

    Unknown sections are kept: their header and body are appended to the
    session notes.
    """
    session = Session()
    notes: list[str] = []

    for section in split_sections(split_lines(text), _classify):
        name = section.name

        if name is None:
            notes.append(section.text)
        elif name == SESSION:
            _parse_header_fields(section.lines, session)
        elif name == METRICS:
            _parse_metrics(section.lines, session)
        elif name == NOTES:
            notes.append(section.text)
        elif name == INTERRUPTIONS:
            session.interruption_minutes = int_value(section.subsection or 0)
            session.interruptions = section.text
        elif name == DELIVERABLES:
            session.deliverables = section.text
        elif name == DEFECTS:
            values, rest = _split_parts(section.lines, DEFECT_PARTS)
            session.defects = Defects(**values)
            notes.append(rest)
        elif name == BLOCKERS:
            session.blockers = section.text
        elif name == RETROSPECTIVE:
            values, rest = _split_parts(section.lines, RETRO_PARTS)
            session.retrospective = Retrospective(**values)
            notes.append(rest)
        elif name == TASKS:
            session.tasks = _parse_task_ids(section.lines)
        else:
            notes.append(_with_title(section))

    session.notes = "\n\n".join(n for n in notes if n)
    return session


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _section(lines: list[str], level: int, title: str, body: str) -> None:
    if lines and lines[-1] != "":
        lines.append("")
    lines.append(format_heading(level, title))
    body_lines = canonical_lines(body)
    if body_lines:
        lines.append("")
        lines.extend(body_lines)


def _classify(line: str) -> Optional[tuple[str, Optional[str]]]:
    title = heading_title(line, 2)
    if title is None:
        title = banner_title(line)
    if title is None:
        h = heading(line)
        # a stray H1 still closes the current section
        return ("other", h[1]) if h is not None and h[0] == 1 else None

    m = _INTERRUPTIONS_RE.match(title)
    if m:
        return INTERRUPTIONS, m.group(1) or "0"

    for name in SECTIONS:
        if title.casefold() == name.casefold():
            return name, None
    return "other", title


def _fields(lines: Iterable[str]) -> dict[str, str]:
    """ "Focus Rating (1-5): 4" -> {"focus rating": "4"}."""
    out: dict[str, str] = {}
    for line in lines:
        m = _FIELD_RE.match(line)
        if m:
            out[m.group(1).strip().casefold()] = m.group(2).strip()
    return out


def _parse_header_fields(lines: Iterable[str], session: Session) -> None:
    f = _fields(lines)
    session.start_timestamp = parse_timestamp(f.get("start", ""))
    session.end_timestamp = parse_timestamp(f.get("end", ""))
    session.session_type = f.get("type", "")
    session.planned_duration_minutes = int_value(f.get("planned duration"))


def _parse_metrics(lines: Iterable[str], session: Session) -> None:
    f = _fields(lines)
    session.focus_rating = int_value(f.get("focus rating"))
    session.energy_level = EnergyLevel(
        start=int_value(f.get("energy level start")),
        end=int_value(f.get("energy level end")),
    )
    session.context_switches = int_value(f.get("context switches"))


def _split_parts(
    lines: Iterable[str],
    parts: tuple[tuple[str, str], ...],
) -> tuple[dict[str, str], str]:
    """Split a section at its H3 parts; returns ({attr: text}, prose before the first part)."""
    lookup = {title.casefold(): attr for title, attr in parts}

    def classify(line: str) -> Optional[tuple[str, Optional[str]]]:
        title = heading_title(line, 3)
        if title is None:
            return None
        attr = lookup.get(title.casefold())
        return (attr, None) if attr else ("other", title)

    values: dict[str, str] = {}
    rest: list[str] = []
    for section in split_sections(lines, classify):
        if section.name is None:
            rest.append(section.text)
        elif section.name == "other":
            rest.append(_with_title(section))
        else:
            values[section.name] = section.text

    return values, "\n\n".join(r for r in rest if r)


def _with_title(section: Section) -> str:
    return finalize_section([section.subsection or "", *section.lines])


def _parse_task_ids(lines: Iterable[str]) -> list[str]:
    ids: list[str] = []
    for line in lines:
        m = _TASK_ITEM_RE.match(line)
        task_id = (m.group(1) if m else line).strip()
        if task_id:
            ids.append(task_id)
    return ids

