# src/plantext/engine/task_format.py

"""
Task <-> editable text.

Rendered layout (markdown):

    # Task: <id> - <name>

    ## Details
    ### <variant sub-header>
    ...

    ## Estimation          (Job only)
    ## Notes
    ## Tags
    ## <Custom Header>     (one per task.custom entry)

Responsibilities:
- render a Task with the vocabulary of its node type
- parse edited text back into a Task; the output of task_to_text parses
  to an equivalent Task and renders to the same text again
- route content that has no home to `notes` instead of dropping it
- accept the older banner layout ("── Details ──", bare sub-headers)

Plain fields are written unindented; bullet-text fields are written with
every line indented by two spaces and an empty one shows the "  - "
placeholder.
"""

import re
from dataclasses import dataclass
from typing import Final, Iterable, Optional, Sequence

from .grammar import (
    Section,
    banner_title,
    canonical_lines,
    capture_bullets,
    capture_freeform,
    checkbox_line,
    checked_value,
    finalize_section,
    format_heading,
    heading,
    heading_title,
    indent_block,
    key_to_header,
    label_of,
    leading_spaces,
    normalize_key,
    split_lines,
    split_sections,
)
from .model import (
    Details,
    Effort,
    Estimation,
    Milestone,
    NodeType,
    PostEstimateNotes,
    Schedule,
    Task,
    details_class,
    number,
)


# ---------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------

PLAIN: Final[str] = "plain"
BULLETS: Final[str] = "bullets"
CONTEXT: Final[str] = "context"
SCOPE: Final[str] = "scope"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One sub-header of a details variant and the field it feeds."""

    header: str
    field: str
    kind: str
    aliases: tuple[str, ...] = ()


AREA_FIELDS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("Vision / Purpose", "vision_purpose", PLAIN),
    FieldSpec("Goals / Objectives", "goals_objectives", BULLETS),
    FieldSpec("Scope / Boundaries", "scope_boundaries", BULLETS),
    FieldSpec("Key Components", "key_components", BULLETS),
    FieldSpec("Success Metrics / KPIs", "success_metrics", BULLETS, ("Success Metrics",)),
    FieldSpec("Stakeholders", "stakeholders", BULLETS),
    FieldSpec("Dependencies / Constraints", "dependencies_constraints", BULLETS),
    FieldSpec("Strategic Context", "strategic_context", PLAIN),
)

COMPONENT_FIELDS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("Purpose / What It Is", "purpose", PLAIN, ("Purpose",)),
    FieldSpec("Capabilities / Features", "capabilities", BULLETS),
    FieldSpec("Acceptance Criteria", "acceptance_criteria", BULLETS),
    FieldSpec("Architecture / Design", "architecture_design", BULLETS),
    FieldSpec("Interfaces / Integration Points", "interfaces_integration", BULLETS),
    FieldSpec("Quality Attributes", "quality_attributes", BULLETS),
    FieldSpec("Related Components", "related_components", BULLETS),
    FieldSpec("Other", "other", PLAIN),
)

JOB_FIELDS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("Context / Why", "context_why", CONTEXT),
    FieldSpec("Outcome / Definition of Done", "outcome_dod", BULLETS),
    FieldSpec("Scope", "scope", SCOPE),
    FieldSpec("Requirements / Constraints", "requirements_constraints", BULLETS),
    FieldSpec("Dependencies", "dependencies", BULLETS),
    FieldSpec("Approach (brief plan)", "approach", BULLETS, ("Approach",)),
    FieldSpec("Risks", "risks", BULLETS),
    FieldSpec("Validation / Test Plan", "validation_test_plan", BULLETS),
)

FIELDS_BY_TYPE: Final[dict[NodeType, tuple[FieldSpec, ...]]] = {
    NodeType.AREA: AREA_FIELDS,
    NodeType.COMPONENT: COMPONENT_FIELDS,
    NodeType.JOB: JOB_FIELDS,
    NodeType.FREEFORM: (),
}

SCOPE_LABELS: Final[tuple[tuple[str, str], ...]] = (
    ("In scope:", "scope_in"),
    ("Out of scope:", "scope_out"),
)

COMPLETED_LABEL: Final[str] = "Completed"
_COMPLETED_RE = re.compile(r"^\s*(?:-\s*)?\[([ xX])\]\s+Completed\s*$")

# Top-level sections
DETAILS: Final[str] = "Details"
ESTIMATION: Final[str] = "Estimation"
NOTES: Final[str] = "Notes"
TAGS: Final[str] = "Tags"
TOP_SECTIONS: Final[tuple[str, ...]] = (DETAILS, ESTIMATION, NOTES, TAGS)

_TITLE_RE = re.compile(r"^Task:\s*(.*)$")
_NAME_RE = re.compile(r"^Name:\s*(.*)$")

# Estimation
WORK_TYPES: Final[tuple[tuple[str, str], ...]] = (
    ("New work", "new_work"),
    ("Change", "change"),
    ("Bugfix", "bugfix"),
    ("Research/Spike", "research"),
)
EFFORT_METHODS: Final[tuple[tuple[str, str], ...]] = (
    ("Similar work", "similar_work"),
    ("3-point", "three_point"),
    ("Gut feel", "gut_feel"),
)
CONFIDENCE_LEVELS: Final[tuple[tuple[str, str], ...]] = (
    ("Low", "low"),
    ("Med", "med"),
    ("High", "high"),
)
POST_ESTIMATE_LABELS: Final[tuple[tuple[str, str], ...]] = (
    ("What could make this smaller?", "could_be_smaller"),
    ("What could make this bigger?", "could_be_bigger"),
    ("What did I ignore / forget last time?", "ignored_last_time"),
)

EST_TYPE: Final[str] = "Type"
EST_ASSUMPTIONS: Final[str] = "Assumptions"
EST_EFFORT: Final[str] = "Effort (hours)"
EST_CONFIDENCE: Final[str] = "Confidence"
EST_SCHEDULE: Final[str] = "Schedule"
EST_POST: Final[str] = "Post-estimate notes"

_EST_HEADERS: Final[dict[str, str]] = {
    "type": EST_TYPE,
    "assumptions": EST_ASSUMPTIONS,
    "effort (hours)": EST_EFFORT,
    "effort": EST_EFFORT,
    "confidence": EST_CONFIDENCE,
    "schedule": EST_SCHEDULE,
    "post-estimate notes": EST_POST,
}

MILESTONE_SEP: Final[str] = "—"

_BASE_RE = re.compile(r"Base effort:\s*(\d+(?:\.\d+)?)")
_BUFFER_RE = re.compile(r"Buffer:\s*(\d+(?:\.\d+)?)?\s*%?\s*(?:\(reason:\s*(.*?)\))?\s*$")
_TOTAL_RE = re.compile(r"Total:\s*(\d+(?:\.\d+)?)")
_START_RE = re.compile(r"^\s*(?:-\s*)?Start:\s*(.*)$")
_FINISH_RE = re.compile(r"^\s*(?:-\s*)?Target finish:\s*(.*)$")
_MILESTONE_ITEM_RE = re.compile(r"^\s+-\s*(.*)$")


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def task_to_text(task: Task, node_type: NodeType | str | None = None) -> str:
    """
    Render a task for editing.

    `node_type` defaults to the type of the task's details. The full
    skeleton is always written, empty sections included.
    """
    nt = _resolve_type(node_type, task.node_type)
    if not isinstance(task.details, details_class(nt)):
        raise ValueError(
            f"Task {task.id!r} holds {type(task.details).__name__}, not details for {nt.value}"
        )

    lines: list[str] = [format_heading(1, f"Task: {task.id} - {task.name}".rstrip())]

    _blank(lines)
    lines.append(format_heading(2, DETAILS))
    _blank(lines)
    lines.extend(details_to_lines(task.details))

    if nt is NodeType.JOB:
        _blank(lines)
        lines.append(format_heading(2, ESTIMATION))
        _blank(lines)
        lines.extend(estimation_to_lines(task.estimation or Estimation()))

    _blank(lines)
    lines.append(format_heading(2, NOTES))
    _blank(lines)
    lines.extend(canonical_lines(task.notes))

    _blank(lines)
    lines.append(format_heading(2, TAGS))
    _blank(lines)
    if task.tags:
        lines.append(", ".join(task.tags))

    for key, body in task.custom.items():
        _blank(lines)
        lines.append(format_heading(2, key_to_header(key)))
        _blank(lines)
        lines.extend(canonical_lines(body))

    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines) + "\n"


def text_to_task(text: str, node_type: NodeType | str | None = None) -> Task:
    """
    Parse edited task text.

    `node_type` selects the details vocabulary (Job when omitted). Never
    raises on malformed input: unrecognised prose ends up in `notes`,
    unrecognised headers in `custom`.
    """
    nt = _resolve_type(node_type, NodeType.JOB)
    lines = split_lines(text)
    legacy = any(banner_title(line) is not None for line in lines)

    task = Task(id="", details=details_class(nt)())
    notes: list[str] = []
    estimation: Optional[Estimation] = None

    for section in split_sections(lines, _classify_top):
        kind = section.name

        if kind is None:
            notes.append(section.text)
        elif kind == "title":
            task.id, task.name = _parse_title(section.subsection or "")
            notes.append(_header_prose(section, task, legacy))
        elif kind == "stray":
            notes.append(finalize_section([section.subsection or "", *section.lines]))
        elif kind == DETAILS:
            extra = _parse_details_into(task.details, section.lines, legacy)
            notes.extend(extra)
        elif kind == ESTIMATION:
            if nt is NodeType.JOB:
                estimation = lines_to_estimation(section.lines, legacy)
            else:
                notes.append(section.text)
        elif kind == NOTES:
            notes.append(section.text)
        elif kind == TAGS:
            for tag in _parse_tags(section.lines):
                if tag not in task.tags:
                    task.tags.append(tag)
        elif kind == "custom":
            _put(task.custom, normalize_key(section.subsection or ""), section.text)

    if estimation is not None and not estimation.is_empty():
        task.estimation = estimation

    task.notes = "\n\n".join(n for n in notes if n)
    return task


# ---------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------

def _classify_top(line: str) -> Optional[tuple[str, Optional[str]]]:
    h = heading(line)
    if h is not None:
        level, title = h
        if level == 1:
            m = _TITLE_RE.match(title)
            return ("title", m.group(1)) if m else ("stray", title)
        if level == 2:
            return _top_section(title)
        return None

    title = banner_title(line)
    if title is not None:
        m = _TITLE_RE.match(title)
        if m:
            return "title", m.group(1)
        return _top_section(title)

    return None


def _top_section(title: str) -> tuple[str, Optional[str]]:
    for name in TOP_SECTIONS:
        if title.casefold() == name.casefold():
            return name, None
    return "custom", title


def _parse_title(rest: str) -> tuple[str, str]:
    """
    "1.2 - Login form" -> ("1.2", "Login form").

    The id is the first whitespace-free token; the name follows the
    first " - " and may contain hyphens itself.
    """
    rest = rest.strip()
    if rest == "-" or rest.startswith("- "):
        return "", rest[1:].strip()

    parts = rest.split(None, 1)
    if not parts:
        return "", ""
    task_id = parts[0]
    remainder = parts[1].strip() if len(parts) > 1 else ""
    if remainder == "-" or remainder.startswith("- "):
        remainder = remainder[1:].strip()
    return task_id, remainder


def _header_prose(section: Section, task: Task, legacy: bool) -> str:
    """Lines between the title and the first section: a legacy Name line, else prose."""
    rest: list[str] = []
    for line in section.lines:
        m = _NAME_RE.match(line.strip()) if legacy else None
        if m and not task.name:
            task.name = m.group(1).strip()
            continue
        rest.append(line)
    return capture_freeform(rest)


def _parse_tags(lines: Iterable[str]) -> list[str]:
    tags: list[str] = []
    for line in lines:
        for raw in line.split(","):
            tag = raw.strip()
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def _put(target: dict[str, str], key: str, body: str) -> None:
    if key in target and target[key]:
        target[key] = target[key] + "\n\n" + body if body else target[key]
    else:
        target[key] = body


def _resolve_type(node_type: NodeType | str | None, default: NodeType) -> NodeType:
    if node_type is None:
        return default
    parsed = NodeType.parse(node_type)
    return parsed if parsed is not None else NodeType.FREEFORM


def _blank(lines: list[str]) -> None:
    if lines and lines[-1] != "":
        lines.append("")


# ---------------------------------------------------------------------
# Details
# ---------------------------------------------------------------------

def details_to_lines(details: Details) -> list[str]:
    """Render the body of the Details section for any variant."""
    lines: list[str] = []
    specs = FIELDS_BY_TYPE[details.NODE_TYPE]

    if details.NODE_TYPE is NodeType.FREEFORM:
        lines.extend(canonical_lines(getattr(details, "content")))

    for spec in specs:
        _blank(lines)
        lines.append(format_heading(3, spec.header))

        if spec.kind == PLAIN:
            lines.extend(canonical_lines(getattr(details, spec.field)))
        elif spec.kind == BULLETS:
            lines.extend(indent_block(getattr(details, spec.field)))
        elif spec.kind == CONTEXT:
            lines.extend(canonical_lines(getattr(details, spec.field)))
            _blank(lines)
            lines.append(checkbox_line(COMPLETED_LABEL, getattr(details, "completed")))
        elif spec.kind == SCOPE:
            for i, (label, attr) in enumerate(SCOPE_LABELS):
                if i:
                    _blank(lines)
                lines.append(f"**{label}**")
                lines.extend(indent_block(getattr(details, attr)))

    for key, body in details.custom.items():
        _blank(lines)
        lines.append(format_heading(3, key_to_header(key)))
        lines.extend(canonical_lines(body))

    return lines


def _spec_lookup(specs: Sequence[FieldSpec]) -> dict[str, FieldSpec]:
    out: dict[str, FieldSpec] = {}
    for spec in specs:
        out[spec.header.casefold()] = spec
        for alias in spec.aliases:
            out[alias.casefold()] = spec
    return out


def _parse_details_into(details: Details, lines: Sequence[str], legacy: bool) -> list[str]:
    """
    Fill `details` from the lines of a Details section.

    Returns prose that belongs to no field (to be appended to notes).
    """
    specs = FIELDS_BY_TYPE[details.NODE_TYPE]
    lookup = _spec_lookup(specs)

    def classify(line: str) -> Optional[tuple[str, Optional[str]]]:
        title = heading_title(line, 3)
        if title is not None:
            spec = lookup.get(title.casefold())
            return (spec.field, None) if spec else ("custom", title)
        if legacy and line == line.lstrip():
            spec = lookup.get(line.strip().casefold())
            if spec is not None:
                return spec.field, None
        return None

    leftovers: list[str] = []
    by_field = {spec.field: spec for spec in specs}

    for section in split_sections(lines, classify):
        if section.name is None:
            if details.NODE_TYPE is NodeType.FREEFORM:
                setattr(details, "content", section.text)
            else:
                leftovers.append(section.text)
        elif section.name == "custom":
            _put(details.custom, normalize_key(section.subsection or ""), section.text)
        else:
            leftovers.extend(_assign_field(details, by_field[section.name], section, legacy))

    return leftovers


def _assign_field(details: Details, spec: FieldSpec, section: Section, legacy: bool) -> list[str]:
    if spec.kind == PLAIN:
        setattr(details, spec.field, section.text)
        return []

    if spec.kind == BULLETS:
        setattr(details, spec.field, section.bullets())
        return []

    if spec.kind == CONTEXT:
        body: list[str] = []
        for line in section.lines:
            m = _COMPLETED_RE.match(line)
            if m:
                setattr(details, "completed", m.group(1) in ("x", "X"))
                continue
            body.append(line)
        setattr(details, spec.field, capture_freeform(body))
        return []

    # SCOPE
    values, stray = split_labeled(section.lines, SCOPE_LABELS, legacy)
    for _, attr in SCOPE_LABELS:
        if attr in values:
            setattr(details, attr, values[attr])
    return [stray] if stray else []


def split_labeled(
    lines: Iterable[str],
    labels: Sequence[tuple[str, str]],
    legacy: bool,
) -> tuple[dict[str, str], str]:
    """
    Split a compound block at its labels ("**In scope:**").

    Each label is followed by an indented bullet block, indented two
    spaces deeper than the label line. Markdown labels sit at column 0;
    the banner layout also indents them. Returns ({key: bullet text},
    stray text found before the first label).
    """
    wanted = {label_of(label): key for label, key in labels}
    buffers: dict[str, list[str]] = {}
    stray: list[str] = []
    indents: dict[str, int] = {}
    current: Optional[str] = None

    for line in lines:
        if line.strip() and (legacy or not line[:1].isspace()):
            key = wanted.get(label_of(line))
            if key is not None:
                current = key
                indents[key] = leading_spaces(line) + 2
                buffers.setdefault(key, [])
                continue

        if current is None:
            stray.append(line)
        else:
            buffers[current].append(line)

    values = {key: capture_bullets(buf, indents[key]) for key, buf in buffers.items()}
    return values, capture_freeform(stray)


# ---------------------------------------------------------------------
# Estimation
# ---------------------------------------------------------------------

def estimation_to_lines(est: Estimation) -> list[str]:
    lines: list[str] = []

    lines.append(format_heading(3, EST_TYPE))
    lines.extend(_checkbox_group(WORK_TYPES, est.work_type))

    _blank(lines)
    lines.append(format_heading(3, EST_ASSUMPTIONS))
    lines.extend(indent_block(est.assumptions))

    _blank(lines)
    lines.append(format_heading(3, EST_EFFORT))
    lines.append("**Method:**")
    lines.extend(_checkbox_group(EFFORT_METHODS, est.effort.method))
    _blank(lines)
    lines.append("**Estimate:**")
    lines.extend(_effort_lines(est.effort))

    _blank(lines)
    lines.append(format_heading(3, EST_CONFIDENCE))
    lines.extend(_checkbox_group(CONFIDENCE_LEVELS, est.confidence))

    _blank(lines)
    lines.append(format_heading(3, EST_SCHEDULE))
    lines.append(f"- Start: {est.schedule.start_date}".rstrip())
    lines.append(f"- Target finish: {est.schedule.target_finish}".rstrip())
    lines.append("- Milestones:")
    if est.schedule.milestones:
        for m in est.schedule.milestones:
            lines.append(f"  - {m.name} {MILESTONE_SEP} {m.date}".rstrip())
    else:
        lines.append("  - ")

    _blank(lines)
    lines.append(format_heading(3, EST_POST))
    for i, (label, attr) in enumerate(POST_ESTIMATE_LABELS):
        if i:
            _blank(lines)
        lines.append(f"**{label}**")
        lines.extend(indent_block(getattr(est.post_estimate_notes, attr)))

    return lines


def _checkbox_group(options: Sequence[tuple[str, str]], selected: str) -> list[str]:
    return [checkbox_line(label, value == selected) for label, value in options]


def _fmt_number(value: int | float, suffix: str) -> str:
    return f"{value}{suffix}" if value else ""


def _effort_lines(effort: Effort) -> list[str]:
    buffer = _fmt_number(effort.buffer_percent, "%")
    if effort.buffer_reason:
        buffer = f"{buffer} (reason: {effort.buffer_reason})".lstrip()
    return [
        f"- Base effort: {_fmt_number(effort.base_hours, 'h')}".rstrip(),
        f"- Buffer: {buffer}".rstrip(),
        f"- Total: {_fmt_number(effort.total_hours, 'h')}".rstrip(),
    ]


def lines_to_estimation(lines: Sequence[str], legacy: bool = False) -> Estimation:
    """
    Parse the body of an Estimation section.

    Sub-sections are H3 headers; the banner layout uses bare header lines
    ("Type", "Confidence:") instead.
    """

    def classify(line: str) -> Optional[tuple[str, Optional[str]]]:
        title = heading_title(line, 3)
        if title is None and legacy and line == line.lstrip():
            title = line.strip()
        if title is None:
            return None
        name = _EST_HEADERS.get(title.casefold().rstrip(":").strip())
        if name is None:
            return None
        return name, None

    est = Estimation()

    for section in split_sections(lines, classify):
        if section.name == EST_TYPE:
            est.work_type = _last_checked(section.lines, WORK_TYPES)
        elif section.name == EST_ASSUMPTIONS:
            est.assumptions = section.bullets()
        elif section.name == EST_EFFORT:
            est.effort = _parse_effort(section.lines)
        elif section.name == EST_CONFIDENCE:
            est.confidence = _last_checked(section.lines, CONFIDENCE_LEVELS)
        elif section.name == EST_SCHEDULE:
            est.schedule = _parse_schedule(section.lines)
        elif section.name == EST_POST:
            values, _ = split_labeled(section.lines, POST_ESTIMATE_LABELS, legacy)
            est.post_estimate_notes = PostEstimateNotes(**values)

    return est


def _last_checked(lines: Iterable[str], options: Sequence[tuple[str, str]]) -> str:
    """Checkbox group value: the last checked option wins, "" when none."""
    value = ""
    for line in lines:
        hit = checked_value(line, options)
        if hit is not None:
            value = hit
    return value


def _parse_effort(lines: Iterable[str]) -> Effort:
    effort = Effort()
    sub: Optional[str] = None

    for line in lines:
        label = label_of(line)
        if label == "method":
            sub = "method"
            continue
        if label == "estimate":
            sub = "estimate"
            continue

        if sub == "method":
            hit = checked_value(line, EFFORT_METHODS)
            if hit is not None:
                effort.method = hit
        elif sub == "estimate":
            m = _BASE_RE.search(line)
            if m:
                effort.base_hours = number(m.group(1))
            m = _BUFFER_RE.search(line)
            if m:
                effort.buffer_percent = number(m.group(1)) if m.group(1) else 0
                effort.buffer_reason = (m.group(2) or "").strip()
            m = _TOTAL_RE.search(line)
            if m:
                effort.total_hours = number(m.group(1))

    return effort


def _parse_schedule(lines: Iterable[str]) -> Schedule:
    schedule = Schedule()
    in_milestones = False

    for line in lines:
        if in_milestones:
            m = _MILESTONE_ITEM_RE.match(line)
            if m:
                milestone = _parse_milestone(m.group(1))
                if milestone is not None:
                    schedule.milestones.append(milestone)
                continue

        if label_of(line) == "milestones":
            in_milestones = True
            continue

        m = _START_RE.match(line)
        if m:
            schedule.start_date = m.group(1).strip()
            continue
        m = _FINISH_RE.match(line)
        if m:
            schedule.target_finish = m.group(1).strip()

    return schedule


def _parse_milestone(raw: str) -> Optional[Milestone]:
    """
    "Beta — 2024-03-01" -> Milestone("Beta", "2024-03-01").

    Split on the first em dash; a name containing one is cut there.
    """
    text = raw.strip()
    if not text:
        return None
    if MILESTONE_SEP in text:
        name, date = text.split(MILESTONE_SEP, 1)
        m = Milestone(name=name.strip(), date=date.strip())
    else:
        m = Milestone(name=text)
    if not m.name and not m.date:
        return None
    return m

