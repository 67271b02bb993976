# src/plantext/engine/model.py

"""
Core domain models.

This module defines the in-memory representations of projects, the
structure tree, tasks with their type-specific details, estimations and
time-log sessions.

Every model can be built from a plain mapping (`from_mapping`) and
flattened back (`to_mapping`). Construction never fails on missing or
odd values: fields fall back to type-correct defaults, legacy list-valued
bullet fields are folded into bullet text, and scalars are coerced.

No serialization format or filesystem access belongs here.
"""

import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Iterator, Mapping, Optional

from .bullets import coerce_text
from .grammar import normalize_key


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------

class NodeType(str, Enum):
    """
    Structure node type.

    The type of the node owning a task selects its details variant.
    """

    AREA = "Area"
    COMPONENT = "Component"
    JOB = "Job"
    FREEFORM = "Freeform"

    @classmethod
    def parse(cls, raw: Any) -> Optional["NodeType"]:
        """Case-insensitive lookup; None for unknown or empty input."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            return None
        wanted = raw.strip().casefold()
        for t in cls:
            if t.value.casefold() == wanted:
                return t
        return None


class WorkType(str, Enum):
    NEW_WORK = "new_work"
    CHANGE = "change"
    BUGFIX = "bugfix"
    RESEARCH = "research"


class EffortMethod(str, Enum):
    SIMILAR_WORK = "similar_work"
    THREE_POINT = "three_point"
    GUT_FEEL = "gut_feel"


class Confidence(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class SessionType(str, Enum):
    CODING = "coding"
    TESTING = "testing"
    DEBUGGING = "debugging"
    PLANNING = "planning"
    DESIGN = "design"
    REVIEW = "review"
    RESEARCH = "research"
    MEETING = "meeting"
    ADMIN = "admin"


# ---------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------

def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def text_value(value: Any) -> str:
    """Plain string field: None -> "", dates -> ISO text, other scalars -> str."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (date, datetime)):
        return iso_text(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def iso_text(value: date | datetime) -> str:
    """
    ISO form of a YAML-decoded date or timestamp.

    UTC timestamps keep the "Z" suffix used by the stored documents.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
            return value.replace(tzinfo=None).isoformat() + "Z"
        return value.isoformat()
    return value.isoformat()


def int_value(value: Any) -> int:
    """Counts and ratings: numeric strings are parsed; NaN, infinities and junk give 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    return 0


def number(value: Any) -> int | float:
    """
    Hours and percentages: ints stay ints, integral floats become ints,
    numeric strings are parsed, anything else is 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("h%").strip())
        except ValueError:
            return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(value) if value.is_integer() else value
    return 0


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().casefold() in ("true", "yes", "1", "x")
    return bool(value)


def str_list(value: Any) -> list[str]:
    """Ordered, de-duplicated list of non-empty strings."""
    out: list[str] = []
    for item in _items(value):
        s = text_value(item).strip()
        if s and s not in out:
            out.append(s)
    return out


def _items(value: Any) -> list[Any]:
    """
    Elements of a list-like field.

    A mapping gives its keys; any other scalar is a one-item list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return list(value.keys())
    return [value]


def _id_list(value: Any) -> list[str]:
    """Like str_list but keeps duplicates (session task references)."""
    return [text_value(item).strip() for item in _items(value) if text_value(item).strip()]


def str_map(value: Any) -> dict[str, str]:
    return {str(k): coerce_text(v) for k, v in _mapping(value).items()}


# ---------------------------------------------------------------------
# Project info
# ---------------------------------------------------------------------

@dataclass(slots=True)
class ProjectInfo:
    id: str = ""
    name: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> "ProjectInfo":
        d = _mapping(data)
        return cls(id=text_value(d.get("id")), name=text_value(d.get("name")))

    def to_mapping(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


# ---------------------------------------------------------------------
# Structure tree
# ---------------------------------------------------------------------

@dataclass(slots=True)
class StructureNode:
    """
    A node of the project tree.

    `id` is a dot-segmented path ("1.2.3"); the parent id is the path
    without its last segment. `children` is keyed by child id.
    """

    id: str
    type: NodeType = NodeType.JOB
    children: dict[str, "StructureNode"] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, node_id: Any, data: Any) -> "StructureNode":
        d = _mapping(data)
        raw_type = d.get("type")
        node_type = NodeType.parse(raw_type)
        if node_type is None:
            node_type = NodeType.FREEFORM if raw_type else NodeType.JOB

        children = structure_from_mapping(d.get("subtasks"))
        return cls(id=text_value(node_id), type=node_type, children=children)

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.children:
            out["subtasks"] = structure_to_mapping(self.children)
        return out


def structure_from_mapping(data: Any) -> dict[str, StructureNode]:
    return {
        text_value(k): StructureNode.from_mapping(k, v)
        for k, v in _mapping(data).items()
    }


def structure_to_mapping(nodes: Mapping[str, StructureNode]) -> dict[str, Any]:
    return {nid: nodes[nid].to_mapping() for nid in sorted_ids(nodes)}


# ---------------------------------------------------------------------
# Details variants
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Details:
    """
    Base of the details variants.

    Subclasses declare their bullet-text fields, plain fields and the
    shape signature: the keys whose presence marks a stored mapping as
    belonging to the variant.
    """

    NODE_TYPE: ClassVar[NodeType]
    BULLET_FIELDS: ClassVar[tuple[str, ...]] = ()
    PLAIN_FIELDS: ClassVar[tuple[str, ...]] = ()
    SIGNATURE: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def conforms(cls, data: Any) -> bool:
        """True when a stored mapping carries one of the signature keys."""
        return isinstance(data, Mapping) and any(k in data for k in cls.SIGNATURE)

    @classmethod
    def from_mapping(cls, data: Any) -> "Details":
        """
        Build the variant from a stored mapping.

        Keys outside the variant's vocabulary are kept in `custom` so that
        nothing stored is dropped.
        """
        d = _mapping(data)
        kwargs: dict[str, Any] = {}
        for name in cls.BULLET_FIELDS:
            kwargs[name] = coerce_text(d.get(name))
        for name in cls.PLAIN_FIELDS:
            kwargs[name] = text_value(d.get(name))
        if "completed" in cls.field_names():
            kwargs["completed"] = _bool(d.get("completed", False))

        custom = str_map(d.get("custom"))
        known = set(cls.field_names())
        for k, v in d.items():
            key = text_value(k)
            if key in known or v is None or v == "" or v == []:
                continue
            custom.setdefault(normalize_key(key), coerce_text(v))

        kwargs["custom"] = custom
        return cls(**kwargs)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in self.field_names():
            if name == "custom":
                continue
            out[name] = getattr(self, name)
        if self.custom:
            out["custom"] = dict(self.custom)
        return out

    def is_empty(self) -> bool:
        for name in self.field_names():
            value = getattr(self, name)
            if value:
                return False
        return True


@dataclass(slots=True)
class AreaDetails(Details):
    NODE_TYPE: ClassVar[NodeType] = NodeType.AREA
    BULLET_FIELDS: ClassVar[tuple[str, ...]] = (
        "goals_objectives",
        "scope_boundaries",
        "key_components",
        "success_metrics",
        "stakeholders",
        "dependencies_constraints",
    )
    PLAIN_FIELDS: ClassVar[tuple[str, ...]] = ("vision_purpose", "strategic_context")
    SIGNATURE: ClassVar[tuple[str, ...]] = ("vision_purpose", "goals_objectives", "key_components")

    vision_purpose: str = ""
    goals_objectives: str = ""
    scope_boundaries: str = ""
    key_components: str = ""
    success_metrics: str = ""
    stakeholders: str = ""
    dependencies_constraints: str = ""
    strategic_context: str = ""
    custom: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ComponentDetails(Details):
    NODE_TYPE: ClassVar[NodeType] = NodeType.COMPONENT
    BULLET_FIELDS: ClassVar[tuple[str, ...]] = (
        "capabilities",
        "acceptance_criteria",
        "architecture_design",
        "interfaces_integration",
        "quality_attributes",
        "related_components",
    )
    PLAIN_FIELDS: ClassVar[tuple[str, ...]] = ("purpose", "other")
    SIGNATURE: ClassVar[tuple[str, ...]] = ("purpose", "capabilities", "acceptance_criteria")

    purpose: str = ""
    capabilities: str = ""
    acceptance_criteria: str = ""
    architecture_design: str = ""
    interfaces_integration: str = ""
    quality_attributes: str = ""
    related_components: str = ""
    other: str = ""
    custom: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class JobDetails(Details):
    NODE_TYPE: ClassVar[NodeType] = NodeType.JOB
    BULLET_FIELDS: ClassVar[tuple[str, ...]] = (
        "outcome_dod",
        "scope_in",
        "scope_out",
        "requirements_constraints",
        "dependencies",
        "approach",
        "risks",
        "validation_test_plan",
    )
    PLAIN_FIELDS: ClassVar[tuple[str, ...]] = ("context_why",)
    SIGNATURE: ClassVar[tuple[str, ...]] = ("context_why", "outcome_dod", "scope_in")

    context_why: str = ""
    outcome_dod: str = ""
    scope_in: str = ""
    scope_out: str = ""
    requirements_constraints: str = ""
    dependencies: str = ""
    approach: str = ""
    risks: str = ""
    validation_test_plan: str = ""
    completed: bool = False
    custom: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class FreeformDetails(Details):
    NODE_TYPE: ClassVar[NodeType] = NodeType.FREEFORM
    PLAIN_FIELDS: ClassVar[tuple[str, ...]] = ("content",)
    SIGNATURE: ClassVar[tuple[str, ...]] = ("content",)

    content: str = ""
    custom: dict[str, str] = field(default_factory=dict)


DETAILS_BY_TYPE: dict[NodeType, type[Details]] = {
    NodeType.AREA: AreaDetails,
    NodeType.COMPONENT: ComponentDetails,
    NodeType.JOB: JobDetails,
    NodeType.FREEFORM: FreeformDetails,
}


def details_class(node_type: NodeType) -> type[Details]:
    return DETAILS_BY_TYPE[node_type]


def empty_details(node_type: NodeType) -> Details:
    return DETAILS_BY_TYPE[node_type]()


# ---------------------------------------------------------------------
# Estimation (Job only)
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Effort:
    method: str = ""
    base_hours: int | float = 0
    buffer_percent: int | float = 0
    buffer_reason: str = ""
    total_hours: int | float = 0

    @classmethod
    def from_mapping(cls, data: Any) -> "Effort":
        d = _mapping(data)
        return cls(
            method=text_value(d.get("method")),
            base_hours=number(d.get("base_hours")),
            buffer_percent=number(d.get("buffer_percent")),
            buffer_reason=text_value(d.get("buffer_reason")),
            total_hours=number(d.get("total_hours")),
        )


@dataclass(slots=True)
class Milestone:
    name: str = ""
    date: str = ""


@dataclass(slots=True)
class Schedule:
    start_date: str = ""
    target_finish: str = ""
    milestones: list[Milestone] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "Schedule":
        d = _mapping(data)
        milestones: list[Milestone] = []
        raw = d.get("milestones")
        # a lone milestone record is not a list of records
        for item in [raw] if isinstance(raw, Mapping) else _items(raw):
            if isinstance(item, Mapping):
                m = Milestone(name=text_value(item.get("name")), date=text_value(item.get("date")))
            else:
                m = Milestone(name=text_value(item))
            if m.name or m.date:
                milestones.append(m)
        return cls(
            start_date=text_value(d.get("start_date")),
            target_finish=text_value(d.get("target_finish")),
            milestones=milestones,
        )


@dataclass(slots=True)
class PostEstimateNotes:
    could_be_smaller: str = ""
    could_be_bigger: str = ""
    ignored_last_time: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> "PostEstimateNotes":
        d = _mapping(data)
        return cls(
            could_be_smaller=coerce_text(d.get("could_be_smaller")),
            could_be_bigger=coerce_text(d.get("could_be_bigger")),
            ignored_last_time=coerce_text(d.get("ignored_last_time")),
        )


@dataclass(slots=True)
class Estimation:
    """
    Structured estimate of a Job.

    Enum-like fields hold the enum value string, or "" when nothing was
    selected.
    """

    work_type: str = ""
    assumptions: str = ""
    effort: Effort = field(default_factory=Effort)
    confidence: str = ""
    schedule: Schedule = field(default_factory=Schedule)
    post_estimate_notes: PostEstimateNotes = field(default_factory=PostEstimateNotes)

    @classmethod
    def from_mapping(cls, data: Any) -> "Estimation":
        d = _mapping(data)
        return cls(
            work_type=text_value(d.get("work_type")),
            assumptions=coerce_text(d.get("assumptions")),
            effort=Effort.from_mapping(d.get("effort")),
            confidence=text_value(d.get("confidence")),
            schedule=Schedule.from_mapping(d.get("schedule")),
            post_estimate_notes=PostEstimateNotes.from_mapping(d.get("post_estimate_notes")),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "work_type": self.work_type,
            "assumptions": self.assumptions,
            "effort": {
                "method": self.effort.method,
                "base_hours": self.effort.base_hours,
                "buffer_percent": self.effort.buffer_percent,
                "buffer_reason": self.effort.buffer_reason,
                "total_hours": self.effort.total_hours,
            },
            "confidence": self.confidence,
            "schedule": {
                "start_date": self.schedule.start_date,
                "target_finish": self.schedule.target_finish,
                "milestones": [
                    {"name": m.name, "date": m.date} for m in self.schedule.milestones
                ],
            },
            "post_estimate_notes": {
                "could_be_smaller": self.post_estimate_notes.could_be_smaller,
                "could_be_bigger": self.post_estimate_notes.could_be_bigger,
                "ignored_last_time": self.post_estimate_notes.ignored_last_time,
            },
        }

    def is_empty(self) -> bool:
        return self == Estimation()


# ---------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Task:
    """
    In-memory representation of a task.

    Notes:
    - id mirrors the id of a structure node.
    - details is the variant selected by that node's type.
    - estimation is only meaningful for Job nodes.
    - notes doubles as the destination for migrated legacy content.
    """

    id: str
    name: str = ""
    details: Details = field(default_factory=JobDetails)
    estimation: Optional[Estimation] = None
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    custom: dict[str, str] = field(default_factory=dict)

    @property
    def node_type(self) -> NodeType:
        return self.details.NODE_TYPE


# ---------------------------------------------------------------------
# Session (time log)
# ---------------------------------------------------------------------

@dataclass(slots=True)
class EnergyLevel:
    start: int = 0
    end: int = 0


@dataclass(slots=True)
class Defects:
    found: str = ""
    fixed: str = ""


@dataclass(slots=True)
class Retrospective:
    what_went_well: str = ""
    what_needs_improvement: str = ""
    lessons_learned: str = ""


@dataclass(slots=True)
class Session:
    """
    A single time-log entry.

    An empty end_timestamp marks an open (running) session. `tasks` is
    always a list of task ids, never bullet text.
    """

    start_timestamp: str = ""
    end_timestamp: str = ""
    notes: str = ""
    interruptions: str = ""
    interruption_minutes: int = 0
    tasks: list[str] = field(default_factory=list)
    session_type: str = ""
    planned_duration_minutes: int = 0
    focus_rating: int = 0
    energy_level: EnergyLevel = field(default_factory=EnergyLevel)
    context_switches: int = 0
    defects: Defects = field(default_factory=Defects)
    deliverables: str = ""
    blockers: str = ""
    retrospective: Retrospective = field(default_factory=Retrospective)

    @property
    def is_open(self) -> bool:
        return not self.end_timestamp.strip()

    @classmethod
    def from_mapping(cls, data: Any) -> "Session":
        d = _mapping(data)
        energy = _mapping(d.get("energy_level"))
        defects = _mapping(d.get("defects"))
        retro = _mapping(d.get("retrospective"))
        return cls(
            start_timestamp=text_value(d.get("start_timestamp")),
            end_timestamp=text_value(d.get("end_timestamp")),
            notes=text_value(d.get("notes")),
            interruptions=coerce_text(d.get("interruptions")),
            interruption_minutes=int_value(d.get("interruption_minutes")),
            tasks=_id_list(d.get("tasks")),
            session_type=text_value(d.get("session_type")),
            planned_duration_minutes=int_value(d.get("planned_duration_minutes")),
            focus_rating=int_value(d.get("focus_rating")),
            energy_level=EnergyLevel(start=int_value(energy.get("start")), end=int_value(energy.get("end"))),
            context_switches=int_value(d.get("context_switches")),
            defects=Defects(
                found=coerce_text(defects.get("found")),
                fixed=coerce_text(defects.get("fixed")),
            ),
            deliverables=coerce_text(d.get("deliverables")),
            blockers=coerce_text(d.get("blockers")),
            retrospective=Retrospective(
                what_went_well=coerce_text(retro.get("what_went_well")),
                what_needs_improvement=coerce_text(retro.get("what_needs_improvement")),
                lessons_learned=coerce_text(retro.get("lessons_learned")),
            ),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "notes": self.notes,
            "interruptions": self.interruptions,
            "interruption_minutes": self.interruption_minutes,
            "tasks": list(self.tasks),
            "session_type": self.session_type,
            "planned_duration_minutes": self.planned_duration_minutes,
            "focus_rating": self.focus_rating,
            "energy_level": {"start": self.energy_level.start, "end": self.energy_level.end},
            "context_switches": self.context_switches,
            "defects": {"found": self.defects.found, "fixed": self.defects.fixed},
            "deliverables": self.deliverables,
            "blockers": self.blockers,
            "retrospective": {
                "what_went_well": self.retrospective.what_went_well,
                "what_needs_improvement": self.retrospective.what_needs_improvement,
                "lessons_learned": self.retrospective.lessons_learned,
            },
        }


# ---------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Project:
    """
    Root aggregate of one planning document.

    `notes` also serves as the recovery buffer when a stored document
    could not be decoded.
    """

    info: ProjectInfo = field(default_factory=ProjectInfo)
    structure: dict[str, StructureNode] = field(default_factory=dict)
    task_list: dict[str, Task] = field(default_factory=dict)
    time_log: list[Session] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def empty(cls, name: str, notes: str = "") -> "Project":
        return cls(info=ProjectInfo(id="", name=name), notes=notes)

    @property
    def name(self) -> str:
        return self.info.name


# ---------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------

def id_sort_key(node_id: str) -> tuple[tuple[int, int | str], ...]:
    """
    Numeric ordering of hierarchical ids: "1.2.10" sorts after "1.2.3".

    Non-numeric segments sort after numeric ones, by string.
    """
    key: list[tuple[int, int | str]] = []
    for seg in node_id.split("."):
        if seg.isdigit():
            key.append((0, int(seg)))
        else:
            key.append((1, seg))
    return tuple(key)


def sorted_ids(ids: Any) -> list[str]:
    return sorted(ids, key=id_sort_key)


def parent_id(node_id: str) -> Optional[str]:
    """ "1.2.3" -> "1.2"; root-level ids have no parent."""
    if "." not in node_id:
        return None
    return node_id.rsplit(".", 1)[0]


def id_depth(node_id: str) -> int:
    return node_id.count(".")


def iter_nodes(
    nodes: Mapping[str, StructureNode],
    depth: int = 0,
) -> Iterator[tuple[int, StructureNode]]:
    """Depth-first walk in numeric id order, yielding (depth, node)."""
    for nid in sorted_ids(nodes):
        node = nodes[nid]
        yield depth, node
        yield from iter_nodes(node.children, depth + 1)


def find_node(nodes: Mapping[str, StructureNode], node_id: str) -> Optional[StructureNode]:
    for _, node in iter_nodes(nodes):
        if node.id == node_id:
            return node
    return None


def node_type_of(nodes: Mapping[str, StructureNode], node_id: str) -> Optional[NodeType]:
    node = find_node(nodes, node_id)
    return node.type if node is not None else None


def active_session(project: Project) -> Optional[Session]:
    """The most recent open session, if any."""
    for session in reversed(project.time_log):
        if session.is_open:
            return session
    return None
