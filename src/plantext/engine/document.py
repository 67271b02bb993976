# src/plantext/engine/document.py

"""
Persisted project document <-> in-memory Project.

Document shape (one per project):

    project_info: {id, name}
    structure:    {id: {type, subtasks?}}
    task_list:    {id: {name, details, estimation?, notes?, tags, custom?}}
    time_log:     [session, ...]
    tags:         [tag, ...]
    notes:        str (optional)

Encoding is YAML; legacy JSON documents decode through the same path.

Responsibilities:
- encode / decode document bytes (DecodeError on malformed input)
- flatten a Project into a document, omitting empty optional fields
- rebuild a Project from any decoded mapping without failing:
  string estimations and details that do not fit the node's type are
  migrated into the task notes
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Final, Mapping, Optional

import yaml

from .legacy import sniff_node_type
from .model import (
    Details,
    Estimation,
    NodeType,
    Project,
    ProjectInfo,
    Session,
    Task,
    details_class,
    empty_details,
    node_type_of,
    sorted_ids,
    str_list,
    str_map,
    structure_from_mapping,
    structure_to_mapping,
    text_value,
)


logger = logging.getLogger(__name__)

MIGRATED_DETAILS_PREFIX: Final[str] = "Migrated details:"


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DecodeError(Exception):
    """
    Raised when stored document bytes are not a well-formed document.
    """

    name: str
    message: str

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


@dataclass(frozen=True, slots=True)
class ShapeMismatchError(Exception):
    """
    Raised when a stored details payload does not fit the node's type.
    """

    node_type: NodeType
    message: str

    def __str__(self) -> str:
        return f"{self.node_type.value}: {self.message}"


# ---------------------------------------------------------------------
# Bytes
# ---------------------------------------------------------------------

def encode_document(data: Mapping[str, Any], encoding: str = "utf-8") -> bytes:
    text = yaml.safe_dump(
        dict(data),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return text.encode(encoding)


def decode_document(raw: bytes | str, name: str = "<document>", encoding: str = "utf-8") -> dict[str, Any]:
    """
    Decode document bytes into a mapping.

    Raises DecodeError for undecodable bytes, syntax errors and
    documents whose root is not a mapping. Legacy JSON documents are
    YAML too, except when indented with tabs; those are read as JSON.
    """
    if isinstance(raw, bytes):
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise DecodeError(name, f"Cannot decode bytes as {encoding}: {e}") from e
    else:
        text = raw

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        try:
            data = json.loads(text)
        except ValueError:
            raise DecodeError(name, f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(name, "YAML root must be a mapping/dictionary")

    return data


# ---------------------------------------------------------------------
# Project -> document
# ---------------------------------------------------------------------

def project_to_document(project: Project) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "project_info": project.info.to_mapping(),
        "structure": structure_to_mapping(project.structure),
        "task_list": {
            tid: task_to_mapping(project.task_list[tid])
            for tid in sorted_ids(project.task_list)
        },
        "time_log": [s.to_mapping() for s in project.time_log],
        "tags": list(project.tags),
    }
    if project.notes:
        doc["notes"] = project.notes
    return doc


def task_to_mapping(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": task.name,
        "details": task.details.to_mapping(),
    }
    if task.estimation is not None:
        out["estimation"] = task.estimation.to_mapping()
    if task.notes:
        out["notes"] = task.notes
    out["tags"] = list(task.tags)
    if task.custom:
        out["custom"] = dict(task.custom)
    return out


# ---------------------------------------------------------------------
# Document -> project
# ---------------------------------------------------------------------

def document_to_project(data: Mapping[str, Any], name: str = "") -> Project:
    """
    Build a Project from a decoded document.

    Never raises for a mapping input. Missing sections give empty
    defaults; `name` fills in a missing project name.
    """
    info = ProjectInfo.from_mapping(data.get("project_info"))
    if not info.name:
        info.name = name

    structure = structure_from_mapping(data.get("structure"))

    task_list: dict[str, Task] = {}
    raw_tasks = data.get("task_list")
    if isinstance(raw_tasks, Mapping):
        for raw_id, raw_task in raw_tasks.items():
            task_id = text_value(raw_id)
            node_type = node_type_of(structure, task_id)
            task_list[task_id] = task_from_mapping(task_id, raw_task, node_type)

    raw_log = data.get("time_log")
    time_log = [Session.from_mapping(s) for s in raw_log] if isinstance(raw_log, list) else []

    return Project(
        info=info,
        structure=structure,
        task_list=task_list,
        time_log=time_log,
        tags=str_list(data.get("tags")),
        notes=text_value(data.get("notes")),
    )


def task_from_mapping(task_id: str, data: Any, node_type: Optional[NodeType]) -> Task:
    """
    Build one task, migrating legacy payloads into its notes.

    `node_type` comes from the structure tree; when the id is not in the
    tree the type is guessed from the payload shape.
    """
    if not isinstance(data, Mapping):
        # a bare value where a task record was expected
        return Task(id=task_id, details=empty_details(node_type or NodeType.FREEFORM), notes=text_value(data))

    notes = text_value(data.get("notes"))
    estimation: Optional[Estimation] = None

    raw_est = data.get("estimation")
    if isinstance(raw_est, Mapping):
        estimation = Estimation.from_mapping(raw_est)
    elif raw_est is not None and text_value(raw_est).strip():
        notes = join_notes(text_value(raw_est), notes)
        logger.debug(f"Task {task_id}: moved legacy estimation text into notes")

    raw_details = data.get("details")
    if node_type is None:
        node_type = sniff_node_type(raw_details) or NodeType.FREEFORM

    try:
        details = coerce_details(raw_details, node_type)
    except ShapeMismatchError as e:
        logger.debug(f"Task {task_id}: {e}; moving details into notes")
        details = empty_details(node_type)
        notes = migrated_notes(render_details(raw_details), notes)

    return Task(
        id=task_id,
        name=text_value(data.get("name")),
        details=details,
        estimation=estimation,
        notes=notes,
        tags=str_list(data.get("tags")),
        custom=str_map(data.get("custom")),
    )


def coerce_details(raw: Any, node_type: NodeType) -> Details:
    """
    Details for `node_type` from a stored payload.

    Absent or empty payloads give empty details. Raises
    ShapeMismatchError when the payload lacks the variant's signature.
    """
    cls = details_class(node_type)

    if isinstance(raw, cls):
        return raw
    if raw is None or (isinstance(raw, (list, Mapping)) and not raw):
        return cls()
    if isinstance(raw, str) and not raw.strip():
        return cls()

    if isinstance(raw, Mapping):
        if cls.conforms(raw):
            return cls.from_mapping(raw)
        raise ShapeMismatchError(node_type, "details mapping lacks the expected fields")

    if isinstance(raw, str) and node_type is NodeType.FREEFORM:
        return cls.from_mapping({"content": raw})

    raise ShapeMismatchError(node_type, f"details of type {type(raw).__name__} are not structured")


def render_details(raw: Any) -> str:
    """Readable text of a legacy details payload for the notes."""
    if isinstance(raw, Details):
        raw = {k: v for k, v in raw.to_mapping().items() if v}
    if isinstance(raw, str):
        return raw
    return yaml.safe_dump(raw, sort_keys=False, allow_unicode=True, default_flow_style=False).rstrip()


def join_notes(head: str, notes: str) -> str:
    return f"{head}\n\n{notes}" if notes else head


def migrated_notes(rendered: str, notes: str) -> str:
    """ "Migrated details:\\n<rendered>" followed by the existing notes."""
    if not rendered:
        return notes
    return join_notes(f"{MIGRATED_DETAILS_PREFIX}\n{rendered}", notes)


def retype_task(task: Task, node_type: NodeType) -> None:
    """
    Give a task empty details of a new node type.

    Non-empty old details are kept in the notes.
    """
    if isinstance(task.details, details_class(node_type)):
        return
    old = task.details
    task.details = empty_details(node_type)
    if not old.is_empty():
        task.notes = migrated_notes(render_details(old), task.notes)
