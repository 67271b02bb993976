# src/plantext/engine/legacy.py

"""
Legacy-import helpers.

Kept apart from the primary load path, which always selects a details
variant from the structure tree:

- sniff_node_type: guess a node type from the keys of a details payload,
  used only for tasks whose id is missing from the tree.
- migrate_document: convert the list-valued fields of an older document
  to bullet text (or back), leaving everything else untouched.
"""

import copy
from typing import Any, Final, Mapping, Optional

from .bullets import list_to_text, text_to_list
from .model import (
    AreaDetails,
    ComponentDetails,
    JobDetails,
    NodeType,
    node_type_of,
    structure_from_mapping,
)


# ---------------------------------------------------------------------
# Field lists
# ---------------------------------------------------------------------

DETAILS_LIST_FIELDS: Final[dict[NodeType, tuple[str, ...]]] = {
    NodeType.AREA: AreaDetails.BULLET_FIELDS,
    NodeType.COMPONENT: ComponentDetails.BULLET_FIELDS,
    NodeType.JOB: JobDetails.BULLET_FIELDS,
}

ESTIMATION_LIST_FIELDS: Final[tuple[str, ...]] = ("assumptions",)
POST_ESTIMATE_LIST_FIELDS: Final[tuple[str, ...]] = (
    "could_be_smaller",
    "could_be_bigger",
    "ignored_last_time",
)

SESSION_LIST_FIELDS: Final[tuple[str, ...]] = ("deliverables", "blockers")
SESSION_NESTED_LIST_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "defects": ("found", "fixed"),
    "retrospective": ("what_went_well", "what_needs_improvement", "lessons_learned"),
}

# checked in this order: Job keys win over Component keys over Area keys
_SNIFF_ORDER: Final[tuple[tuple[NodeType, tuple[str, ...]], ...]] = (
    (NodeType.JOB, ("context_why", "outcome_dod", "approach")),
    (NodeType.COMPONENT, ("purpose", "capabilities", "acceptance_criteria")),
    (NodeType.AREA, ("vision_purpose", "goals_objectives", "key_components")),
    (NodeType.FREEFORM, ("content",)),
)


# ---------------------------------------------------------------------
# Shape sniffing
# ---------------------------------------------------------------------

def sniff_node_type(details: Any) -> Optional[NodeType]:
    """
    Guess the variant of a details payload from the keys it carries.

    Returns None for anything that is not a mapping with a known key.
    """
    if not isinstance(details, Mapping):
        return None
    for node_type, keys in _SNIFF_ORDER:
        if any(k in details for k in keys):
            return node_type
    return None


# ---------------------------------------------------------------------
# Whole-document migration
# ---------------------------------------------------------------------

def migrate_document(data: Mapping[str, Any], to_strings: bool = True) -> dict[str, Any]:
    """
    Return a deep copy of a raw document with list fields converted.

    to_strings=True turns legacy lists into bullet text; False turns
    bullet text back into lists. Session `tasks` always stay a list, and
    details of tasks without a known structured type are left alone.
    """
    result = copy.deepcopy(dict(data))
    structure = structure_from_mapping(result.get("structure"))

    tasks = result.get("task_list")
    if isinstance(tasks, dict):
        for task_id, task in tasks.items():
            if not isinstance(task, dict):
                continue
            node_type = node_type_of(structure, str(task_id)) or sniff_node_type(task.get("details"))
            _migrate_task(task, node_type, to_strings)

    log = result.get("time_log")
    if isinstance(log, list):
        for entry in log:
            if isinstance(entry, dict):
                _migrate_session(entry, to_strings)

    return result


def _convert(target: dict[str, Any], names: tuple[str, ...], to_strings: bool) -> None:
    for name in names:
        value = target.get(name)
        if to_strings and isinstance(value, list):
            target[name] = list_to_text([str(v) for v in value if v is not None])
        elif not to_strings and isinstance(value, str):
            target[name] = text_to_list(value)


def _migrate_task(task: dict[str, Any], node_type: Optional[NodeType], to_strings: bool) -> None:
    details = task.get("details")
    if isinstance(details, dict) and node_type in DETAILS_LIST_FIELDS:
        _convert(details, DETAILS_LIST_FIELDS[node_type], to_strings)

    estimation = task.get("estimation")
    if node_type is NodeType.JOB and isinstance(estimation, dict):
        _convert(estimation, ESTIMATION_LIST_FIELDS, to_strings)
        notes = estimation.get("post_estimate_notes")
        if isinstance(notes, dict):
            _convert(notes, POST_ESTIMATE_LIST_FIELDS, to_strings)


def _migrate_session(entry: dict[str, Any], to_strings: bool) -> None:
    _convert(entry, SESSION_LIST_FIELDS, to_strings)
    for key, names in SESSION_NESTED_LIST_FIELDS.items():
        nested = entry.get(key)
        if isinstance(nested, dict):
            _convert(nested, names, to_strings)
