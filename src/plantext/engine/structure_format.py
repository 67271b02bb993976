# src/plantext/engine/structure_format.py

"""
Structure tree <-> editable text.

One line per node, depth-first in numeric id order:

    1 Area: Auth
      1.1 Component: Login
        1.1.2 Job: Form
        1.1.10 Job: Captcha

A node's parent comes from its id ("1.1.2" -> "1.1"), never from the
indentation, so sloppy indentation cannot corrupt the tree. A node whose
parent is missing is placed at the root (or rejected in strict mode).
"""

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .document import retype_task
from .grammar import split_lines
from .model import (
    NodeType,
    Project,
    StructureNode,
    Task,
    empty_details,
    find_node,
    id_depth,
    id_sort_key,
    iter_nodes,
    parent_id,
)


logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r"^(\s*)([\d.]+)\s+(\w+):\s*(.*)$")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StructuralReferenceError(Exception):
    """
    Raised in strict parsing when a node's parent id is not in the tree.
    """

    node_id: str
    parent_id: str

    def __str__(self) -> str:
        return f"{self.node_id}: parent '{self.parent_id}' does not exist"


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def structure_to_text(
    structure: Mapping[str, StructureNode],
    task_list: Optional[Mapping[str, Task]] = None,
) -> str:
    """Render the tree; names come from `task_list` when given."""
    tasks = task_list or {}
    lines: list[str] = []

    for depth, node in iter_nodes(structure):
        task = tasks.get(node.id)
        name = task.name if task is not None else ""
        lines.append(f"{'  ' * depth}{node.id} {node.type.value}: {name}".rstrip())

    return "\n".join(lines) + "\n" if lines else ""


def text_to_structure(
    text: str,
    *,
    strict: bool = False,
) -> tuple[dict[str, StructureNode], dict[str, Task]]:
    """
    Parse tree text into (structure, companion tasks).

    Lines that do not look like "<id> <Type>: <name>" are ignored. Type
    names match case-insensitively; unknown types become Freeform. Every
    node with a non-empty name gets a companion Task with empty details
    for its type.
    """
    entries: dict[str, tuple[NodeType, str]] = {}

    for line in split_lines(text):
        m = _LINE_RE.match(line)
        if not m:
            continue

        node_id = m.group(2).strip(".")
        if not node_id:
            continue

        node_type = NodeType.parse(m.group(3)) or NodeType.FREEFORM
        name = m.group(4).strip()

        if node_id in entries:
            logger.debug(f"Duplicate structure line for {node_id}; last one wins")
        entries[node_id] = (node_type, name)

    structure: dict[str, StructureNode] = {}
    index: dict[str, StructureNode] = {}
    tasks: dict[str, Task] = {}

    # parents are inserted before children regardless of line order
    for node_id in sorted(entries, key=lambda i: (id_depth(i), id_sort_key(i))):
        node_type, name = entries[node_id]
        node = StructureNode(id=node_id, type=node_type)
        index[node_id] = node

        pid = parent_id(node_id)
        if pid is None:
            structure[node_id] = node
        elif pid in index:
            index[pid].children[node_id] = node
        elif strict:
            raise StructuralReferenceError(node_id, pid)
        else:
            logger.debug(f"Parent {pid} of {node_id} not found; placing node at root")
            structure[node_id] = node

        if name:
            tasks[node_id] = Task(id=node_id, name=name, details=empty_details(node_type))

    return structure, tasks


def apply_structure_text(project: Project, text: str, *, strict: bool = False) -> None:
    """
    Replace the project's tree with the one described by `text`.

    Existing tasks are renamed and, when their node changed type, given
    details of the new type (old details move to notes). New named nodes
    get companion tasks. Tasks whose node disappeared are kept.
    """
    structure, companions = text_to_structure(text, strict=strict)

    for _, node in iter_nodes(structure):
        task = project.task_list.get(node.id)
        companion = companions.get(node.id)

        if task is None:
            if companion is not None:
                project.task_list[node.id] = companion
            continue

        if companion is not None:
            task.name = companion.name
        if task.node_type is not node.type:
            retype_task(task, node.type)

    orphans = [tid for tid in project.task_list if find_node(structure, tid) is None]
    if orphans:
        logger.info(f"Kept {len(orphans)} task(s) without a structure node: {', '.join(orphans)}")

    project.structure = structure
