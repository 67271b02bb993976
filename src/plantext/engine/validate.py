# src/plantext/engine/validate.py

"""
Project consistency rules.

This module checks a loaded Project against the invariants that the
lenient load path does not enforce.

Responsibilities:
- structure tree sanity (parent ids, placement),
- task list <-> tree agreement,
- time log references and open sessions.

It does NOT parse, load or repair anything; every finding is a
non-fatal issue with a stable code.
"""

from dataclasses import dataclass
from typing import Mapping, Sequence

from .model import (
    Project,
    StructureNode,
    find_node,
    iter_nodes,
    parent_id,
    sorted_ids,
)


# ---------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """
    A single validation problem.

    `code` is a stable identifier suitable for tests and filtering.
    """

    code: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    Aggregated validation result for one project.
    """

    project: str
    issues: Sequence[ValidationIssue]

    @property
    def ok(self) -> bool:
        return not self.issues

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]


# ---------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------

def validate_project(project: Project) -> ValidationResult:
    """
    Validate a project without modifying it.

    Notes:
    - A node placed at the root although its id has a parent segment
      is an orphan (the lenient structure parser puts it there).
    - Tasks without a node are reported, never removed.
    """
    issues: list[ValidationIssue] = []

    # -----------------------------------------------------------------
    # Structure tree
    # -----------------------------------------------------------------

    for node_id in sorted_ids(project.structure):
        pid = parent_id(node_id)
        if pid is not None:
            issues.append(
                ValidationIssue(
                    code="orphan_node",
                    message=f"Node {node_id} sits at the root but its parent '{pid}' is missing",
                )
            )

    _check_children(project.structure, issues)

    # -----------------------------------------------------------------
    # Task list
    # -----------------------------------------------------------------

    for key in sorted_ids(project.task_list):
        task = project.task_list[key]

        if task.id != key:
            issues.append(
                ValidationIssue(
                    code="task_id_mismatch",
                    message=f"Task stored under '{key}' carries id '{task.id}'",
                )
            )

        node = find_node(project.structure, key)
        if node is None:
            issues.append(
                ValidationIssue(
                    code="task_without_node",
                    message=f"Task {key} has no node in the structure tree",
                )
            )
        elif task.node_type is not node.type:
            issues.append(
                ValidationIssue(
                    code="details_type_mismatch",
                    message=(
                        f"Task {key} has {task.node_type.value} details "
                        f"but its node is a {node.type.value}"
                    ),
                )
            )

    # -----------------------------------------------------------------
    # Time log
    # -----------------------------------------------------------------

    open_count = 0
    for i, session in enumerate(project.time_log, start=1):
        if session.is_open:
            open_count += 1
        for task_id in session.tasks:
            if task_id not in project.task_list:
                issues.append(
                    ValidationIssue(
                        code="session_unknown_task",
                        message=f"Session {i} references unknown task '{task_id}'",
                    )
                )

    if open_count > 1:
        issues.append(
            ValidationIssue(
                code="multiple_open_sessions",
                message=f"{open_count} sessions have no end timestamp (at most one may be open)",
            )
        )

    return ValidationResult(project=project.name, issues=tuple(issues))


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _check_children(
    nodes: Mapping[str, StructureNode],
    issues: list[ValidationIssue],
) -> None:
    """
    Every child's id must extend its parent's id by one segment.
    """
    for _, node in iter_nodes(nodes):
        for child_id, child in node.children.items():
            if parent_id(child.id) != node.id or child_id != child.id:
                issues.append(
                    ValidationIssue(
                        code="misplaced_node",
                        message=f"Node {child.id} is stored under {node.id}",
                    )
                )
