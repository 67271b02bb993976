# tests/test_validate.py

from plantext.engine.model import (
    AreaDetails,
    NodeType,
    Session,
    StructureNode,
    Task,
)
from plantext.engine.structure_format import apply_structure_text
from plantext.engine.validate import validate_project


class TestValidateProject:
    def test_clean_project(self, project):
        result = validate_project(project)
        assert result.ok
        assert result.project == "demo"

    def test_orphan_from_lenient_parse(self, project):
        apply_structure_text(project, "1 Area: Auth\n  1.1 Component: Login\n    1.1.2 Job: Form\n5.3 Job: Lost\n")
        assert "orphan_node" in validate_project(project).codes()

    def test_misplaced_node(self, project):
        project.structure["1"].children["2.4"] = StructureNode(id="2.4", type=NodeType.JOB)
        result = validate_project(project)
        assert result.codes() == ["misplaced_node"]

    def test_task_list_checks(self, project):
        project.task_list["1"].id = "99"
        project.task_list["8"] = Task(id="8", name="floating")
        project.task_list["1.1"].details = AreaDetails()

        codes = validate_project(project).codes()
        assert "task_id_mismatch" in codes
        assert "task_without_node" in codes
        assert "details_type_mismatch" in codes

    def test_time_log_checks(self, project):
        project.time_log += [
            Session(start_timestamp="2024-03-02T09:00:00Z", tasks=["nope"]),
            Session(start_timestamp="2024-03-03T09:00:00Z"),
        ]
        codes = validate_project(project).codes()
        assert codes == ["session_unknown_task", "multiple_open_sessions"]

    def test_validation_does_not_modify(self, project):
        project.task_list["8"] = Task(id="8")
        validate_project(project)
        assert "8" in project.task_list
