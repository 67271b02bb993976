# tests/test_document.py

import pytest

from plantext.engine.document import (
    DecodeError,
    ShapeMismatchError,
    coerce_details,
    decode_document,
    document_to_project,
    encode_document,
    project_to_document,
    retype_task,
)
from plantext.engine.model import (
    AreaDetails,
    ComponentDetails,
    FreeformDetails,
    JobDetails,
    NodeType,
    Task,
)


def _legacy_doc(task: dict, node_type: str = "Area") -> dict:
    return {
        "project_info": {"id": "p", "name": "legacy"},
        "structure": {"1": {"type": node_type}},
        "task_list": {"1": task},
        "time_log": [],
        "tags": [],
    }


class TestEncoding:
    def test_round_trip(self, project):
        raw = encode_document(project_to_document(project))
        assert isinstance(raw, bytes)
        loaded = document_to_project(decode_document(raw))
        assert loaded == project

    def test_optional_fields_are_omitted(self, project):
        project.notes = ""
        project.task_list["1"].estimation = None
        doc = project_to_document(project)

        assert "notes" not in doc
        assert "estimation" not in doc["task_list"]["1"]
        assert "notes" not in doc["task_list"]["1"]
        assert doc["task_list"]["1.1.2"]["notes"] == "Remember the captcha."

    def test_unicode_is_kept_readable(self, project):
        project.notes = "Milestone — done"
        assert "Milestone — done".encode() in encode_document(project_to_document(project))

    def test_legacy_json_decodes(self):
        data = decode_document(b'{"project_info": {"id": "x", "name": "j"}, "tags": ["a"]}')
        assert data["tags"] == ["a"]

    def test_tab_indented_legacy_json_decodes(self):
        raw = b'{\n\t"project_info": {"id": "x", "name": "j"},\n\t"tags": ["a"]\n}\n'
        data = decode_document(raw)
        assert data["project_info"]["name"] == "j"
        assert data["tags"] == ["a"]

    def test_tab_indented_non_json_is_still_rejected(self):
        with pytest.raises(DecodeError, match="Invalid YAML"):
            decode_document(b"a:\n\tb: 1\n")

    @pytest.mark.parametrize("raw", [b"key: [1, 2", b"- a\n- b\n", b"\xff\xfe\x00"])
    def test_malformed_input(self, raw):
        with pytest.raises(DecodeError):
            decode_document(raw, name="broken")

    def test_empty_input_is_empty_mapping(self):
        assert decode_document(b"") == {}


class TestScalarShapes:
    def test_scalar_tags_become_one_tag(self):
        project = document_to_project(decode_document(b"tags: 5\n"))
        assert project.tags == ["5"]

    def test_scalar_task_fields(self):
        raw = (
            b"structure:\n  '1': {type: Job}\n"
            b"task_list:\n  '1':\n    tags: 3\n"
            b"    estimation:\n      schedule:\n        milestones: 3\n"
        )
        task = document_to_project(decode_document(raw)).task_list["1"]
        assert task.tags == ["3"]
        assert [m.name for m in task.estimation.schedule.milestones] == ["3"]

    def test_single_milestone_record(self):
        raw = (
            b"structure:\n  '1': {type: Job}\n"
            b"task_list:\n  '1':\n    estimation:\n      schedule:\n"
            b"        milestones: {name: Beta, date: '2024-03-05'}\n"
        )
        milestones = document_to_project(decode_document(raw)).task_list["1"].estimation.schedule.milestones
        assert [(m.name, m.date) for m in milestones] == [("Beta", "2024-03-05")]

    @pytest.mark.parametrize("value", [".nan", ".inf", "-.inf", "1e400"])
    def test_non_finite_ratings_read_as_zero(self, value):
        raw = f"time_log:\n- focus_rating: {value}\n  context_switches: {value}\n  tasks: 7\n".encode()
        session = document_to_project(decode_document(raw)).time_log[0]
        assert session.focus_rating == 0
        assert session.context_switches == 0
        assert session.tasks == ["7"]


class TestLegacyMigration:
    def test_string_estimation_and_string_details(self):
        project = document_to_project(
            _legacy_doc({"name": "Auth", "details": "Old free text", "estimation": "2h"})
        )
        task = project.task_list["1"]

        assert task.notes == "Migrated details:\nOld free text\n\n2h"
        assert task.estimation is None
        assert isinstance(task.details, AreaDetails)
        assert task.details.is_empty()

    def test_string_estimation_without_details(self):
        project = document_to_project(_legacy_doc({"name": "Auth", "estimation": "2h"}))
        assert project.task_list["1"].notes == "2h"
        assert project.task_list["1"].estimation is None

    def test_estimation_text_precedes_existing_notes(self):
        project = document_to_project(_legacy_doc({"estimation": "2h", "notes": "old"}))
        assert project.task_list["1"].notes == "2h\n\nold"

    def test_mapping_without_signature_is_migrated(self):
        project = document_to_project(_legacy_doc({"details": {"summary": "s"}}, "Job"))
        task = project.task_list["1"]
        assert task.notes == "Migrated details:\nsummary: s"
        assert isinstance(task.details, JobDetails)

    def test_conforming_legacy_lists(self):
        project = document_to_project(
            _legacy_doc({"details": {"goals_objectives": ["g1", "g2"], "vision_purpose": "v"}})
        )
        assert project.task_list["1"].details.goals_objectives == "- g1\n- g2"
        assert project.task_list["1"].notes == ""

    def test_task_missing_from_tree_is_sniffed(self):
        doc = _legacy_doc({})
        doc["task_list"]["7"] = {"name": "x", "details": {"purpose": "p"}}
        task = document_to_project(doc).task_list["7"]
        assert isinstance(task.details, ComponentDetails)
        assert task.details.purpose == "p"

    def test_unknown_task_without_shape_is_freeform(self):
        doc = _legacy_doc({})
        doc["task_list"]["7"] = {"name": "x", "details": "loose"}
        task = document_to_project(doc).task_list["7"]
        assert isinstance(task.details, FreeformDetails)
        assert task.details.content == "loose"

    def test_missing_sections_and_name(self):
        project = document_to_project({}, name="fresh")
        assert project.name == "fresh"
        assert project.structure == {}
        assert project.task_list == {}
        assert project.time_log == []

    def test_numeric_and_date_scalars(self):
        raw = (
            b"structure:\n  1:\n    type: Job\n"
            b"task_list:\n  1:\n    name: 42\n"
            b"time_log:\n- start_timestamp: 2024-01-15T09:00:00Z\n  tasks: [1]\n"
        )
        project = document_to_project(decode_document(raw))
        assert project.task_list["1"].name == "42"
        assert project.time_log[0].start_timestamp == "2024-01-15T09:00:00Z"
        assert project.time_log[0].tasks == ["1"]


class TestCoerceDetails:
    def test_empty_payloads(self):
        for raw in (None, "", "  ", [], {}):
            assert coerce_details(raw, NodeType.JOB) == JobDetails()

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            coerce_details({"purpose": "x"}, NodeType.AREA)
        with pytest.raises(ShapeMismatchError):
            coerce_details("text", NodeType.JOB)


class TestRetype:
    def test_non_empty_details_move_to_notes(self):
        task = Task(id="1", details=AreaDetails(vision_purpose="v"), notes="keep")
        retype_task(task, NodeType.JOB)
        assert isinstance(task.details, JobDetails)
        assert task.notes == "Migrated details:\nvision_purpose: v\n\nkeep"

    def test_empty_details_leave_notes_alone(self):
        task = Task(id="1", details=AreaDetails())
        retype_task(task, NodeType.FREEFORM)
        assert isinstance(task.details, FreeformDetails)
        assert task.notes == ""
