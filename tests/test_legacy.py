# tests/test_legacy.py

from plantext.engine.legacy import migrate_document, sniff_node_type
from plantext.engine.model import NodeType


DOC = {
    "structure": {"1": {"type": "Area", "subtasks": {"1.1": {"type": "Job"}}}},
    "task_list": {
        "1": {"details": {"goals_objectives": ["g1", "g2"], "vision_purpose": "v"}},
        "1.1": {
            "details": {"outcome_dod": ["done"], "context_why": "why"},
            "estimation": {
                "assumptions": ["a1"],
                "post_estimate_notes": {"could_be_bigger": ["big"]},
            },
        },
        "9": "not a task record",
    },
    "time_log": [
        {
            "tasks": ["1.1"],
            "deliverables": ["d"],
            "defects": {"found": ["f"]},
            "retrospective": {"lessons_learned": ["l"]},
        }
    ],
}


class TestSniffing:
    def test_job_keys_win(self):
        assert sniff_node_type({"approach": "x", "purpose": "y"}) is NodeType.JOB

    def test_variants(self):
        assert sniff_node_type({"capabilities": []}) is NodeType.COMPONENT
        assert sniff_node_type({"key_components": ""}) is NodeType.AREA
        assert sniff_node_type({"content": "c"}) is NodeType.FREEFORM

    def test_unknown(self):
        assert sniff_node_type({"summary": "s"}) is None
        assert sniff_node_type("text") is None


class TestMigrateDocument:
    def test_to_strings(self):
        out = migrate_document(DOC)

        assert out["task_list"]["1"]["details"]["goals_objectives"] == "- g1\n- g2"
        assert out["task_list"]["1"]["details"]["vision_purpose"] == "v"
        assert out["task_list"]["1.1"]["details"]["outcome_dod"] == "- done"
        assert out["task_list"]["1.1"]["estimation"]["assumptions"] == "- a1"
        assert out["task_list"]["1.1"]["estimation"]["post_estimate_notes"]["could_be_bigger"] == "- big"
        assert out["task_list"]["9"] == "not a task record"

        session = out["time_log"][0]
        assert session["tasks"] == ["1.1"]
        assert session["deliverables"] == "- d"
        assert session["defects"]["found"] == "- f"
        assert session["retrospective"]["lessons_learned"] == "- l"

    def test_input_is_not_modified(self):
        migrate_document(DOC)
        assert DOC["task_list"]["1"]["details"]["goals_objectives"] == ["g1", "g2"]

    def test_back_to_lists(self):
        back = migrate_document(migrate_document(DOC), to_strings=False)
        assert back["task_list"]["1"]["details"]["goals_objectives"] == ["g1", "g2"]
        assert back["task_list"]["1"]["details"]["vision_purpose"] == "v"
        assert back["time_log"][0]["deliverables"] == ["d"]
        assert back["time_log"][0]["tasks"] == ["1.1"]
