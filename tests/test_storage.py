# tests/test_storage.py

import logging

import pytest

from plantext.engine.document import DecodeError
from plantext.engine.storage import (
    RECOVERY_MARKER,
    FileByteStore,
    MemoryByteStore,
    StorageError,
    list_projects,
    load_project,
    migrate_stored_project,
    save_project,
)


@pytest.fixture
def file_store(tmp_path) -> FileByteStore:
    return FileByteStore(tmp_path / "projects")


class TestLoad:
    def test_missing_project_is_created_empty(self, caplog):
        caplog.set_level(logging.INFO)
        result = load_project("newproj", MemoryByteStore())

        assert result.project.name == "newproj"
        assert result.project.task_list == {}
        assert result.level == "info"
        assert "no stored document" in result.notice
        assert "newproj" in caplog.text

    def test_empty_entry(self):
        store = MemoryByteStore({"blank": b"  \n"})
        result = load_project("blank", store)
        assert result.project.name == "blank"
        assert result.level == "info"
        assert "empty" in result.notice

    def test_invalid_content_is_recovered(self, caplog):
        raw = "project_info: {name: [oops\n  still broken"
        store = MemoryByteStore({"bad": raw.encode()})

        result = load_project("bad", store)

        assert result.level == "warning"
        assert not result.ok
        assert result.project.name == "bad"
        assert result.project.notes.startswith(RECOVERY_MARKER + "\n")
        assert raw in result.project.notes
        assert "bad" in caplog.text

    def test_undecodable_bytes_never_raise(self):
        store = MemoryByteStore({"bin": b"\xff\xfe garbage"})
        result = load_project("bin", store)
        assert result.level == "warning"
        assert RECOVERY_MARKER in result.project.notes
        assert "\\xff\\xfe garbage" in result.project.notes

    def test_recovered_bytes_survive_a_save(self):
        store = MemoryByteStore({"bin": b"\xff\xfe garbage"})
        save_project(load_project("bin", store).project, store)
        assert "\\xff\\xfe garbage" in load_project("bin", store).project.notes

    def test_unreadable_name_gives_empty_project(self, tmp_path, caplog):
        result = load_project("team/alpha", FileByteStore(tmp_path))

        assert result.level == "warning"
        assert result.project.name == "team/alpha"
        assert result.project.task_list == {}
        assert "could not be read" in result.notice
        assert "path separators" in caplog.text

    def test_store_read_failure_gives_empty_project(self):
        class BrokenStore(MemoryByteStore):
            def read(self, name):
                raise StorageError(name, "Cannot read file: permission denied")

        result = load_project("p", BrokenStore({"p": b"tags: [a]"}))
        assert result.level == "warning"
        assert "permission denied" in result.notice
        assert result.project.tags == []

    def test_tab_indented_legacy_file(self, file_store):
        file_store.directory.mkdir(parents=True)
        (file_store.directory / "old.json").write_bytes(
            b'{\n\t"project_info": {"id": "x", "name": "old"},\n\t"tags": ["a"]\n}\n'
        )
        result = load_project("old", file_store)
        assert result.notice == ""
        assert result.project.tags == ["a"]

    def test_clean_load(self, project):
        store = MemoryByteStore()
        save_project(project, store)
        result = load_project("demo", store)
        assert result.ok
        assert result.notice == ""
        assert result.project == project

    def test_document_without_name_takes_store_name(self):
        store = MemoryByteStore({"named": b"tags: [a]\n"})
        assert load_project("named", store).project.name == "named"


class TestFileByteStore:
    def test_save_list_and_load(self, file_store, project):
        assert list_projects(file_store) == []

        save_project(project, file_store)

        assert (file_store.directory / "demo.yml").is_file()
        assert list_projects(file_store) == ["demo"]
        assert load_project("demo", file_store).project == project

    def test_legacy_json_entries(self, file_store):
        file_store.directory.mkdir(parents=True)
        (file_store.directory / "old.json").write_text(
            '{"project_info": {"id": "1", "name": "old"}, "structure": {"1": {"type": "Job"}}, '
            '"task_list": {"1": {"name": "t", "details": {"outcome_dod": ["a"]}}}}',
            encoding="utf-8",
        )

        assert list_projects(file_store) == ["old"]
        project = load_project("old", file_store).project
        assert project.task_list["1"].details.outcome_dod == "- a"

    def test_rejects_path_like_names(self, file_store):
        with pytest.raises(StorageError):
            file_store.write("../escape", b"x")

    def test_read_missing(self, file_store):
        with pytest.raises(StorageError):
            file_store.read("nothing")

    def test_save_requires_name(self, project):
        project.info.name = ""
        with pytest.raises(StorageError):
            save_project(project, MemoryByteStore())


class TestMigrateStored:
    def test_lists_to_strings(self):
        store = MemoryByteStore(
            {
                "p": (
                    b"structure:\n  '1': {type: Job}\n"
                    b"task_list:\n  '1':\n    details:\n      outcome_dod: [o]\n      risks: [r1, r2]\n"
                    b"time_log:\n- tasks: ['1']\n  blockers: [b]\n"
                )
            }
        )
        migrate_stored_project(store, "p")
        text = store.read("p").decode()

        assert "[r1, r2]" not in text
        project = load_project("p", store).project
        assert project.task_list["1"].details.risks == "- r1\n- r2"
        assert project.task_list["1"].details.outcome_dod == "- o"
        assert "Migrated details" not in project.task_list["1"].notes
        assert project.time_log[0].tasks == ["1"]
        assert project.time_log[0].blockers == "- b"

    def test_malformed_entry_is_left_alone(self):
        store = MemoryByteStore({"p": b"key: [1, 2"})
        with pytest.raises(DecodeError):
            migrate_stored_project(store, "p")
        assert store.read("p") == b"key: [1, 2"
