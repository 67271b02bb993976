# tests/test_config.py

from pathlib import Path

import pytest

from plantext.config import (
    DEFAULT_STORAGE_DIR,
    ConfigError,
    load_config,
    open_store,
)
from plantext.engine.storage import load_project, save_project


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config(environ={})
        assert cfg.storage_dir == DEFAULT_STORAGE_DIR
        assert cfg.document_suffix == ".yml"
        assert cfg.encoding == "utf-8"

    def test_missing_file_is_fine(self, tmp_path):
        assert load_config(tmp_path / "nope.yml", environ={}).storage_dir == DEFAULT_STORAGE_DIR

    def test_file_values(self, tmp_path):
        path = tmp_path / "plantext.yml"
        path.write_text("storage_dir: data\ndocument_suffix: yaml\n", encoding="utf-8")

        cfg = load_config(path, environ={})

        assert cfg.storage_dir == tmp_path / "data"
        assert cfg.document_suffix == ".yaml"

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "plantext.yml"
        path.write_text("storage_dir: data\n", encoding="utf-8")
        env = {"PLANTEXT_STORAGE_DIR": str(tmp_path / "env"), "PLANTEXT_DOCUMENT_SUFFIX": ".plan"}

        cfg = load_config(path, environ=env)

        assert cfg.storage_dir == tmp_path / "env"
        assert cfg.document_suffix == ".plan"

    @pytest.mark.parametrize("content", ["- a\n- b\n", "key: [1, 2"])
    def test_bad_file(self, tmp_path, content):
        path = tmp_path / "plantext.yml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, environ={})


class TestOpenStore:
    def test_store_uses_config(self, tmp_path, project):
        cfg = load_config(environ={"PLANTEXT_STORAGE_DIR": str(tmp_path), "PLANTEXT_DOCUMENT_SUFFIX": "plan"})
        store = open_store(cfg)

        save_project(project, store, encoding=cfg.encoding)

        assert Path(tmp_path / "demo.plan").is_file()
        assert load_project("demo", store, encoding=cfg.encoding).project == project
