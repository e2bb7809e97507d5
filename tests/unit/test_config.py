"""
Unit tests for bootstrap/config.py and bootstrap/entrypoints.py
"""

import json
import logging
import pytest

from calcnotes.bootstrap import config as config_module
from calcnotes.bootstrap.config import CalcNotesConfig, load_config
from calcnotes.bootstrap.entrypoints import create_session, setup_logging
from calcnotes.core.enums import Operation
from calcnotes.kernel.session import CalculatorSession


class TestDefaults:

    def test_defaults(self):
        config = CalcNotesConfig()
        assert config.metadata_key == "calculatorNotes"
        assert config.min_sources == 2
        assert config.decimal_places == 6
        assert config.placement_offset == 200.0

    def test_style_per_operation(self):
        config = CalcNotesConfig()
        assert config.note_style.style_for(Operation.SUM).fill_color == "#d1c4e9"
        assert config.note_style.style_for(Operation.PRODUCT).fill_color == "#c8e6c8"
        assert config.note_style.style_for(Operation.SUM).to_dict() == {
            "fillColor": "#d1c4e9",
            "textAlign": "center",
        }


class TestFromEnv:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CALCNOTES_METADATA_KEY", "notes-v2")
        monkeypatch.setenv("CALCNOTES_MIN_SOURCES", "3")
        monkeypatch.setenv("CALCNOTES_JSON_LOGS", "true")

        config = CalcNotesConfig.from_env()

        assert config.metadata_key == "notes-v2"
        assert config.min_sources == 3
        assert config.logging.json_logs is True


class TestFromFile:

    def test_file_values_win(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CALCNOTES_MIN_SOURCES", raising=False)
        path = tmp_path / "calcnotes.json"
        path.write_text(json.dumps({
            "decimal_places": 3,
            "note_style": {"sum_fill_color": "#ffffff", "unknown": 1},
            "logging": {"level": "DEBUG"},
        }))

        config = CalcNotesConfig.from_file(str(path))

        assert config.decimal_places == 3
        assert config.note_style.sum_fill_color == "#ffffff"
        assert config.logging.level == "DEBUG"
        assert config.min_sources == 2

    def test_missing_file_falls_back(self, tmp_path):
        config = CalcNotesConfig.from_file(str(tmp_path / "nope.json"))
        assert isinstance(config, CalcNotesConfig)

    def test_invalid_min_sources(self, tmp_path):
        path = tmp_path / "calcnotes.json"
        path.write_text(json.dumps({"min_sources": 0}))

        with pytest.raises(ValueError):
            CalcNotesConfig.from_file(str(path))

    def test_to_dict_round_trip(self):
        config = CalcNotesConfig(min_sources=4)
        data = config.to_dict()
        assert CalcNotesConfig._from_dict(data).min_sources == 4

    def test_load_config_sets_global(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "_config", None)
        path = tmp_path / "calcnotes.json"
        path.write_text(json.dumps({"metadata_key": "custom"}))

        config = load_config(str(path))

        assert config.metadata_key == "custom"
        assert config_module.get_config() is config


class TestEntrypoints:

    def test_create_session_uses_config(self, canvas):
        session = create_session(canvas, CalcNotesConfig(metadata_key="k"))

        assert isinstance(session, CalculatorSession)
        assert session.bridge.metadata_key == "k"

    def test_setup_logging_json(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        log_file = tmp_path / "calc.log"
        try:
            setup_logging(level="DEBUG", log_file=str(log_file), json_format=True)
            logging.getLogger("calcnotes.test").info("hello")
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["message"] == "hello"
        assert record["logger"] == "calcnotes.test"
