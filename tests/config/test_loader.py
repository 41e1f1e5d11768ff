"""Tests for config.loader module."""

import json

import pytest

from config.loader import ConfigLoader, load_config
from config.schema import TurnspaceSettings


@pytest.fixture
def dirs(tmp_path):
    home = tmp_path / "home"
    (home / ".turnspace").mkdir(parents=True)
    project = tmp_path / "project"
    (project / ".turnspace").mkdir(parents=True)
    return {"home": home, "project": project}


def _write(root, data):
    path = root / ".turnspace" / "runtime.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


def _loader(dirs, environ=None):
    return ConfigLoader(workspace_root=dirs["project"], environ=environ or {}, user_home=dirs["home"])


class TestConfigLoader:
    def test_system_defaults_only(self, dirs):
        settings = _loader(dirs).load()

        assert isinstance(settings, TurnspaceSettings)
        assert settings.build.command_timeout == 60
        assert settings.build.background_timeout is None
        assert "~" not in settings.storage.file_root

    def test_user_overrides_defaults(self, dirs):
        _write(dirs["home"], {"build": {"compile_mode": "copy"}})

        settings = _loader(dirs).load()

        assert settings.build.compile_mode == "copy"
        assert settings.build.command_timeout == 60

    def test_project_overrides_user(self, dirs):
        _write(dirs["home"], {"build": {"compile_mode": "copy", "queue_maxsize": 3}})
        _write(dirs["project"], {"build": {"compile_mode": "materialize"}})

        settings = _loader(dirs).load()

        assert settings.build.compile_mode == "materialize"
        assert settings.build.queue_maxsize == 3

    def test_env_overrides_project(self, dirs):
        _write(dirs["project"], {"build": {"command_timeout": 30}})
        environ = {
            "TURNSPACE__BUILD__COMMAND_TIMEOUT": "15",
            "TURNSPACE__BUILD__SERIALIZE_WORKSPACE": "false",
            "TURNSPACE__LOGGING__LEVEL": "debug",
            "UNRELATED": "x",
        }

        settings = _loader(dirs, environ).load()

        assert settings.build.command_timeout == 15
        assert settings.build.serialize_workspace is False
        assert settings.logging.level == "DEBUG"

    def test_env_without_key_is_ignored(self, dirs, caplog):
        settings = _loader(dirs, {"TURNSPACE__BUILD": "x"}).load()

        assert settings.build.compile_mode == "in_place"
        assert "TURNSPACE__BUILD" in caplog.text

    def test_overrides_win(self, dirs):
        environ = {"TURNSPACE__BUILD__COMPILE_MODE": "copy"}

        settings = _loader(dirs, environ).load({"build": {"compile_mode": "materialize"}})

        assert settings.build.compile_mode == "materialize"

    def test_null_timeout_survives_merge(self, dirs):
        _write(dirs["project"], {"build": {"command_timeout": None}, "logging": {"level": None}})

        settings = _loader(dirs).load()

        assert settings.build.command_timeout is None
        assert settings.logging.level == "INFO"

    def test_env_vars_and_home_expanded(self, dirs, monkeypatch, tmp_path):
        monkeypatch.setenv("TS_DATA", str(tmp_path / "data"))
        _write(dirs["project"], {"storage": {"file_root": "${TS_DATA}/files"}})

        settings = _loader(dirs).load()

        assert settings.storage.file_root == str(tmp_path / "data" / "files")

    def test_invalid_json_is_skipped(self, dirs, caplog):
        _write(dirs["project"], "{not json")

        settings = _loader(dirs).load()

        assert settings.build.compile_mode == "in_place"
        assert "Ignoring unreadable config" in caplog.text

    def test_non_object_is_skipped(self, dirs, caplog):
        _write(dirs["home"], [1, 2, 3])

        _loader(dirs).load()

        assert "top level must be an object" in caplog.text

    def test_deep_merge(self):
        loader = ConfigLoader()
        merged = loader._deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}}, {"d": 4})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 4}


def test_load_config_reads_project_tier(dirs, monkeypatch):
    monkeypatch.setenv("HOME", str(dirs["home"]))
    _write(dirs["project"], {"build": {"queue_maxsize": 7}})

    assert load_config(workspace_root=dirs["project"]).build.queue_maxsize == 7
