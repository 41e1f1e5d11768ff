"""Tests for config.schema module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.schema import (
    BuildConfig,
    LoggingConfig,
    StorageConfig,
    TurnspaceSettings,
    WorkspaceConfig,
)


class TestStorageConfig:
    def test_defaults_live_under_home(self):
        config = StorageConfig()
        home = str(Path.home() / ".turnspace")
        assert config.file_root.startswith(home)
        assert config.db_path.endswith("turnspace.db")

    def test_expands_user(self):
        config = StorageConfig(file_root="~/ws")
        assert config.file_root == str(Path.home() / "ws")

    def test_projects_root(self, tmp_path):
        config = StorageConfig(file_root=str(tmp_path))
        assert config.projects_root == tmp_path / "projects"

    def test_rejects_empty_path(self):
        with pytest.raises(ValidationError):
            StorageConfig(log_root="  ")


class TestBuildConfig:
    def test_defaults(self):
        config = BuildConfig()
        assert config.command_timeout == 60.0
        assert config.background_timeout is None
        assert config.compile_mode == "in_place"
        assert config.queue_maxsize == 0
        assert config.serialize_workspace is True

    def test_compile_mode_normalized(self):
        assert BuildConfig(compile_mode=" Copy ").compile_mode == "copy"

    def test_unknown_compile_mode(self):
        with pytest.raises(ValidationError, match="compile_mode"):
            BuildConfig(compile_mode="docker")

    @pytest.mark.parametrize("field", ["command_timeout", "background_timeout"])
    def test_timeouts_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            BuildConfig(**{field: 0})

    def test_timeout_can_be_disabled(self):
        assert BuildConfig(command_timeout=None).command_timeout is None

    def test_negative_queue_bound(self):
        with pytest.raises(ValidationError):
            BuildConfig(queue_maxsize=-1)


class TestWorkspaceConfig:
    def test_defaults_match_filesystem(self):
        config = WorkspaceConfig()
        assert "node_modules" in config.skip_names
        assert ".png" in config.image_extensions

    def test_extensions_normalized(self):
        config = WorkspaceConfig(image_extensions=["PNG", ".Jpg"])
        assert config.image_extensions == [".png", ".jpg"]


class TestLoggingConfig:
    def test_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")


class TestTurnspaceSettings:
    def test_nested_dicts(self):
        settings = TurnspaceSettings(build={"compile_mode": "materialize"}, logging={"level": "warning"})
        assert settings.build.compile_mode == "materialize"
        assert settings.logging.level == "WARNING"
        assert settings.storage == StorageConfig()
