"""Configuration schema for Turnspace using Pydantic.

Groups:
- storage: where workspaces, build logs, compile scratch dirs and the DB live
- build: command timeouts, compile mode, queue bound, workspace locking
- workspace: scan skip rules and image extensions
- logging: root log level
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from workspace.filesystem import DEFAULT_IMAGE_EXTENSIONS, DEFAULT_SKIP_NAMES

TURNSPACE_HOME = Path.home() / ".turnspace"

COMPILE_MODES = ("in_place", "copy", "materialize")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ============================================================================
# Storage
# ============================================================================


class StorageConfig(BaseModel):
    """Filesystem roots and database location."""

    file_root: str = Field(str(TURNSPACE_HOME / "storage"), description="Root for project workspaces")
    log_root: str = Field(str(TURNSPACE_HOME / "logs" / "builds"), description="Root for per-build logs")
    compile_root: str = Field(str(TURNSPACE_HOME / "compile"), description="Scratch dirs for copy/materialize")
    db_path: str = Field(str(TURNSPACE_HOME / "turnspace.db"), description="SQLite database file")

    @field_validator("file_root", "log_root", "compile_root", "db_path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Path must not be empty")
        return str(Path(v).expanduser())

    @property
    def projects_root(self) -> Path:
        return Path(self.file_root) / "projects"


# ============================================================================
# Build
# ============================================================================


class BuildConfig(BaseModel):
    """Install/build execution settings."""

    command_timeout: float | None = Field(60.0, gt=0, description="Per-command timeout for streaming compiles")
    background_timeout: float | None = Field(None, gt=0, description="Per-command timeout for queued builds")
    compile_mode: str = Field("in_place", description="in_place / copy / materialize")
    queue_maxsize: int = Field(0, ge=0, description="Build queue bound (0 = unbounded)")
    serialize_workspace: bool = Field(True, description="Builds and compiles on one workspace never overlap")

    @field_validator("compile_mode")
    @classmethod
    def validate_compile_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in COMPILE_MODES:
            raise ValueError(f"compile_mode must be one of {', '.join(COMPILE_MODES)}, got {v!r}")
        return v


# ============================================================================
# Workspace
# ============================================================================


class WorkspaceConfig(BaseModel):
    skip_names: list[str] = Field(default_factory=lambda: sorted(DEFAULT_SKIP_NAMES))
    image_extensions: list[str] = Field(default_factory=lambda: sorted(DEFAULT_IMAGE_EXTENSIONS))

    @field_validator("image_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Ensure extensions start with dot and are lowercase."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


# ============================================================================
# Logging
# ============================================================================


class LoggingConfig(BaseModel):
    level: str = Field("INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return v


# ============================================================================
# Main Settings
# ============================================================================


class TurnspaceSettings(BaseModel):
    """Main Turnspace configuration.

    Configuration priority (highest to lowest):
    1. Explicit overrides
    2. Environment variables (TURNSPACE__<GROUP>__<KEY>)
    3. Project config (.turnspace/runtime.json)
    4. User config (~/.turnspace/runtime.json)
    5. System defaults (config/defaults/runtime.json)

    Note: This uses BaseModel instead of BaseSettings; the loader owns
    environment handling so the tiers merge in one place.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage locations")
    build: BuildConfig = Field(default_factory=BuildConfig, description="Build execution")
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig, description="Workspace scanning")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")
