"""Where a build runs, and what it produced."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from storage.models import ProjectRecord
from workspace.filesystem import WorkspaceFileSystem, flatten_structure

logger = logging.getLogger(__name__)

DIST_DIR = "dist"

_PROJECT_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


class CompileMode(StrEnum):
    IN_PLACE = "in_place"
    COPY = "copy"
    MATERIALIZE = "materialize"


def validate_project_id(project_id: str) -> str:
    if not isinstance(project_id, str) or not _PROJECT_ID_RE.fullmatch(project_id):
        raise ValueError(f"Invalid project id: {project_id!r}")
    return project_id


@dataclass
class PublishResult:
    project_id: str
    files: dict[str, dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"project_id": self.project_id, "files": self.files}


class CompileTargetResolver:
    """Resolves the directory a build runs in, under one of three modes.

    ``in_place`` builds the live ``development`` tree; ``copy`` and
    ``materialize`` build a scratch tree at ``<compile_root>/<project_id>``.
    """

    def __init__(self, compile_root: str | Path, fs: WorkspaceFileSystem | None = None):
        self.compile_root = Path(compile_root)
        self.fs = fs or WorkspaceFileSystem()

    def scratch_path(self, project_id: str) -> Path:
        return self.compile_root / validate_project_id(project_id)

    def resolve(self, project: ProjectRecord, mode: CompileMode | str = CompileMode.IN_PLACE) -> Path:
        mode = CompileMode(mode)
        if mode is CompileMode.IN_PLACE:
            return Path(project.development_path)
        if mode is CompileMode.COPY:
            return self.copy(project)
        return self.materialize(project)

    def output_path(self, project: ProjectRecord, mode: CompileMode | str = CompileMode.IN_PLACE) -> Path:
        """Directory a build in *mode* runs in, without preparing it."""
        if CompileMode(mode) is CompileMode.IN_PLACE:
            return Path(project.development_path)
        return self.scratch_path(project.project_id)

    def copy(self, project: ProjectRecord) -> Path:
        target = self.scratch_path(project.project_id)
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(project.development_path, target, symlinks=True)
        logger.info("Copied %s to %s for compile", project.development_path, target)
        return target

    def materialize(self, project: ProjectRecord) -> Path:
        """Copy the tracked file tree (skip rules applied) byte-for-byte into a fresh scratch dir."""
        target = self.scratch_path(project.project_id)
        source = Path(project.development_path)
        files = flatten_structure(self.fs.get_directory_structure(source))
        if target.exists():
            shutil.rmtree(target)
        target.mkdir(parents=True)
        for entry in files.values():
            destination = self.fs.resolve(target, entry["path"])
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.fs.resolve(source, entry["path"]), destination)
        logger.info("Materialized %d file(s) into %s", len(files), target)
        return target

    def collect_dist(self, target: str | Path) -> dict[str, dict[str, str]]:
        dist = Path(target) / DIST_DIR
        if not dist.is_dir():
            return {}
        nodes = self.fs.get_directory_structure(dist, include_content=True)
        return flatten_structure(nodes, with_root=True, sep="/")

    def clear_dist(self, target: str | Path) -> bool:
        dist = Path(target) / DIST_DIR
        if not dist.exists():
            return False
        shutil.rmtree(dist)
        return True
