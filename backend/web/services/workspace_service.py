"""Project workspace service.

A project owns one directory ``<projects_root>/<project_id>`` holding the live
``development`` tree plus one snapshot directory per turn that edited files.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pipeline.targets import validate_project_id
from storage.contracts import ProjectRepo
from storage.models import Message, ProjectRecord
from workspace.errors import ProjectNotFoundError
from workspace.filesystem import WorkspaceFileSystem
from workspace.models import FileNode, FileOperation, FileRecord, SnapshotResult
from workspace.revert import RevertEngine, RevertResult
from workspace.snapshots import DEVELOPMENT_DIR, SnapshotManager

logger = logging.getLogger(__name__)


class WorkspaceService:
    def __init__(
        self,
        *,
        projects: ProjectRepo,
        fs: WorkspaceFileSystem,
        snapshots: SnapshotManager,
        revert: RevertEngine,
        projects_root: str | Path,
    ):
        self.projects = projects
        self.fs = fs
        self.snapshots = snapshots
        self.revert = revert
        self.projects_root = Path(projects_root)

    def require_project(self, project_id: str) -> ProjectRecord:
        project = self.projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def create_project(self, project_id: str | None = None) -> ProjectRecord:
        project_id = validate_project_id(project_id or uuid.uuid4().hex)
        if self.projects.get_project(project_id) is not None:
            raise FileExistsError(f"Project already exists: {project_id}")
        root = self.projects_root / project_id
        development = root / DEVELOPMENT_DIR
        development.mkdir(parents=True, exist_ok=True)
        logger.info("Created project %s at %s", project_id, root)
        return self.projects.create_project(project_id, str(root), str(development))

    def list_projects(self) -> list[ProjectRecord]:
        return self.projects.list_projects()

    async def delete_project(self, project_id: str) -> bool:
        project = await asyncio.to_thread(self.require_project, project_id)
        root = Path(project.root_path)
        if root.exists():
            await asyncio.to_thread(shutil.rmtree, root)
        return await asyncio.to_thread(self.projects.delete_project, project_id)

    async def record_turn(
        self,
        project_id: str,
        message_id: str,
        messages: Sequence[Message],
        operations: Sequence[FileOperation],
    ) -> tuple[SnapshotResult | None, list[Message]]:
        """Apply a turn's file operations (snapshotting them), then persist its messages.

        A turn without operations takes no snapshot.
        """
        project = await asyncio.to_thread(self.require_project, project_id)
        snapshot = None
        if operations:
            snapshot = await self.snapshots.apply(project.development_path, message_id, operations)
        saved = await asyncio.to_thread(self.projects.append_messages, project_id, list(messages))
        return snapshot, saved

    async def revert_to(self, project_id: str, message_id: str) -> RevertResult:
        return await self.revert.revert_to_message(project_id, message_id)

    async def structure(self, project_id: str, include_content: bool = False) -> list[FileNode]:
        project = await asyncio.to_thread(self.require_project, project_id)
        return await asyncio.to_thread(self.fs.get_directory_structure, project.development_path, include_content)

    async def snapshot_structure(self, project_id: str, message_id: str) -> list[FileNode]:
        project = await asyncio.to_thread(self.require_project, project_id)
        path = self.snapshots.require_snapshot(project.root_path, message_id)
        return await asyncio.to_thread(self.fs.get_directory_structure, path)

    async def scan(self, project_id: str) -> list[FileRecord]:
        project = await asyncio.to_thread(self.require_project, project_id)
        return await asyncio.to_thread(self.fs.scan, project.development_path)

    async def read_file(self, project_id: str, path: str) -> str:
        project = await asyncio.to_thread(self.require_project, project_id)
        return await asyncio.to_thread(self.fs.read_file, project.development_path, path)

    def list_snapshots(self, project_id: str) -> list[str]:
        project = self.require_project(project_id)
        return self.snapshots.list_snapshots(project.root_path)

    def describe(self, project: ProjectRecord) -> dict[str, Any]:
        data = project.to_dict()
        data["snapshots"] = self.snapshots.list_snapshots(project.root_path)
        return data
