"""Restore a workspace to a prior turn and prune everything newer."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from storage.contracts import ProjectRepo
from workspace.errors import PathTraversalError, ProjectNotFoundError
from workspace.snapshots import SnapshotManager

logger = logging.getLogger(__name__)


@dataclass
class RevertResult:
    message_id: str
    restored: bool
    kept_messages: int = 0
    pruned_message_ids: list[str] = field(default_factory=list)
    deleted_snapshots: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "restored": self.restored,
            "kept_messages": self.kept_messages,
            "pruned_message_ids": self.pruned_message_ids,
            "deleted_snapshots": self.deleted_snapshots,
        }


def _restore_tree(snapshot: Path, development: Path) -> None:
    if development.exists():
        shutil.rmtree(development)
    shutil.copytree(snapshot, development, symlinks=True)


class RevertEngine:
    """Reverts ``development`` to a snapshot and truncates message history.

    Steps are not transactional: a crash after the restore but before the
    truncation leaves the workspace reverted with history intact.
    """

    def __init__(self, projects: ProjectRepo, snapshots: SnapshotManager) -> None:
        self.projects = projects
        self.snapshots = snapshots

    async def revert_to_message(self, project_id: str, message_id: str) -> RevertResult:
        project = await asyncio.to_thread(self.projects.get_project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        root = Path(project.root_path)
        snapshot = self.snapshots.snapshot_path(root, message_id)
        if not snapshot.is_dir():
            logger.info("No snapshot for %s in project %s, nothing to revert", message_id, project_id)
            return RevertResult(message_id=message_id, restored=False, kept_messages=len(project.messages))

        await asyncio.to_thread(_restore_tree, snapshot, Path(project.development_path))
        logger.info("Restored %s from snapshot %s", project.development_path, message_id)

        last_index = -1
        for index, message in enumerate(project.messages):
            if message.message_id == message_id:
                last_index = index
        if last_index < 0:
            logger.warning(
                "Message %s not found in project %s history; messages left untouched",
                message_id,
                project_id,
            )
            return RevertResult(message_id=message_id, restored=True, kept_messages=len(project.messages))

        pruned = project.messages[last_index + 1 :]
        if pruned:
            await asyncio.to_thread(self.projects.truncate_messages, project_id, last_index)

        pruned_ids: list[str] = []
        for message in pruned:
            if message.message_id and message.message_id != message_id and message.message_id not in pruned_ids:
                pruned_ids.append(message.message_id)

        deleted: list[str] = []
        for pruned_id in pruned_ids:
            try:
                removed = await asyncio.to_thread(self.snapshots.delete_snapshot, root, pruned_id)
            except PathTraversalError:
                logger.warning("Skipping unsafe snapshot id %r in project %s", pruned_id, project_id)
                continue
            if removed:
                deleted.append(pruned_id)

        return RevertResult(
            message_id=message_id,
            restored=True,
            kept_messages=last_index + 1,
            pruned_message_ids=pruned_ids,
            deleted_snapshots=deleted,
        )
