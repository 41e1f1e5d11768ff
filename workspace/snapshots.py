"""Apply a turn's file operations to ``development`` and snapshot the result.

Layout::

    <project root>/
        development/      live workspace (HEAD)
        <message_id>/     immutable full copy taken after that turn
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import assert_never

from workspace.errors import PathTraversalError, SnapshotExistsError, SnapshotMissingError
from workspace.filesystem import WorkspaceFileSystem
from workspace.models import AddFile, DeleteFile, FileOperation, SnapshotResult, UpdateFile

logger = logging.getLogger(__name__)

DEVELOPMENT_DIR = "development"


def validate_message_id(message_id: str) -> str:
    """A message id doubles as a directory name, so it must be one plain segment."""
    if not message_id or not message_id.strip():
        raise PathTraversalError(message_id, "empty message id")
    if message_id == DEVELOPMENT_DIR:
        raise PathTraversalError(message_id, "reserved name")
    if message_id.startswith("."):
        raise PathTraversalError(message_id, "hidden names are not allowed")
    if "/" in message_id or "\\" in message_id or "\x00" in message_id:
        raise PathTraversalError(message_id, "must be a single path segment")
    return message_id


class SnapshotManager:
    def __init__(self, fs: WorkspaceFileSystem | None = None) -> None:
        self.fs = fs or WorkspaceFileSystem()

    def snapshot_path(self, root: str | Path, message_id: str) -> Path:
        return Path(root) / validate_message_id(message_id)

    def require_snapshot(self, root: str | Path, message_id: str) -> Path:
        path = self.snapshot_path(root, message_id)
        if not path.is_dir():
            raise SnapshotMissingError(message_id)
        return path

    def has_snapshot(self, root: str | Path, message_id: str) -> bool:
        return self.snapshot_path(root, message_id).is_dir()

    def delete_snapshot(self, root: str | Path, message_id: str) -> bool:
        path = self.snapshot_path(root, message_id)
        if not path.is_dir():
            return False
        shutil.rmtree(path)
        logger.info("Deleted snapshot %s", path)
        return True

    def list_snapshots(self, root: str | Path) -> list[str]:
        base = Path(root)
        if not base.is_dir():
            return []
        return sorted(
            entry.name
            for entry in base.iterdir()
            if entry.is_dir() and entry.name != DEVELOPMENT_DIR and not entry.name.startswith(".")
        )

    def apply_operations(
        self,
        development_path: str | Path,
        message_id: str,
        operations: Sequence[FileOperation],
    ) -> SnapshotResult:
        """Apply *operations* in order, then copy ``development`` to ``<root>/<message_id>``.

        Every path is validated before the first write. A mid-batch I/O
        failure leaves earlier writes in place and takes no snapshot.
        """
        dev = Path(development_path)
        root = dev.parent
        target = self.snapshot_path(root, message_id)
        for op in operations:
            self.fs.validate_path(op.path)
        if target.exists():
            raise SnapshotExistsError(message_id)

        dev.mkdir(parents=True, exist_ok=True)
        for op in operations:
            self._apply_one(dev, op)

        self._copy_atomic(dev, target)
        logger.info("Applied %d operation(s) and snapshotted %s", len(operations), target)
        return SnapshotResult(message_id=message_id, snapshot_path=str(target), applied=list(operations))

    async def apply(
        self,
        development_path: str | Path,
        message_id: str,
        operations: Sequence[FileOperation],
    ) -> SnapshotResult:
        return await asyncio.to_thread(self.apply_operations, development_path, message_id, operations)

    def _apply_one(self, dev: Path, op: FileOperation) -> None:
        match op:
            case AddFile(path=path, content=content) | UpdateFile(path=path, content=content):
                self.fs.write_file(dev, path, content)
            case DeleteFile(path=path):
                self.fs.remove(dev, path)
            case _:
                assert_never(op)

    def _copy_atomic(self, source: Path, target: Path) -> None:
        # @@@snapshot-rename - copy into a hidden sibling first; readers never see a partial snapshot.
        staging = target.parent / f".{target.name}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            shutil.copytree(source, staging, symlinks=True)
            os.replace(staging, target)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
