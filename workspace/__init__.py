"""Message-versioned workspaces: live edits, per-turn snapshots and reverts."""

from .errors import (
    PathTraversalError,
    ProjectNotFoundError,
    SnapshotExistsError,
    SnapshotMissingError,
    WorkspaceError,
)
from .filesystem import WorkspaceFileSystem, content_digest, flatten_structure
from .models import AddFile, DeleteFile, FileNode, FileOperation, FileRecord, UpdateFile, parse_operation
from .revert import RevertEngine, RevertResult
from .snapshots import SnapshotManager

__all__ = [
    "WorkspaceError",
    "PathTraversalError",
    "ProjectNotFoundError",
    "SnapshotExistsError",
    "SnapshotMissingError",
    "WorkspaceFileSystem",
    "content_digest",
    "flatten_structure",
    "AddFile",
    "UpdateFile",
    "DeleteFile",
    "FileOperation",
    "FileNode",
    "FileRecord",
    "parse_operation",
    "SnapshotManager",
    "RevertEngine",
    "RevertResult",
]
