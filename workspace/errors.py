"""Workspace error taxonomy."""

from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for workspace and snapshot failures."""


class PathTraversalError(WorkspaceError, ValueError):
    """A relative path escapes the workspace root."""

    def __init__(self, path: str, reason: str = "escapes workspace root") -> None:
        super().__init__(f"Illegal path {path!r}: {reason}")
        self.path = path


class SnapshotMissingError(WorkspaceError, FileNotFoundError):
    """No snapshot directory exists for a message id."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"No snapshot for message {message_id}")
        self.message_id = message_id


class SnapshotExistsError(WorkspaceError, FileExistsError):
    """A snapshot for this message id was already taken."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Snapshot for message {message_id} already exists")
        self.message_id = message_id


class ProjectNotFoundError(WorkspaceError, LookupError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id
