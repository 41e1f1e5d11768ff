"""Workspace domain types: scan records, tree nodes and file operations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Literal

FileStatus = Literal["synced", "modified", "conflict"]
NodeType = Literal["file", "directory"]


@dataclass
class FileRecord:
    """Derived view of one workspace file, produced by scanning.

    Only ``synced`` is ever produced here; ``modified`` and ``conflict`` are
    reserved for callers that track edits outside the core.
    """

    relative_path: str
    digest: str
    last_modified: datetime
    last_sync_time: datetime
    status: FileStatus = "synced"

    def to_dict(self) -> dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "digest": self.digest,
            "last_modified": self.last_modified.isoformat(),
            "last_sync_time": self.last_sync_time.isoformat(),
            "status": self.status,
        }


@dataclass
class FileNode:
    """One entry of a nested directory tree."""

    name: str
    type: NodeType
    path: str
    children: list[FileNode] | None = None
    content: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type, "path": self.path}
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.content is not None:
            data["content"] = self.content
        return data


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AddFile:
    path: str
    content: str = ""
    kind: ClassVar[str] = "add"


@dataclass(frozen=True)
class UpdateFile:
    path: str
    content: str = ""
    kind: ClassVar[str] = "update"


@dataclass(frozen=True)
class DeleteFile:
    path: str
    kind: ClassVar[str] = "delete"


FileOperation = AddFile | UpdateFile | DeleteFile

_OPERATION_TYPES: dict[str, type[AddFile] | type[UpdateFile] | type[DeleteFile]] = {
    "add": AddFile,
    "update": UpdateFile,
    "delete": DeleteFile,
}


def parse_operation(raw: Mapping[str, Any]) -> FileOperation:
    """Build a FileOperation from its wire form.

    Accepts ``{"relativePath" | "path", "type", "content"?}``.
    """
    op_type = str(raw.get("type", "")).strip().lower()
    cls = _OPERATION_TYPES.get(op_type)
    if cls is None:
        raise ValueError(f"Unknown file operation type: {raw.get('type')!r}")
    path = raw.get("relativePath", raw.get("path"))
    if not isinstance(path, str) or not path:
        raise ValueError("File operation requires a relative path")
    if cls is DeleteFile:
        return DeleteFile(path=path)
    content = raw.get("content")
    return cls(path=path, content="" if content is None else str(content))


def operation_to_dict(op: FileOperation) -> dict[str, Any]:
    data: dict[str, Any] = {"relativePath": op.path, "type": op.kind}
    if not isinstance(op, DeleteFile):
        data["content"] = op.content
    return data


@dataclass
class SnapshotResult:
    """Outcome of applying one turn's operations."""

    message_id: str
    snapshot_path: str
    applied: list[FileOperation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "snapshot_path": self.snapshot_path,
            "applied": [operation_to_dict(op) for op in self.applied],
        }
