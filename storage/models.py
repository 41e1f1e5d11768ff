"""Shared storage domain models: provider-neutral data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

MessageRole = Literal["user", "assistant", "system"]
BuildStatus = Literal["pending", "queued", "building", "success", "failed"]


@dataclass
class Message:
    """One chat record. Several records may share a ``message_id`` (one turn)."""

    message_id: str
    role: str
    content: str
    type: str = "text"
    sequence: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "role": self.role,
            "content": self.content,
            "type": self.type,
            "sequence": self.sequence,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class ProjectRecord:
    project_id: str
    root_path: str
    development_path: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime | None = None

    def to_dict(self, include_messages: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "project_id": self.project_id,
            "root_path": self.root_path,
            "development_path": self.development_path,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data


@dataclass
class BuildTaskRecord:
    id: str
    project_id: str
    status: BuildStatus = "pending"
    build_dir: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    error: str | None = None
    logs: list[dict[str, Any]] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.status in ("success", "failed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "status": self.status,
            "build_dir": self.build_dir,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "error": self.error,
            "logs": self.logs,
        }
