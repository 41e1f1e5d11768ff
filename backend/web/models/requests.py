"""Pydantic request models for the Turnspace web API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from storage.models import Message
from workspace.models import FileOperation, parse_operation

CompileModeName = Literal["in_place", "copy", "materialize"]


class CreateProjectRequest(BaseModel):
    project_id: str | None = None


class FileOperationIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relative_path: str = Field(..., alias="relativePath")
    type: Literal["add", "update", "delete"]
    content: str | None = None

    def to_operation(self) -> FileOperation:
        return parse_operation({"relativePath": self.relative_path, "type": self.type, "content": self.content})


class MessageIn(BaseModel):
    message_id: str | None = None
    role: Literal["user", "assistant", "system"] = "user"
    content: str
    type: str = "text"


class TurnRequest(BaseModel):
    message_id: str
    messages: list[MessageIn] = Field(default_factory=list)
    operations: list[FileOperationIn] = Field(default_factory=list)

    def to_messages(self) -> list[Message]:
        return [
            Message(message_id=m.message_id or self.message_id, role=m.role, content=m.content, type=m.type)
            for m in self.messages
        ]

    def to_operations(self) -> list[FileOperation]:
        return [op.to_operation() for op in self.operations]


class RevertRequest(BaseModel):
    message_id: str


class BuildRequest(BaseModel):
    project_id: str
    mode: CompileModeName | None = None


class CompileRequest(BaseModel):
    project_id: str
    mode: CompileModeName | None = None
