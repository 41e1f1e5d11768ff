"""Repository protocols the core depends on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from storage.models import BuildTaskRecord, Message, ProjectRecord


class ProjectRepo(Protocol):
    def create_project(self, project_id: str, root_path: str, development_path: str) -> ProjectRecord: ...

    def get_project(self, project_id: str) -> ProjectRecord | None: ...

    def list_projects(self) -> list[ProjectRecord]: ...

    def delete_project(self, project_id: str) -> bool: ...

    def append_messages(self, project_id: str, messages: Sequence[Message]) -> list[Message]: ...

    def truncate_messages(self, project_id: str, keep_up_to_index: int) -> int: ...

    def close(self) -> None: ...


class BuildRepo(Protocol):
    def create(self, record: BuildTaskRecord) -> BuildTaskRecord: ...

    def get(self, build_id: str) -> BuildTaskRecord | None: ...

    def update(self, build_id: str, **fields: Any) -> BuildTaskRecord | None: ...

    def list_for_project(self, project_id: str, limit: int = 50) -> list[BuildTaskRecord]: ...

    def close(self) -> None: ...
