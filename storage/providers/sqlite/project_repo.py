"""SQLite repository for projects and their ordered message history."""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from storage.models import Message, ProjectRecord


def _now_utc() -> datetime:
    return datetime.now(UTC)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteProjectRepo:
    """Repository boundary for projects + messages tables.

    Message order is insertion order (``messages.id``); ``sequence`` is
    assigned here as max + 1 per project.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def create_project(self, project_id: str, root_path: str, development_path: str) -> ProjectRecord:
        now = _now_utc()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO projects (project_id, root_path, development_path, created_at) VALUES (?, ?, ?, ?)",
                (project_id, root_path, development_path, now.isoformat()),
            )
            conn.commit()
        return ProjectRecord(
            project_id=project_id,
            root_path=root_path,
            development_path=development_path,
            created_at=now,
        )

    def get_project(self, project_id: str) -> ProjectRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM projects WHERE project_id = ?", (project_id,)).fetchone()
            if row is None:
                return None
            messages = conn.execute(
                "SELECT * FROM messages WHERE project_id = ? ORDER BY id ASC",
                (project_id,),
            ).fetchall()
        return ProjectRecord(
            project_id=row["project_id"],
            root_path=row["root_path"],
            development_path=row["development_path"],
            created_at=_parse_ts(row["created_at"]),
            messages=[self._row_to_message(m) for m in messages],
        )

    def list_projects(self) -> list[ProjectRecord]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM projects ORDER BY created_at DESC").fetchall()
        return [
            ProjectRecord(
                project_id=row["project_id"],
                root_path=row["root_path"],
                development_path=row["development_path"],
                created_at=_parse_ts(row["created_at"]),
            )
            for row in rows
        ]

    def delete_project(self, project_id: str) -> bool:
        with self._connect() as conn:
            conn.execute("DELETE FROM messages WHERE project_id = ?", (project_id,))
            cur = conn.execute("DELETE FROM projects WHERE project_id = ?", (project_id,))
            conn.commit()
        return cur.rowcount > 0

    def append_messages(self, project_id: str, messages: Sequence[Message]) -> list[Message]:
        if not messages:
            return []
        saved: list[Message] = []
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(sequence), 0) AS seq FROM messages WHERE project_id = ?",
                (project_id,),
            ).fetchone()
            sequence = int(row["seq"])
            for msg in messages:
                sequence += 1
                created_at = msg.created_at or _now_utc()
                conn.execute(
                    """
                    INSERT INTO messages (project_id, message_id, sequence, role, content, type, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        project_id,
                        msg.message_id,
                        sequence,
                        msg.role,
                        msg.content,
                        msg.type,
                        created_at.isoformat(),
                    ),
                )
                saved.append(
                    Message(
                        message_id=msg.message_id,
                        role=msg.role,
                        content=msg.content,
                        type=msg.type,
                        sequence=sequence,
                        created_at=created_at,
                    )
                )
            conn.commit()
        return saved

    def truncate_messages(self, project_id: str, keep_up_to_index: int) -> int:
        """Keep messages ``[0, keep_up_to_index]`` by position; return how many were dropped."""
        if keep_up_to_index < -1:
            raise ValueError(f"keep_up_to_index must be >= -1, got {keep_up_to_index}")
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id FROM messages WHERE project_id = ? ORDER BY id ASC",
                (project_id,),
            ).fetchall()
            doomed = [row["id"] for row in rows[keep_up_to_index + 1 :]]
            if not doomed:
                return 0
            placeholders = ",".join("?" * len(doomed))
            # @@@param_sql - keep IN-clause parameterized.
            conn.execute(f"DELETE FROM messages WHERE id IN ({placeholders})", doomed)
            conn.commit()
        return len(doomed)

    def close(self) -> None:
        """Compatibility no-op for protocol parity."""
        return None

    def _ensure_tables(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    project_id TEXT PRIMARY KEY,
                    root_path TEXT NOT NULL,
                    development_path TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id TEXT NOT NULL,
                    message_id TEXT NOT NULL,
                    sequence INTEGER NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'text',
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_messages_project
                ON messages(project_id, id)
                """
            )
            conn.commit()

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            message_id=row["message_id"],
            role=row["role"],
            content=row["content"],
            type=row["type"],
            sequence=row["sequence"],
            created_at=_parse_ts(row["created_at"]),
        )
