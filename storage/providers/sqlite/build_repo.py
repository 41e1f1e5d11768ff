"""SQLite repository for build task status."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from storage.models import BuildTaskRecord

_UPDATABLE = {"status", "build_dir", "start_time", "end_time", "error"}


def _to_db(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


class SQLiteBuildRepo:
    """Repository boundary for the builds table. Logs live in BuildLogger files."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_table()

    def create(self, record: BuildTaskRecord) -> BuildTaskRecord:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO builds (id, project_id, status, build_dir, start_time, end_time, error)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.project_id,
                    record.status,
                    record.build_dir,
                    _to_db(record.start_time),
                    _to_db(record.end_time),
                    record.error,
                ),
            )
            conn.commit()
        return record

    def get(self, build_id: str) -> BuildTaskRecord | None:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM builds WHERE id = ?", (build_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def update(self, build_id: str, **fields: Any) -> BuildTaskRecord | None:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unknown build fields: {', '.join(sorted(unknown))}")
        if fields:
            set_clause = ", ".join(f"{k} = ?" for k in fields)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    f"UPDATE builds SET {set_clause} WHERE id = ?",
                    (*(_to_db(v) for v in fields.values()), build_id),
                )
                conn.commit()
        return self.get(build_id)

    def list_for_project(self, project_id: str, limit: int = 50) -> list[BuildTaskRecord]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM builds WHERE project_id = ? ORDER BY rowid DESC LIMIT ?",
                (project_id, limit),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def close(self) -> None:
        """Compatibility no-op for protocol parity."""
        return None

    def _ensure_table(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS builds (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    build_dir TEXT,
                    start_time TEXT,
                    end_time TEXT,
                    error TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_builds_project ON builds(project_id)")
            conn.commit()

    def _row_to_record(self, row: sqlite3.Row) -> BuildTaskRecord:
        return BuildTaskRecord(
            id=row["id"],
            project_id=row["project_id"],
            status=row["status"],
            build_dir=row["build_dir"],
            start_time=datetime.fromisoformat(row["start_time"]) if row["start_time"] else None,
            end_time=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
            error=row["error"],
        )
