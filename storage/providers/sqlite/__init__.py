"""SQLite storage provider implementations."""

from .build_repo import SQLiteBuildRepo
from .project_repo import SQLiteProjectRepo

__all__ = [
    "SQLiteProjectRepo",
    "SQLiteBuildRepo",
]
