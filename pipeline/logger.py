"""Append-only JSON-lines log per build: ``<log_root>/<build_id>/build.log``."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

LogLevel = Literal["info", "warning", "error"]
LOG_LEVELS: frozenset[str] = frozenset({"info", "warning", "error"})
LOG_FILENAME = "build.log"


@dataclass
class LogEntry:
    timestamp: str
    level: LogLevel
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "details": self.details,
        }


class BuildLogger:
    def __init__(self, log_root: str | Path):
        self.log_root = Path(log_root)
        self._lock = threading.Lock()

    def log_path(self, build_id: str) -> Path:
        if not build_id or build_id.startswith(".") or "/" in build_id or "\\" in build_id:
            raise ValueError(f"Invalid build id: {build_id!r}")
        return self.log_root / build_id / LOG_FILENAME

    def log(
        self,
        build_id: str,
        level: LogLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> LogEntry:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level!r}")
        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            level=level,
            message=message,
            details=dict(details or {}),
        )
        path = self.log_path(build_id)
        line = json.dumps(entry.to_dict(), ensure_ascii=False, default=str)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        return entry

    def get_logs(self, build_id: str) -> list[LogEntry]:
        path = self.log_path(build_id)
        if not path.exists():
            return []
        entries: list[LogEntry] = []
        with path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                text = line.strip()
                if not text:
                    continue
                try:
                    obj = json.loads(text)
                    entries.append(
                        LogEntry(
                            timestamp=obj["timestamp"],
                            level=obj["level"],
                            message=obj["message"],
                            details=obj.get("details") or {},
                        )
                    )
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.warning("Skipping malformed log line %d in %s", lineno, path)
        return entries
