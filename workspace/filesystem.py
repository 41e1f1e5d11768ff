"""Workspace filesystem: scanning, hashing, safe path resolution and reads/writes.

All methods are synchronous; async callers hop through ``asyncio.to_thread``.
"""

from __future__ import annotations

import base64
import codecs
import hashlib
import logging
import mimetypes
import os
import posixpath
import shutil
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from pathlib import Path, PureWindowsPath

from workspace.errors import PathTraversalError
from workspace.models import FileNode, FileRecord

logger = logging.getLogger(__name__)

DEFAULT_SKIP_NAMES = frozenset({"node_modules", "dist", "build", ".git"})

_IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",
}
DEFAULT_IMAGE_EXTENSIONS = frozenset(_IMAGE_MIME_TYPES)


def content_digest(data: bytes | str) -> str:
    """Digest used for change detection only."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def detect_encoding(data: bytes) -> str:
    """Guess the text encoding of *data*.

    BOMs win; otherwise strict UTF-8 is tried and Latin-1 is the fallback,
    which decodes any byte sequence.
    """
    if data.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    try:
        data.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        return "latin-1"


def flatten_structure(
    nodes: Iterable[FileNode],
    *,
    with_root: bool = False,
    sep: str | None = None,
    root_path: str = "",
) -> dict[str, dict[str, str]]:
    """Flatten a tree into ``{key: {name, path, content}}``; directories vanish."""
    result: dict[str, dict[str, str]] = {}

    def visit(node: FileNode, parent: str) -> None:
        current = posixpath.join(parent, node.name) if parent else node.name
        if node.children is not None:
            for child in node.children:
                visit(child, current)
            return
        key = f"/{current}" if with_root else current
        if sep:
            key = key.replace("/", sep)
        result[key] = {"name": node.name, "path": current, "content": node.content or ""}

    for node in nodes:
        visit(node, root_path)
    return result


class WorkspaceFileSystem:
    """Direct local filesystem access rooted at a workspace directory."""

    def __init__(
        self,
        skip_names: Iterable[str] | None = None,
        image_extensions: Iterable[str] | None = None,
    ) -> None:
        self.skip_names = frozenset(skip_names) if skip_names is not None else DEFAULT_SKIP_NAMES
        exts = image_extensions if image_extensions is not None else DEFAULT_IMAGE_EXTENSIONS
        self.image_extensions = frozenset(e.lower() if e.startswith(".") else f".{e.lower()}" for e in exts)

    # -- path safety -------------------------------------------------------

    def validate_path(self, relative_path: str) -> str:
        """Normalize *relative_path* to POSIX form or raise PathTraversalError."""
        raw = relative_path.replace("\\", "/")
        if not raw.strip():
            raise PathTraversalError(relative_path, "empty path")
        if raw.startswith("/") or PureWindowsPath(relative_path).drive:
            raise PathTraversalError(relative_path, "must be relative")
        normalized = posixpath.normpath(raw)
        if normalized == "." or ".." in normalized.split("/"):
            raise PathTraversalError(relative_path)
        return normalized

    def resolve(self, root: str | Path, relative_path: str) -> Path:
        normalized = self.validate_path(relative_path)
        base = Path(root).resolve()
        candidate = (base / normalized).resolve()
        # @@@workspace-path-boundary - symlinks inside the tree must not lead outside it either.
        try:
            candidate.relative_to(base)
        except ValueError:
            raise PathTraversalError(relative_path) from None
        return candidate

    def should_skip(self, name: str) -> bool:
        return name.startswith(".") or name in self.skip_names

    def is_image(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self.image_extensions

    # -- scanning ----------------------------------------------------------

    def iter_files(self, root: str | Path) -> Iterator[Path]:
        base = Path(root)
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if not self.should_skip(d))
            for name in sorted(filenames):
                if not self.should_skip(name):
                    yield Path(dirpath) / name

    def scan(self, root: str | Path) -> list[FileRecord]:
        """List every tracked file under *root* with its content digest."""
        base = Path(root)
        if not base.is_dir():
            return []
        synced_at = datetime.now(UTC)
        records = []
        for path in self.iter_files(base):
            stat = path.stat()
            records.append(
                FileRecord(
                    relative_path=path.relative_to(base).as_posix(),
                    digest=content_digest(path.read_bytes()),
                    last_modified=datetime.fromtimestamp(stat.st_mtime, UTC),
                    last_sync_time=synced_at,
                )
            )
        records.sort(key=lambda r: r.relative_path)
        return records

    def get_directory_structure(self, root: str | Path, include_content: bool = False) -> list[FileNode]:
        base = Path(root)
        if not base.is_dir():
            raise FileNotFoundError(f"Workspace directory does not exist: {base}")
        return self._walk_tree(base, "", include_content)

    def _walk_tree(self, directory: Path, prefix: str, include_content: bool) -> list[FileNode]:
        nodes: list[FileNode] = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if self.should_skip(entry.name):
                continue
            rel = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir():
                children = self._walk_tree(entry, rel, include_content)
                nodes.append(FileNode(name=entry.name, type="directory", path=rel, children=children))
            else:
                content = self._read_path(entry) if include_content else None
                nodes.append(FileNode(name=entry.name, type="file", path=rel, content=content))
        return nodes

    # -- reads / writes ----------------------------------------------------

    def read_file(self, root: str | Path, relative_path: str) -> str:
        """Read a workspace file as text, or as a data URI for images."""
        target = self.resolve(root, relative_path)
        if not target.exists():
            raise FileNotFoundError(f"File not found: {relative_path}")
        if not target.is_file():
            raise IsADirectoryError(f"Not a file: {relative_path}")
        return self._read_path(target)

    def _read_path(self, path: Path) -> str:
        data = path.read_bytes()
        if self.is_image(path):
            mime = _IMAGE_MIME_TYPES.get(path.suffix.lower()) or mimetypes.guess_type(path.name)[0]
            payload = base64.b64encode(data).decode("ascii")
            return f"data:{mime or 'application/octet-stream'};base64,{payload}"
        return data.decode(detect_encoding(data))

    def write_file(self, root: str | Path, relative_path: str, content: str | bytes) -> Path:
        target = self.resolve(root, relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content
        target.write_bytes(data)
        return target

    def remove(self, root: str | Path, relative_path: str) -> bool:
        """Remove a file or directory tree. Missing targets are a no-op."""
        target = self.resolve(root, relative_path)
        if target.is_file():
            target.unlink()
            return True
        if target.is_dir():
            shutil.rmtree(target)
            return True
        logger.debug("remove skipped, %s does not exist under %s", relative_path, root)
        return False

    def exists(self, root: str | Path, relative_path: str) -> bool:
        return self.resolve(root, relative_path).exists()
