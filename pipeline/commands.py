"""Package-manager detection and install/build command rendering."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pipeline.errors import UnsupportedProjectError

PackageManager = Literal["npm", "yarn", "pnpm"]

BUILD_SCRIPT = "build"

_LOCKFILES: tuple[tuple[str, PackageManager], ...] = (
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
)


@dataclass(frozen=True)
class BuildCommands:
    package_manager: PackageManager
    install: str
    build: str

    def steps(self) -> tuple[str, str]:
        return (self.install, self.build)


def detect_package_manager(directory: str | Path) -> PackageManager:
    base = Path(directory)
    for lockfile, manager in _LOCKFILES:
        if (base / lockfile).exists():
            return manager
    return "npm"


def read_package_json(directory: str | Path) -> dict:
    path = Path(directory) / "package.json"
    if not path.is_file():
        raise UnsupportedProjectError(f"No package.json in {directory}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UnsupportedProjectError(f"Invalid package.json in {directory}: {e}") from e
    if not isinstance(data, dict):
        raise UnsupportedProjectError(f"package.json in {directory} is not an object")
    return data


def render_commands(manager: PackageManager, script: str = BUILD_SCRIPT) -> BuildCommands:
    if manager == "npm":
        return BuildCommands(manager, "npm install", f"npm run {script}")
    return BuildCommands(manager, f"{manager} install", f"{manager} {script}")


def get_build_commands(directory: str | Path) -> BuildCommands:
    """Resolve install + build commands for a JS project directory.

    The script invoked is always ``build``, run by name: the body of
    ``scripts.build`` is never read or interpolated into the command line, so
    the package manager resolves it (and reports the error when it is missing).
    """
    read_package_json(directory)
    return render_commands(detect_package_manager(directory))
