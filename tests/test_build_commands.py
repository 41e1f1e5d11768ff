import json

import pytest

from pipeline.commands import BuildCommands, detect_package_manager, get_build_commands
from pipeline.errors import UnsupportedProjectError


def _package_json(path, scripts=None):
    (path / "package.json").write_text(json.dumps({"name": "demo", "scripts": scripts or {}}))


@pytest.mark.parametrize(
    ("lockfile", "manager", "install", "build"),
    [
        (None, "npm", "npm install", "npm run build"),
        ("yarn.lock", "yarn", "yarn install", "yarn build"),
        ("pnpm-lock.yaml", "pnpm", "pnpm install", "pnpm build"),
    ],
)
def test_commands_per_package_manager(tmp_path, lockfile, manager, install, build):
    _package_json(tmp_path, {"build": "vite build"})
    if lockfile:
        (tmp_path / lockfile).write_text("")

    commands = get_build_commands(tmp_path)

    assert commands == BuildCommands(manager, install, build)
    assert commands.steps() == (install, build)


def test_yarn_lock_wins_over_pnpm(tmp_path):
    (tmp_path / "yarn.lock").write_text("")
    (tmp_path / "pnpm-lock.yaml").write_text("")

    assert detect_package_manager(tmp_path) == "yarn"


def test_build_script_name_falls_back_to_build(tmp_path):
    _package_json(tmp_path)

    assert get_build_commands(tmp_path).build == "npm run build"


def test_build_script_body_is_not_interpolated(tmp_path):
    _package_json(tmp_path, {"build": "rm -rf / && vite build", "compile": "tsc"})

    commands = get_build_commands(tmp_path)

    assert commands.build == "npm run build"
    assert "vite" not in commands.build



def test_missing_package_json(tmp_path):
    with pytest.raises(UnsupportedProjectError):
        get_build_commands(tmp_path)


def test_invalid_package_json(tmp_path):
    (tmp_path / "package.json").write_text("{not json")

    with pytest.raises(UnsupportedProjectError):
        get_build_commands(tmp_path)
