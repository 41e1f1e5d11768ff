"""Pytest configuration for Turnspace tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from storage.providers.sqlite.project_repo import SQLiteProjectRepo  # noqa: E402


@pytest.fixture
def project_repo(tmp_path):
    return SQLiteProjectRepo(tmp_path / "turnspace.db")


@pytest.fixture
def project(tmp_path, project_repo):
    """A registered project with an empty development tree."""
    root = tmp_path / "projects" / "p1"
    development = root / "development"
    development.mkdir(parents=True)
    return project_repo.create_project("p1", str(root), str(development))
