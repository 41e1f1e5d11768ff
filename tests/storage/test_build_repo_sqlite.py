from datetime import UTC, datetime

import pytest

from storage.models import BuildTaskRecord
from storage.providers.sqlite.build_repo import SQLiteBuildRepo


def test_create_update_get(tmp_path):
    repo = SQLiteBuildRepo(tmp_path / "turnspace.db")
    repo.create(BuildTaskRecord(id="build-1", project_id="p1"))

    started = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    repo.update("build-1", status="building", start_time=started, build_dir="/w/p1")
    record = repo.update("build-1", status="failed", error="boom")

    assert record.status == "failed"
    assert record.error == "boom"
    assert record.start_time == started
    assert record.build_dir == "/w/p1"
    assert record.finished
    assert repo.get("missing") is None


def test_update_rejects_unknown_fields(tmp_path):
    repo = SQLiteBuildRepo(tmp_path / "turnspace.db")
    repo.create(BuildTaskRecord(id="build-1", project_id="p1"))

    with pytest.raises(ValueError, match="project_id"):
        repo.update("build-1", project_id="other")


def test_list_for_project_newest_first(tmp_path):
    repo = SQLiteBuildRepo(tmp_path / "turnspace.db")
    for i in range(3):
        repo.create(BuildTaskRecord(id=f"build-{i}", project_id="p1"))
    repo.create(BuildTaskRecord(id="build-x", project_id="p2"))

    assert [r.id for r in repo.list_for_project("p1")] == ["build-2", "build-1", "build-0"]
    assert [r.id for r in repo.list_for_project("p1", limit=1)] == ["build-2"]
