import asyncio

import pytest

from workspace.errors import PathTraversalError, SnapshotExistsError, SnapshotMissingError
from workspace.filesystem import WorkspaceFileSystem, content_digest
from workspace.models import AddFile, DeleteFile, UpdateFile, parse_operation
from workspace.snapshots import SnapshotManager


@pytest.fixture
def dev(tmp_path):
    path = tmp_path / "proj" / "development"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def manager():
    return SnapshotManager()


def test_add_then_scan_yields_single_record(dev, manager):
    manager.apply_operations(dev, "m1", [AddFile("a.txt", "hi")])

    records = WorkspaceFileSystem().scan(dev)

    assert len(records) == 1
    assert records[0].relative_path == "a.txt"
    assert records[0].digest == content_digest("hi")


def test_snapshot_matches_development_and_is_isolated(dev, manager):
    result = manager.apply_operations(
        dev,
        "m1",
        [AddFile("src/app.js", "v1"), AddFile("README.md", "readme")],
    )

    snapshot = dev.parent / "m1"
    assert result.snapshot_path == str(snapshot)
    assert (snapshot / "src/app.js").read_text() == "v1"
    assert (snapshot / "README.md").read_text() == "readme"

    manager.apply_operations(dev, "m2", [UpdateFile("src/app.js", "v2"), DeleteFile("README.md")])

    assert (snapshot / "src/app.js").read_text() == "v1"
    assert (snapshot / "README.md").exists()
    assert (dev / "src/app.js").read_text() == "v2"
    assert not (dev / "README.md").exists()
    assert (dev.parent / "m2" / "src/app.js").read_text() == "v2"


def test_operations_apply_in_order(dev, manager):
    manager.apply_operations(
        dev,
        "m1",
        [AddFile("x.txt", "first"), UpdateFile("x.txt", "second"), DeleteFile("gone"), AddFile("y.txt")],
    )

    assert (dev / "x.txt").read_text() == "second"
    assert (dev / "y.txt").read_text() == ""


def test_traversal_touches_nothing(dev, manager):
    with pytest.raises(PathTraversalError):
        manager.apply_operations(dev, "m1", [AddFile("ok.txt", "x"), AddFile("../../etc/passwd", "pwned")])

    assert list(dev.iterdir()) == []
    assert not (dev.parent / "m1").exists()


def test_existing_snapshot_is_never_overwritten(dev, manager):
    manager.apply_operations(dev, "m1", [AddFile("a.txt", "one")])

    with pytest.raises(SnapshotExistsError):
        manager.apply_operations(dev, "m1", [AddFile("a.txt", "two")])

    assert (dev / "a.txt").read_text() == "one"
    assert (dev.parent / "m1" / "a.txt").read_text() == "one"


@pytest.mark.parametrize("message_id", ["development", ".hidden", "a/b", "..", ""])
def test_unsafe_message_ids(dev, manager, message_id):
    with pytest.raises(PathTraversalError):
        manager.apply_operations(dev, message_id, [AddFile("a.txt", "x")])


def test_list_require_and_delete(dev, manager):
    root = dev.parent
    manager.apply_operations(dev, "m2", [AddFile("a.txt")])
    manager.apply_operations(dev, "m1", [AddFile("b.txt")])

    assert manager.list_snapshots(root) == ["m1", "m2"]
    assert manager.require_snapshot(root, "m1") == root / "m1"
    with pytest.raises(SnapshotMissingError):
        manager.require_snapshot(root, "m9")

    assert manager.delete_snapshot(root, "m1") is True
    assert manager.delete_snapshot(root, "m1") is False
    assert manager.list_snapshots(root) == ["m2"]


def test_async_apply(dev, manager):
    result = asyncio.run(manager.apply(dev, "m1", [AddFile("a.txt", "hi")]))

    assert result.applied == [AddFile("a.txt", "hi")]
    assert result.to_dict()["applied"] == [{"relativePath": "a.txt", "type": "add", "content": "hi"}]
    assert manager.has_snapshot(dev.parent, "m1")


def test_parse_operation_wire_form():
    assert parse_operation({"relativePath": "a.txt", "type": "add", "content": "x"}) == AddFile("a.txt", "x")
    assert parse_operation({"path": "a.txt", "type": "UPDATE"}) == UpdateFile("a.txt", "")
    assert parse_operation({"relativePath": "a.txt", "type": "delete", "content": "ignored"}) == DeleteFile("a.txt")
    with pytest.raises(ValueError):
        parse_operation({"relativePath": "a.txt", "type": "rename"})
    with pytest.raises(ValueError):
        parse_operation({"type": "add"})
