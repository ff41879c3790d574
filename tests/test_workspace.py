"""Tests for workspace file operations."""

import pytest

from securesync.errors import ObjectNotFoundError

from tests.fixtures.builders import TEST_KEY, entry, h


@pytest.fixture
def stored(store):
    """Store a blob for ``content`` and return its hash."""
    def _stored(content: str) -> str:
        store.put_blob(h(content), content.encode(), TEST_KEY)
        return h(content)
    return _stored


class TestMaterialize:
    def test_writes_stored_content(self, workspace, stored, tmp_path):
        assert workspace.materialize("dir/a.txt", stored("alpha"), TEST_KEY) is True
        assert (tmp_path / "dir" / "a.txt").read_text() == "alpha"

    def test_skips_when_content_matches(self, workspace, stored, tmp_path, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        assert workspace.materialize("a.txt", stored("alpha"), TEST_KEY) is False

    def test_overwrites_different_content(self, workspace, stored, tmp_path, write_file):
        write_file(tmp_path, "a.txt", "local")
        assert workspace.materialize("a.txt", stored("remote"), TEST_KEY) is True
        assert (tmp_path / "a.txt").read_text() == "remote"

    def test_missing_blob(self, workspace):
        with pytest.raises(ObjectNotFoundError):
            workspace.materialize("a.txt", h("never stored"), TEST_KEY)

    def test_refuses_metadata_path(self, workspace, stored, tmp_path):
        assert workspace.materialize(".securesync/HEAD", stored("evil"), TEST_KEY) is False
        assert not (tmp_path / ".securesync" / "HEAD").exists()


class TestQuarantine:
    def test_moves_file(self, workspace, tmp_path, write_file):
        write_file(tmp_path, "sub/a.txt", "mine")
        target = workspace.quarantine("sub/a.txt", "conflict-local", "2025-01-01T00-00-00-000Z")
        assert target == "conflict-local/2025-01-01T00-00-00-000Z/sub/a.txt"
        assert (tmp_path / target).read_text() == "mine"
        assert not (tmp_path / "sub" / "a.txt").exists()

    def test_nothing_to_move(self, workspace):
        assert workspace.quarantine("missing.txt", "deleted", "ts") is None

    def test_save_remote_as_conflict(self, workspace, stored, tmp_path, write_file):
        write_file(tmp_path, "a.txt", "mine")
        target = workspace.save_remote_as_conflict("a.txt", stored("theirs"), TEST_KEY, "conflict-remote", "ts")
        assert (tmp_path / target).read_text() == "theirs"
        assert (tmp_path / "a.txt").read_text() == "mine"


class TestRemove:
    def test_removes_file(self, workspace, tmp_path, write_file):
        write_file(tmp_path, "a.txt")
        assert workspace.remove("a.txt") is True
        assert not (tmp_path / "a.txt").exists()

    def test_absent(self, workspace):
        assert workspace.remove("a.txt") is False

    def test_directory_left_alone(self, workspace, tmp_path):
        (tmp_path / "dir").mkdir()
        assert workspace.remove("dir") is False
        assert (tmp_path / "dir").is_dir()

    def test_refuses_metadata_path(self, workspace, tmp_path, write_file):
        write_file(tmp_path, ".securesync/HEAD", "main")
        assert workspace.remove(".securesync/HEAD") is False
        assert (tmp_path / ".securesync" / "HEAD").exists()


class TestRestoreEntry:
    def test_restores(self, workspace, stored, tmp_path):
        stored("v1")
        assert workspace.restore_entry(entry("a.txt", "v1"), TEST_KEY) is True
        assert (tmp_path / "a.txt").read_text() == "v1"

    def test_deleted_entry(self, workspace):
        with pytest.raises(ValueError):
            workspace.restore_entry(entry("a.txt", "v1", deleted=True), TEST_KEY)
