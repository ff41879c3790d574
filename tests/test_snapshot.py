"""Tests for workspace scanning."""

from unittest.mock import patch

from securesync.ignore import IgnoreSpec
from securesync.snapshot import WorkspaceScanner, build_local_snapshot, same_content

from tests.fixtures.builders import entry, h, snapshot


class TestWorkspaceScanner:
    """Scans produce fresh snapshots against a baseline."""

    def test_scan_from_empty(self, tmp_path, fs, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        write_file(tmp_path, "sub/b.txt", "beta")
        snap = build_local_snapshot(fs, IgnoreSpec(tmp_path), snapshot(""), "env-1")
        assert [(e.path, e.content_hash) for e in snap.files] == [
            ("a.txt", h("alpha")),
            ("sub/b.txt", h("beta")),
        ]
        assert snap.environment_id == "env-1"
        assert snap.parent_ids == []
        assert snap.id

    def test_parent_is_baseline(self, tmp_path, fs, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        scanner = WorkspaceScanner(fs, IgnoreSpec(tmp_path))
        base = snapshot("snap-0001", [entry("a.txt", "alpha")])
        snap = scanner.build_snapshot(base, "env", extra_parents=["remote-1", "snap-0001"])
        assert snap.parent_ids == ["snap-0001", "remote-1"]

    def test_missing_baseline_paths_become_deleted_entries(self, tmp_path, fs):
        base = snapshot("snap-0001", [entry("gone.txt", "old", timestamp=42)])
        snap = build_local_snapshot(fs, IgnoreSpec(tmp_path), base, "env")
        gone = snap.file_map()["gone.txt"]
        assert gone.deleted
        assert gone.content_hash == h("old")
        assert gone.modified_at == 42

    def test_reuses_hash_when_mtime_unchanged(self, tmp_path, fs, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        scanner = WorkspaceScanner(fs, IgnoreSpec(tmp_path))
        first = scanner.build_snapshot(snapshot(""), "env")
        with patch("securesync.snapshot.compute_bytes_digest") as digest:
            second = scanner.build_snapshot(first, "env")
        digest.assert_not_called()
        assert second.file_map()["a.txt"].content_hash == h("alpha")

    def test_rehashes_when_mtime_changes(self, tmp_path, fs, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        scanner = WorkspaceScanner(fs, IgnoreSpec(tmp_path))
        first = scanner.build_snapshot(snapshot(""), "env")
        write_file(tmp_path, "a.txt", "changed")
        second = scanner.build_snapshot(first, "env")
        assert second.file_map()["a.txt"].content_hash == h("changed")

    def test_rescan_is_same_content_with_new_id(self, tmp_path, fs, write_file):
        write_file(tmp_path, "a.txt", "alpha")
        scanner = WorkspaceScanner(fs, IgnoreSpec(tmp_path))
        first = scanner.build_snapshot(snapshot(""), "env")
        second = scanner.build_snapshot(first, "env")
        assert second.id != first.id
        assert same_content(first, second)

    def test_ignored_and_metadata_files_skipped(self, tmp_path, fs, write_file):
        write_file(tmp_path, "keep.txt")
        write_file(tmp_path, "skip.log")
        write_file(tmp_path, ".securesync/HEAD", "main")
        snap = build_local_snapshot(fs, IgnoreSpec(tmp_path, ["*.log"]), snapshot(""), "env")
        assert [e.path for e in snap.files] == ["keep.txt"]


class TestSameContent:
    def test_ignores_ids_and_timestamps(self):
        a = snapshot("a-000001", [entry("x", "1", timestamp=1)])
        b = snapshot("b-000002", [entry("x", "1", timestamp=2)])
        assert same_content(a, b)

    def test_deleted_flag_matters(self):
        a = snapshot("a-000001", [entry("x", "1")])
        b = snapshot("b-000002", [entry("x", "1", deleted=True)])
        assert not same_content(a, b)
