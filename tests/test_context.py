"""Tests for workspace discovery and metadata paths."""

import pytest

from securesync.context import ProjectContext
from securesync.errors import WorkspaceNotFoundError


class TestProjectContext:
    """Root discovery walks up from the start path."""

    def test_init_creates_metadata_dir(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        assert ctx.root == tmp_path.resolve()
        assert ctx.remotes_dir.is_dir()
        assert ProjectContext.is_initialized(tmp_path)

    def test_init_requires_existing_dir(self, tmp_path):
        with pytest.raises(WorkspaceNotFoundError):
            ProjectContext.init(tmp_path / "missing")

    def test_finds_root_from_subdirectory(self, tmp_path):
        ProjectContext.init(tmp_path)
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)
        assert ProjectContext(sub).root == tmp_path.resolve()
        assert not ProjectContext.is_initialized(sub)

    def test_not_found(self, tmp_path):
        with pytest.raises(WorkspaceNotFoundError):
            ProjectContext(tmp_path)

    def test_paths(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        meta = tmp_path.resolve() / ".securesync"
        assert ctx.storage_dir == meta
        assert ctx.config_path == meta / "config.yaml"
        assert ctx.head_path == meta / "HEAD"
        assert ctx.lock_path == meta / "sync.lock"

    def test_resolve(self, tmp_path, monkeypatch):
        ctx = ProjectContext.init(tmp_path)
        (tmp_path / "docs").mkdir()
        monkeypatch.chdir(tmp_path / "docs")
        assert ctx.resolve("notes.md") == "docs/notes.md"
        assert ctx.resolve(tmp_path / "a.txt") == "a.txt"
        with pytest.raises(ValueError):
            ctx.resolve(tmp_path.parent / "elsewhere.txt")

    def test_should_ignore(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        assert ctx.should_ignore(".securesync/HEAD")
        assert not ctx.should_ignore("notes.md")
