"""Tests for the command line interface."""

import re

import pytest
from typer.testing import CliRunner

from securesync.cli import app
from securesync.config import load_config
from securesync.constants import KEY_ENV_VAR
from securesync.context import ProjectContext
from securesync.sync import SyncService

from tests.fixtures.builders import TEST_KEY

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch, write_file):
    """An uninitialized directory with one file, as the current directory."""
    work = tmp_path / "work"
    work.mkdir()
    write_file(work, "notes.md", "hello")
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def initialized(workdir, tmp_path):
    result = runner.invoke(app, ["init", "--remote", str(tmp_path / "remote"), "--key", TEST_KEY])
    assert result.exit_code == 0, result.output
    return workdir


class TestKeygen:
    def test_prints_hex_key(self):
        result = runner.invoke(app, ["keygen"])
        assert result.exit_code == 0
        assert re.fullmatch(r"[0-9a-f]{64}", result.output.strip())


class TestInit:
    def test_init_current_directory(self, initialized, tmp_path):
        assert (initialized / ".securesync" / "config.yaml").is_file()
        assert (tmp_path / "remote" / "refs" / "main").is_file()

    def test_init_path_argument(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        target = tmp_path / "new-dir"
        result = runner.invoke(app, ["init", str(target), "--key", TEST_KEY, "--branch", "work"])
        assert result.exit_code == 0, result.output
        assert "work" in result.output
        assert (target / ".securesync" / "HEAD").read_text().strip() == "work"

    def test_key_from_environment(self, workdir, monkeypatch):
        monkeypatch.setenv(KEY_ENV_VAR, TEST_KEY)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0, result.output

    def test_missing_key(self, workdir):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert not (workdir / ".securesync").exists()


class TestCommands:
    def test_status_clean(self, initialized):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "No local changes" in result.output

    def test_status_with_changes(self, initialized, write_file):
        write_file(initialized, "todo.md", "new")
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "todo.md" in result.output

    def test_status_outside_workspace(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "securesync init" in result.output

    def test_sync(self, initialized, write_file):
        assert "Everything up to date" in runner.invoke(app, ["sync", "--key", TEST_KEY]).output
        write_file(initialized, "todo.md", "new")
        result = runner.invoke(app, ["sync", "--key", TEST_KEY])
        assert result.exit_code == 0, result.output
        assert "pushed" in result.output

    def test_sync_without_key(self, initialized):
        result = runner.invoke(app, ["sync"])
        assert result.exit_code == 1

    def test_history(self, initialized):
        result = runner.invoke(app, ["history", "--key", TEST_KEY])
        assert result.exit_code == 0, result.output
        assert "Snapshots" in result.output

    def test_branches(self, initialized):
        result = runner.invoke(app, ["branch", "create", "feature", "--key", TEST_KEY])
        assert result.exit_code == 0, result.output
        result = runner.invoke(app, ["branch", "checkout", "feature", "--key", TEST_KEY])
        assert result.exit_code == 0, result.output
        result = runner.invoke(app, ["branch", "list"])
        assert "* feature" in result.output
        assert "main" in result.output

    def test_checkout_unknown_branch(self, initialized):
        result = runner.invoke(app, ["branch", "checkout", "nope", "--key", TEST_KEY])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_restore(self, initialized, write_file):
        ctx = ProjectContext(initialized)
        first = SyncService(ctx, load_config(ctx)).index.load_ws_index().id
        write_file(initialized, "notes.md", "changed")
        runner.invoke(app, ["sync", "--key", TEST_KEY])

        result = runner.invoke(app, ["restore", "notes.md", "--snapshot", first, "--key", TEST_KEY])
        assert result.exit_code == 0, result.output
        assert (initialized / "notes.md").read_text() == "hello"
