"""Shared test fixtures and utilities."""

import itertools
import os
import time
from pathlib import Path

import pytest

from securesync.config import SyncConfig, TransportConfig, save_config
from securesync.constants import KEY_ENV_VAR
from securesync.context import ProjectContext
from securesync.crypto import EncryptionService
from securesync.objects import EncryptedObjectStore
from securesync.storage.fs import LocalFileSystem
from securesync.sync import SyncService
from securesync.transport.factory import make_transport
from securesync.workspace import Workspace

from tests.fixtures.builders import TEST_KEY

# Files written by tests get distinct, increasing mtimes (one second apart,
# starting an hour in the past) so mtime-based hash reuse never sees two
# different contents with the same timestamp.
_mtime_clock = itertools.count(time.time_ns() - 3600 * 10**9, 10**9)


def touch_unique(path: Path) -> None:
    """Give ``path`` a fresh mtime, later than any given before."""
    ns = next(_mtime_clock)
    os.utime(path, ns=(ns, ns))


@pytest.fixture(autouse=True)
def clear_key_env(monkeypatch):
    """Tests pass keys explicitly unless they set the variable themselves."""
    monkeypatch.delenv(KEY_ENV_VAR, raising=False)


@pytest.fixture
def key():
    return TEST_KEY


@pytest.fixture
def write_file():
    """Factory fixture to write a text file below a root with a unique mtime."""
    def _write(root: Path, path: str, content: str = "test content") -> Path:
        file_path = root / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        touch_unique(file_path)
        return file_path
    return _write


@pytest.fixture
def fs(tmp_path):
    return LocalFileSystem(tmp_path)


@pytest.fixture
def store(fs):
    return EncryptedObjectStore(fs, EncryptionService())


@pytest.fixture
def workspace(fs, store):
    return Workspace(fs, store)


@pytest.fixture
def remote_dir(tmp_path):
    """Shared directory acting as the remote for two machines."""
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def make_machine(tmp_path):
    """Factory fixture creating an initialized workspace with a SyncService."""
    def _make(name: str, remote: Path = None, strategy=None) -> SyncService:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        ctx = ProjectContext.init(root)
        config = SyncConfig(environment_id=f"env-{name}")
        if remote is not None:
            config.transport = TransportConfig(provider="directory", location=str(remote))
        save_config(config, ctx)
        return SyncService(ctx, config, transport=make_transport(config, ctx), strategy=strategy)
    return _make
