"""Tests for the directory transport and transport factory."""

import pytest

from securesync.config import SyncConfig, TransportConfig
from securesync.context import ProjectContext
from securesync.errors import ConfigError, NetworkError
from securesync.transport import DirectoryTransport, make_transport


def populate(base, refs=("main",)):
    (base / "indexes" / "0190ab").mkdir(parents=True)
    (base / "indexes" / "0190ab" / "cdef").write_bytes(b"snapshot-bytes")
    (base / "files" / "ab").mkdir(parents=True)
    (base / "files" / "ab" / "cdef").write_bytes(b"blob-bytes")
    (base / "refs").mkdir(parents=True)
    for name in refs:
        (base / "refs" / name).write_bytes(f"ref-{name}".encode())


@pytest.fixture
def dirs(tmp_path):
    local = tmp_path / "local" / "remotes"
    remote = tmp_path / "remote"
    local.mkdir(parents=True)
    return local, remote


class TestDirectoryTransport:
    """Mirroring the encrypted object tree to a shared directory."""

    def test_push_creates_remote(self, dirs):
        local, remote = dirs
        populate(local)
        transport = DirectoryTransport(local, remote)
        assert transport.push_latest("main") is True
        assert (remote / "files" / "ab" / "cdef").read_bytes() == b"blob-bytes"
        assert (remote / "refs" / "main").read_bytes() == b"ref-main"
        assert transport.remote_index_exists()

    def test_second_push_is_noop(self, dirs):
        local, remote = dirs
        populate(local)
        transport = DirectoryTransport(local, remote)
        transport.push_latest("main")
        assert transport.push_latest("main") is False

    def test_push_replaces_ref_only(self, dirs):
        local, remote = dirs
        populate(local)
        transport = DirectoryTransport(local, remote)
        transport.push_latest("main")
        (local / "refs" / "main").write_bytes(b"moved")
        assert transport.push_latest("main") is True
        assert (remote / "refs" / "main").read_bytes() == b"moved"

    def test_existing_objects_never_overwritten(self, dirs):
        local, remote = dirs
        populate(local)
        populate(remote)
        (remote / "files" / "ab" / "cdef").write_bytes(b"remote version")
        DirectoryTransport(local, remote).push_latest("main")
        assert (remote / "files" / "ab" / "cdef").read_bytes() == b"remote version"

    def test_pull(self, dirs):
        local, remote = dirs
        populate(remote)
        transport = DirectoryTransport(local, remote)
        assert transport.pull_latest("main") is True
        assert (local / "indexes" / "0190ab" / "cdef").read_bytes() == b"snapshot-bytes"
        assert (local / "refs" / "main").read_bytes() == b"ref-main"
        assert transport.pull_latest("main") is False

    def test_pull_unknown_branch(self, dirs):
        local, remote = dirs
        populate(remote)
        assert DirectoryTransport(local, remote).pull_latest("work") is False
        assert not (local / "refs" / "work").exists()

    def test_pull_unreachable(self, dirs):
        local, remote = dirs
        with pytest.raises(NetworkError):
            DirectoryTransport(local, remote).pull_latest("main")

    def test_clone_all_refs(self, dirs):
        local, remote = dirs
        populate(remote, refs=("main", "work"))
        DirectoryTransport(local, remote).clone_all()
        assert sorted(p.name for p in (local / "refs").iterdir()) == ["main", "work"]
        assert (local / "files" / "ab" / "cdef").exists()

    def test_remote_index_exists(self, dirs):
        local, remote = dirs
        transport = DirectoryTransport(local, remote)
        assert not transport.remote_index_exists()
        remote.mkdir()
        assert not transport.remote_index_exists()
        populate(remote)
        assert transport.remote_index_exists()


class TestMakeTransport:
    def test_no_provider(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        assert make_transport(SyncConfig(), ctx) is None

    def test_directory(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        config = SyncConfig(transport=TransportConfig(provider="directory", location=str(tmp_path / "share")))
        transport = make_transport(config, ctx)
        assert isinstance(transport, DirectoryTransport)
        assert transport.local_dir == ctx.remotes_dir
        assert transport.remote_dir == tmp_path / "share"

    def test_relative_location(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        config = SyncConfig(transport=TransportConfig(provider="directory", location="../share"))
        assert make_transport(config, ctx).remote_dir == ctx.root / "../share"

    def test_location_required(self, tmp_path):
        ctx = ProjectContext.init(tmp_path)
        config = SyncConfig(transport=TransportConfig(provider="directory"))
        with pytest.raises(ConfigError):
            make_transport(config, ctx)
