"""Directory transport: mirrors the encrypted object tree to a shared folder.

Useful for a network share or a synced folder, and for tests. The remote
directory has the same layout as ``.securesync/remotes``.
"""

import logging
from pathlib import Path
from typing import Iterator

from ..constants import FILES_DIR, INDEXES_DIR, REFS_DIR
from ..errors import NetworkError
from ..storage.fs import atomic_write_bytes

logger = logging.getLogger(__name__)

OBJECT_DIRS = (INDEXES_DIR, FILES_DIR)


def _iter_objects(base: Path) -> Iterator[Path]:
    """Yield ``<kind>/<prefix>/<suffix>`` relative paths under ``base``."""
    for kind in OBJECT_DIRS:
        kind_dir = base / kind
        if not kind_dir.is_dir():
            continue
        for path in sorted(kind_dir.rglob("*")):
            if path.is_file() and not path.name.startswith("."):
                yield path.relative_to(base)


def _copy_missing(src: Path, dst: Path) -> int:
    """Copy immutable objects present in ``src`` but not ``dst``."""
    copied = 0
    for rel in _iter_objects(src):
        target = dst / rel
        if target.exists():
            continue
        atomic_write_bytes(target, (src / rel).read_bytes())
        copied += 1
    return copied


class DirectoryTransport:
    """Transport over a plain directory."""

    def __init__(self, local_dir: Path, remote_dir: Path):
        """
        Args:
            local_dir: Local ``.securesync/remotes`` directory
            remote_dir: Shared directory acting as the remote
        """
        self.local_dir = Path(local_dir)
        self.remote_dir = Path(remote_dir)

    def _require_remote(self) -> None:
        if not self.remote_dir.is_dir():
            raise NetworkError(f"Remote directory not reachable: {self.remote_dir}")

    def remote_index_exists(self) -> bool:
        refs = self.remote_dir / REFS_DIR
        return refs.is_dir() and any(p.is_file() for p in refs.iterdir())

    def pull_latest(self, branch: str) -> bool:
        self._require_remote()
        copied = _copy_missing(self.remote_dir, self.local_dir)
        logger.debug("Pulled %d objects from %s", copied, self.remote_dir)

        remote_ref = self.remote_dir / REFS_DIR / branch
        if not remote_ref.is_file():
            return False
        data = remote_ref.read_bytes()
        local_ref = self.local_dir / REFS_DIR / branch
        if local_ref.is_file() and local_ref.read_bytes() == data:
            return False
        atomic_write_bytes(local_ref, data)
        logger.info("Branch '%s' updated from remote", branch)
        return True

    def push_latest(self, branch: str) -> bool:
        self.remote_dir.mkdir(parents=True, exist_ok=True)
        copied = _copy_missing(self.local_dir, self.remote_dir)

        local_ref = self.local_dir / REFS_DIR / branch
        if not local_ref.is_file():
            return copied > 0
        data = local_ref.read_bytes()
        remote_ref = self.remote_dir / REFS_DIR / branch
        ref_changed = not remote_ref.is_file() or remote_ref.read_bytes() != data
        if ref_changed:
            atomic_write_bytes(remote_ref, data)
        logger.info("Pushed %d objects to %s", copied, self.remote_dir)
        return copied > 0 or ref_changed

    def clone_all(self) -> None:
        self._require_remote()
        copied = _copy_missing(self.remote_dir, self.local_dir)
        refs = self.remote_dir / REFS_DIR
        if refs.is_dir():
            for ref in sorted(refs.iterdir()):
                if ref.is_file():
                    atomic_write_bytes(self.local_dir / REFS_DIR / ref.name, ref.read_bytes())
        logger.info("Cloned %d objects from %s", copied, self.remote_dir)
