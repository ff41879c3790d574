"""Local filesystem implementation of the FileSystem protocol."""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from ..ignore import IgnoreSpec
from .base import FileStat

logger = logging.getLogger(__name__)


def _fsync_dir(path: Path) -> None:
    """Fsync a directory to ensure directory entry updates are durable.

    This is a best-effort operation that may not work on all platforms/filesystems.
    """
    try:
        # Use O_DIRECTORY flag if available (Linux)
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY

        fd = os.open(str(path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # Expected on Windows or filesystems that don't support directory fsync
        logger.debug("Directory fsync not supported for %s", path)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to file with crash safety.

    1. Writes to temp file in the same directory with fsync
    2. Atomic rename to target path (appears all-at-once)
    3. Fsync parent directory to ensure rename is durable
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="wb",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix=""
    ) as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
        tmp = Path(f.name)

    try:
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _fsync_dir(path.parent)


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically write UTF-8 text to file."""
    atomic_write_bytes(path, text.encode("utf-8"))


class LocalFileSystem:
    """
    FileSystem rooted at a local directory.

    Paths that resolve outside the root are rejected.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _escapes(self, path: Path) -> bool:
        target = path.resolve()
        return target != self.root and self.root not in target.parents

    def _abs(self, relpath: str) -> Path:
        target = (self.root / relpath).resolve()
        if self._escapes(target):
            raise ValueError(f"Path {relpath!r} escapes workspace root")
        return target

    def read(self, relpath: str) -> bytes:
        return self._abs(relpath).read_bytes()

    def write(self, relpath: str, data: bytes) -> None:
        atomic_write_bytes(self._abs(relpath), data)

    def stat(self, relpath: str) -> Optional[FileStat]:
        try:
            st = self._abs(relpath).stat()
        except FileNotFoundError:
            return None
        return FileStat(
            size=st.st_size,
            mtime=st.st_mtime_ns // 1_000_000,
            is_file=stat.S_ISREG(st.st_mode),
        )

    def list_directory(self, relpath: str) -> List[Tuple[str, bool]]:
        target = self._abs(relpath)
        if not target.is_dir():
            return []
        return sorted((child.name, child.is_dir()) for child in target.iterdir())

    def create_directory(self, relpath: str) -> None:
        self._abs(relpath).mkdir(parents=True, exist_ok=True)

    def delete(self, relpath: str) -> None:
        self._abs(relpath).unlink()

    def find_files(self, ignore: IgnoreSpec) -> List[str]:
        """Workspace files not excluded by ``ignore``, sorted.

        Symlinks resolving outside the root are skipped with a warning.
        """
        found: List[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            d = Path(dirpath)
            rel_dir = d.relative_to(self.root).as_posix()
            prefix = "" if rel_dir == "." else f"{rel_dir}/"

            # Prune ignored directories in place so os.walk skips them
            dirnames[:] = [
                name for name in dirnames
                if ignore.should_traverse(f"{prefix}{name}")
            ]

            for name in filenames:
                rel = f"{prefix}{name}"
                if ignore.is_ignored(rel):
                    continue
                if (d / name).is_symlink() and self._escapes(d / name):
                    logger.warning("Skipping symlink outside workspace: %s", rel)
                    continue
                found.append(rel)
        return sorted(found)
