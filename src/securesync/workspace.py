"""Workspace file operations: materialize, quarantine and remove.

Every operation takes a workspace-relative path and refuses to touch the
metadata directory.
"""

import logging
from typing import Optional

from .core import FileEntry
from .hashing import compute_bytes_digest
from .ignore import is_internal_path
from .objects import EncryptedObjectStore
from .storage.base import FileSystem

logger = logging.getLogger(__name__)


class Workspace:
    """File-tree side of sync, backed by the object store for content."""

    def __init__(self, fs: FileSystem, store: EncryptedObjectStore):
        self.fs = fs
        self.store = store

    def _guard(self, path: str, action: str) -> bool:
        if is_internal_path(path):
            logger.warning("Refusing to %s metadata path: %s", action, path)
            return False
        return True

    def current_hash(self, path: str) -> Optional[str]:
        """Hash of the regular file at ``path``, or None if there isn't one."""
        st = self.fs.stat(path)
        if st is None or not st.is_file:
            return None
        return compute_bytes_digest(self.fs.read(path))

    def materialize(self, path: str, content_hash: str, key: str) -> bool:
        """Write the stored content for ``content_hash`` at ``path``.

        Skips the write when the file on disk already has that content.

        Returns:
            True if the file was written
        """
        if not self._guard(path, "materialize"):
            return False
        if self.current_hash(path) == content_hash:
            return False
        self.fs.write(path, self.store.get_blob(content_hash, key))
        logger.debug("Materialized %s (%s)", path, content_hash[:12])
        return True

    def quarantine(self, path: str, root_dir: str, timestamp: str) -> Optional[str]:
        """Move the file at ``path`` to ``<root_dir>/<timestamp>/<path>``.

        Returns:
            Quarantine path, or None if there was no regular file to move
        """
        if not self._guard(path, "quarantine"):
            return None
        st = self.fs.stat(path)
        if st is None or not st.is_file:
            return None
        target = f"{root_dir}/{timestamp}/{path}"
        self.fs.write(target, self.fs.read(path))
        self.fs.delete(path)
        logger.debug("Quarantined %s -> %s", path, target)
        return target

    def save_remote_as_conflict(self, path: str, content_hash: str, key: str, root_dir: str, timestamp: str) -> str:
        """Write the stored version of ``path`` beside the local one.

        Returns:
            Path the remote version was written to
        """
        target = f"{root_dir}/{timestamp}/{path}"
        self.fs.write(target, self.store.get_blob(content_hash, key))
        logger.debug("Saved remote version of %s as %s", path, target)
        return target

    def remove(self, path: str) -> bool:
        """Delete the regular file at ``path``.

        Returns:
            True if a file was deleted; False if absent, not a regular file,
            or inside the metadata directory
        """
        if not self._guard(path, "remove"):
            return False
        st = self.fs.stat(path)
        if st is None or not st.is_file:
            return False
        self.fs.delete(path)
        logger.debug("Removed %s", path)
        return True

    def restore_entry(self, entry: FileEntry, key: str) -> bool:
        """Bring back the content a snapshot entry recorded.

        Raises:
            ValueError: If the entry is a deletion marker
        """
        if entry.deleted:
            raise ValueError(f"Cannot restore deleted entry: {entry.path}")
        return self.materialize(entry.path, entry.content_hash, key)
