"""Workspace scanning and local snapshot generation."""

import logging
from typing import Dict, List, Optional

from .core import FileEntry, IndexSnapshot
from .hashing import compute_bytes_digest
from .ignore import IgnoreSpec
from .storage.base import FileStat, FileSystem
from .utils import new_snapshot_id, now_ms

logger = logging.getLogger(__name__)


class WorkspaceScanner:
    """
    Finds the workspace files subject to sync.

    Hashing is the expensive part, so ``build_snapshot`` only rehashes files
    whose modification time differs from the baseline entry.
    """

    def __init__(self, fs: FileSystem, ignore: IgnoreSpec):
        self.fs = fs
        self.ignore = ignore

    def scan(self) -> Dict[str, FileStat]:
        """Map every non-ignored regular file to its stat."""
        found: Dict[str, FileStat] = {}
        for relpath in self.fs.find_files(self.ignore):
            st = self.fs.stat(relpath)
            if st is None or not st.is_file:
                # Vanished between listing and stat, or not a regular file
                continue
            found[relpath] = st
        return found

    def build_snapshot(
        self,
        baseline: IndexSnapshot,
        environment_id: str,
        extra_parents: Optional[List[str]] = None,
    ) -> IndexSnapshot:
        """Build a fresh snapshot of the workspace against ``baseline``.

        Args:
            baseline: Last snapshot believed materialized (may be empty)
            environment_id: Environment that produced this snapshot
            extra_parents: Additional parent ids (the remote head after a merge)

        Returns:
            New snapshot with a fresh id. Baseline paths missing from disk are
            carried over as ``deleted`` entries with their baseline hash and
            timestamp.
        """
        previous = baseline.file_map()
        entries: List[FileEntry] = []
        rehashed = 0

        for relpath, st in self.scan().items():
            prev = previous.get(relpath)
            if prev is not None and prev.modified_at == st.mtime:
                content_hash = prev.content_hash
            else:
                content_hash = compute_bytes_digest(self.fs.read(relpath))
                rehashed += 1
            entries.append(FileEntry(path=relpath, content_hash=content_hash, modified_at=st.mtime))

        seen = {entry.path for entry in entries}
        for relpath, prev in previous.items():
            if relpath not in seen:
                entries.append(FileEntry(
                    path=relpath,
                    content_hash=prev.content_hash,
                    modified_at=prev.modified_at,
                    deleted=True,
                ))

        parent_ids = [] if baseline.is_empty else [baseline.id]
        for parent in extra_parents or []:
            if parent and parent not in parent_ids:
                parent_ids.append(parent)

        snapshot = IndexSnapshot(
            id=new_snapshot_id(),
            environment_id=environment_id,
            parent_ids=parent_ids,
            files=entries,
            created_at=now_ms(),
        )
        logger.debug(
            "Scanned %d files (%d rehashed) into snapshot %s",
            len(seen), rehashed, snapshot.id[:12],
        )
        return snapshot


def build_local_snapshot(
    fs: FileSystem,
    ignore: IgnoreSpec,
    baseline: IndexSnapshot,
    environment_id: str,
) -> IndexSnapshot:
    """Convenience wrapper around ``WorkspaceScanner.build_snapshot``."""
    return WorkspaceScanner(fs, ignore).build_snapshot(baseline, environment_id)


def same_content(a: IndexSnapshot, b: IndexSnapshot) -> bool:
    """True if both snapshots list the same ``(path, hash, deleted)`` tuples."""
    def key(snapshot: IndexSnapshot):
        return [(e.path, e.content_hash, e.deleted) for e in snapshot.files]
    return key(a) == key(b)
