"""Pending local changes since the last sync."""

from dataclasses import dataclass, field
from typing import List

from .core import IndexSnapshot
from .storage.base import FileSystem


@dataclass(slots=True)
class StatusSummary:
    """High-level status summary for UI display."""

    branch: str
    snapshot_id: str  # workspace index id, "" before the first sync
    total_tracked: int = 0
    total_size: int = 0  # Bytes of files present on disk

    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        """Check if there are any local changes."""
        return bool(self.added or self.modified or self.deleted)

    @property
    def is_initialized(self) -> bool:
        return bool(self.snapshot_id)


def compute_status(
    baseline: IndexSnapshot,
    local: IndexSnapshot,
    fs: FileSystem,
    branch: str,
) -> StatusSummary:
    """
    Compare a fresh scan against the workspace index.

    Args:
        baseline: Workspace index (last materialized snapshot)
        local: Scan built against ``baseline``
        fs: File system the scan came from, for sizes
        branch: Current branch name
    """
    summary = StatusSummary(branch=branch, snapshot_id=baseline.id)
    previous = baseline.file_map()

    for entry in local.files:
        before = previous.get(entry.path)
        if entry.deleted:
            if before is not None and not before.deleted:
                summary.deleted.append(entry.path)
            continue

        summary.total_tracked += 1
        st = fs.stat(entry.path)
        if st is not None:
            summary.total_size += st.size

        if before is None or before.deleted:
            summary.added.append(entry.path)
        elif before.content_hash != entry.content_hash:
            summary.modified.append(entry.path)
        else:
            summary.unchanged += 1

    return summary
