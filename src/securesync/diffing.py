"""Three-way change classification between ancestor, local and remote snapshots."""

from typing import Dict, Optional

from .core import ChangeKind, ChangeRecord, ChangeSet, FileEntry, IndexSnapshot


def _record(
    path: str,
    kind: ChangeKind,
    ancestor: Optional[FileEntry],
    local: Optional[FileEntry],
    remote: Optional[FileEntry],
) -> ChangeRecord:
    return ChangeRecord(
        path=path,
        change_kind=kind,
        local_hash=local.content_hash if local else "",
        remote_hash=remote.content_hash if remote else "",
        local_timestamp=local.modified_at if local else 0,
        remote_timestamp=remote.modified_at if remote else 0,
        ancestor_hash=ancestor.content_hash if ancestor else "",
        remote_deleted=remote.deleted if remote else False,
    )


def classify_path(
    path: str,
    ancestor: Optional[FileEntry],
    local: Optional[FileEntry],
    remote: Optional[FileEntry],
) -> Optional[ChangeRecord]:
    """
    Classify one path.

    Presence means "has an entry", deleted or not. The ``deleted`` flag is
    only consulted for one-sided paths that the ancestor also lists.

    Returns:
        The record, or None if the path needs no action.
    """
    if local is not None and remote is not None:
        if local.content_hash == remote.content_hash:
            return None
        ancestor_hash = ancestor.content_hash if ancestor else ""
        if local.content_hash == ancestor_hash:
            return _record(path, ChangeKind.REMOTE_UPDATE, ancestor, local, remote)
        if remote.content_hash == ancestor_hash:
            return _record(path, ChangeKind.LOCAL_UPDATE, ancestor, local, remote)
        # Both changed: the later modification labels the record
        if local.modified_at > remote.modified_at:
            return _record(path, ChangeKind.LOCAL_UPDATE, ancestor, local, remote)
        return _record(path, ChangeKind.REMOTE_UPDATE, ancestor, local, remote)

    if local is not None:
        if ancestor is None:
            return _record(path, ChangeKind.LOCAL_ADD, ancestor, local, None)
        if not local.deleted:
            return _record(path, ChangeKind.REMOTE_DELETE, ancestor, local, None)
        return None

    if remote is not None:
        if ancestor is None:
            return _record(path, ChangeKind.REMOTE_ADD, ancestor, None, remote)
        if not remote.deleted:
            return _record(path, ChangeKind.LOCAL_DELETE, ancestor, None, remote)
        return None

    return None


def classify(ancestor: IndexSnapshot, local: IndexSnapshot, remote: IndexSnapshot) -> ChangeSet:
    """
    Compute the typed change set over the union of all three path sets.

    Args:
        ancestor: Last snapshot synced in this workspace (may be empty)
        local: Fresh scan of the workspace
        remote: Head of the branch as fetched from the remote

    Returns:
        ChangeSet with at most one record per path, ordered by path.
    """
    a_map: Dict[str, FileEntry] = ancestor.file_map()
    l_map: Dict[str, FileEntry] = local.file_map()
    r_map: Dict[str, FileEntry] = remote.file_map()

    records = []
    for path in sorted(set(a_map) | set(l_map) | set(r_map)):
        record = classify_path(path, a_map.get(path), l_map.get(path), r_map.get(path))
        if record is not None:
            records.append(record)
    return ChangeSet(records=records)
