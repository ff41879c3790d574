"""Keys and snapshot builders shared across tests."""

import hashlib
from typing import Iterable, Tuple

from securesync.core import FileEntry, IndexSnapshot

TEST_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
OTHER_KEY = "ffeeddccbbaa99887766554433221100ffeeddccbbaa99887766554433221100"


def h(content: str) -> str:
    """Content hash of a text string, as the scanner computes it."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def entry(path: str, content: str, timestamp: int = 1, deleted: bool = False) -> FileEntry:
    return FileEntry(path=path, content_hash=h(content), modified_at=timestamp, deleted=deleted)


def snapshot(
    snapshot_id: str,
    entries: Iterable[FileEntry] = (),
    parents: Tuple[str, ...] = (),
    created_at: int = 0,
) -> IndexSnapshot:
    return IndexSnapshot(
        id=snapshot_id,
        environment_id="test-env",
        parent_ids=list(parents),
        files=list(entries),
        created_at=created_at,
    )
