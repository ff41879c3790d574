"""Index manager: snapshots, branch pointers and the workspace index.

A snapshot is written once under its id and never modified. The branch
pointer is advanced only after the snapshot (and every blob it references)
has been stored. The workspace index is a plaintext copy of the snapshot
last materialized on disk and never leaves the machine.
"""

import json
import logging
from typing import Dict, List, Optional

from .constants import DEFAULT_BRANCH, HEAD_FILE, SECURESYNC_DIR, WS_INDEX_FILE
from .core import FileEntry, IndexSnapshot
from .errors import CorruptObjectError, DigestMismatchError
from .hashing import compute_bytes_digest
from .history import IndexHistory
from .ignore import IgnoreSpec
from .objects import EncryptedObjectStore
from .snapshot import WorkspaceScanner
from .utils import new_snapshot_id, now_ms

logger = logging.getLogger(__name__)


class IndexManager:
    """Builds, persists and loads snapshots; owns refs, HEAD and wsIndex."""

    def __init__(self, store: EncryptedObjectStore, environment_id: str, meta_dir: str = SECURESYNC_DIR):
        self.store = store
        self.fs = store.fs
        self.environment_id = environment_id
        self.head_path = f"{meta_dir}/{HEAD_FILE}"
        self.ws_index_path = f"{meta_dir}/{WS_INDEX_FILE}"

    # ---- Building ---------------------------------------------------------

    def build_local_snapshot(
        self,
        baseline: IndexSnapshot,
        ignore: IgnoreSpec,
        extra_parents: Optional[List[str]] = None,
    ) -> IndexSnapshot:
        """Scan the workspace into a new snapshot whose parent is ``baseline``."""
        scanner = WorkspaceScanner(self.fs, ignore)
        return scanner.build_snapshot(baseline, self.environment_id, extra_parents)

    def merge_snapshots(self, a: IndexSnapshot, b: IndexSnapshot) -> IndexSnapshot:
        """Union of both file sets; the entry with the greater timestamp wins.

        Ties keep ``a``'s entry.
        """
        merged: Dict[str, FileEntry] = a.file_map()
        for entry in b.files:
            existing = merged.get(entry.path)
            if existing is None or entry.modified_at > existing.modified_at:
                merged[entry.path] = entry

        return IndexSnapshot(
            id=new_snapshot_id(),
            environment_id=a.environment_id or self.environment_id,
            parent_ids=[sid for sid in (a.id, b.id) if sid],
            files=list(merged.values()),
            created_at=now_ms(),
        )

    # ---- Objects ----------------------------------------------------------

    def save_objects(self, snapshot: IndexSnapshot, baseline: IndexSnapshot, key: str) -> int:
        """Encrypt and store the blob of every live entry not yet stored.

        Deleted entries and hashes already referenced by ``baseline`` are
        skipped, as are hashes whose blob exists.

        Returns:
            Number of blobs written

        Raises:
            DigestMismatchError: If a file changed on disk since it was scanned
        """
        known = set(baseline.content_hashes())
        written = 0
        for entry in snapshot.live_files():
            if entry.content_hash in known:
                continue
            known.add(entry.content_hash)
            if self.store.has_blob(entry.content_hash):
                continue
            plaintext = self.fs.read(entry.path)
            actual = compute_bytes_digest(plaintext)
            if actual != entry.content_hash:
                raise DigestMismatchError(entry.path, entry.content_hash, actual)
            if self.store.put_blob(entry.content_hash, plaintext, key):
                written += 1
        if written:
            logger.info("Stored %d new encrypted objects", written)
        return written

    # ---- Snapshots and refs -----------------------------------------------

    def persist(self, snapshot: IndexSnapshot, branch: str, key: str) -> None:
        """Store ``snapshot`` and point ``branch`` at it."""
        if snapshot.is_empty:
            raise ValueError("The empty snapshot is never persisted")
        self.store.put_snapshot(snapshot, key)
        self.store.write_ref(branch, snapshot.id, key)
        logger.info("Snapshot %s persisted, branch '%s' advanced", snapshot.id[:12], branch)

    def load(self, snapshot_id: str, key: str) -> IndexSnapshot:
        """Load one snapshot; the empty id yields the empty snapshot."""
        if not snapshot_id:
            return IndexSnapshot.empty(self.environment_id)
        return self.store.get_snapshot(snapshot_id, key)

    def read_branch_ref(self, branch: str, key: str) -> Optional[str]:
        return self.store.read_ref(branch, key)

    def write_branch_ref(self, branch: str, snapshot_id: str, key: str) -> None:
        self.store.write_ref(branch, snapshot_id, key)

    def load_branch_head(self, branch: str, key: str) -> IndexSnapshot:
        """Snapshot ``branch`` points at; empty if the branch has no ref yet."""
        head_id = self.read_branch_ref(branch, key)
        return self.load(head_id or "", key)

    def list_branches(self) -> List[str]:
        return self.store.list_refs()

    def load_history(self, key: str) -> List[IndexSnapshot]:
        """Every persisted snapshot, oldest first."""
        snapshots = [self.store.get_snapshot(sid, key) for sid in self.store.list_snapshot_ids()]
        return sorted(snapshots, key=lambda s: (s.created_at, s.id))

    def history(self, key: str) -> IndexHistory:
        return IndexHistory(self.load_history(key))

    @staticmethod
    def find_latest(snapshots: List[IndexSnapshot]) -> IndexSnapshot:
        """Snapshot with the greatest ``created_at``; empty if none."""
        if not snapshots:
            return IndexSnapshot.empty()
        return max(snapshots, key=lambda s: (s.created_at, s.id))

    def supersedes(self, newer: IndexSnapshot, older: IndexSnapshot, key: str) -> bool:
        """True if ``older`` is a strict ancestor of ``newer``.

        Walks parent ids from ``newer``; snapshots missing from the store end
        that branch of the walk.
        """
        if older.is_empty:
            return not newer.is_empty
        if newer.is_empty or newer.id == older.id:
            return False

        seen = set()
        stack = list(newer.parent_ids)
        while stack:
            sid = stack.pop()
            if sid == older.id:
                return True
            if not sid or sid in seen:
                continue
            seen.add(sid)
            if not self.store.has_snapshot(sid):
                continue
            stack.extend(self.store.get_snapshot(sid, key).parent_ids)
        return False

    # ---- Local state ------------------------------------------------------

    def load_ws_index(self) -> IndexSnapshot:
        """Snapshot last materialized on disk; empty if there is none."""
        try:
            raw = self.fs.read(self.ws_index_path)
        except FileNotFoundError:
            return IndexSnapshot.empty(self.environment_id)
        try:
            return IndexSnapshot.model_validate(json.loads(raw.decode("utf-8")))
        except ValueError as e:
            raise CorruptObjectError(f"Workspace index is not valid: {e}") from e

    def save_ws_index(self, snapshot: IndexSnapshot) -> None:
        self.fs.write(self.ws_index_path, json.dumps(snapshot.to_dict(), indent=2).encode("utf-8"))

    def current_branch(self) -> str:
        """Branch named in HEAD, ``main`` if HEAD is missing or blank."""
        try:
            name = self.fs.read(self.head_path).decode("utf-8").strip()
        except FileNotFoundError:
            return DEFAULT_BRANCH
        return name or DEFAULT_BRANCH

    def set_current_branch(self, branch: str) -> None:
        self.fs.write(self.head_path, f"{branch}\n".encode("utf-8"))
