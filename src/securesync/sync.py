"""Sync service: repository initialization, incremental sync and branches.

Pipeline order for one sync pass::

    scan -> pull -> classify -> resolve -> store objects -> store snapshot
         -> advance branch -> reconcile -> save workspace index -> push

The branch pointer only moves after every object the new snapshot
references is stored. A user abort during resolution ends the pass before
anything is written to the object store.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

import portalocker

from .config import SyncConfig
from .context import ProjectContext
from .core import ChangeSet, IndexSnapshot, ReconcileResult, SyncResult
from .crypto import EncryptionService, validate_key
from .diffing import classify
from .errors import ObjectNotFoundError, PreconditionError, SyncLockedError
from .history import IndexHistory
from .index_manager import IndexManager
from .objects import EncryptedObjectStore
from .reconcile import WorkspaceReconciler
from .resolution import ConflictResolver, ResolutionStrategy
from .snapshot import same_content
from .storage.fs import LocalFileSystem
from .transport.base import Transport
from .working_state import StatusSummary, compute_status
from .workspace import Workspace

logger = logging.getLogger(__name__)


class SyncService:
    """
    Drives sync for one workspace.

    Holds only collaborators; the key is passed to every operation and
    validated before any I/O.
    """

    def __init__(
        self,
        ctx: ProjectContext,
        config: SyncConfig,
        transport: Optional[Transport] = None,
        strategy: Optional[ResolutionStrategy] = None,
        crypto: Optional[EncryptionService] = None,
    ):
        self.ctx = ctx
        self.config = config
        self.transport = transport
        self.fs = LocalFileSystem(ctx.root)
        self.store = EncryptedObjectStore(self.fs, crypto or EncryptionService())
        self.index = IndexManager(self.store, config.environment_id)
        self.workspace = Workspace(self.fs, self.store)
        self.resolver = ConflictResolver(self.workspace, strategy)
        self.reconciler = WorkspaceReconciler(self.workspace)
        self.ignore = ctx.get_ignore_spec(config.ignore)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the workspace sync lock, failing fast if another process has it."""
        lock_path = self.ctx.lock_path
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            lock = portalocker.Lock(str(lock_path), "w", timeout=0, fail_when_locked=True)
            lock.acquire()
        except portalocker.LockException as e:
            raise SyncLockedError(lock_path) from e
        try:
            yield
        finally:
            lock.release()

    # ---- Repository lifecycle ---------------------------------------------

    def initialize(self, key: str) -> SyncResult:
        """
        Set up sync for this workspace.

        With an existing remote, clone it and sync the workspace against an
        empty baseline. Otherwise store the whole workspace as the first
        snapshot of the current branch and push it.
        """
        validate_key(key)
        with self._locked():
            if not self.ctx.head_path.exists():
                self.index.set_current_branch(self.config.default_branch)
            branch = self.index.current_branch()

            if self.transport is not None and self.transport.remote_index_exists():
                logger.info("Remote repository found, cloning")
                self.transport.clone_all()
                return self._sync(key, branch, pull=False)

            if self.index.read_branch_ref(branch, key):
                logger.info("Branch '%s' already initialized, syncing", branch)
                return self._sync(key, branch, pull=True)

            baseline = IndexSnapshot.empty(self.config.environment_id)
            snapshot = self.index.build_local_snapshot(baseline, self.ignore)
            written = self.index.save_objects(snapshot, baseline, key)
            self.index.persist(snapshot, branch, key)
            self.index.save_ws_index(snapshot)
            pushed = self._push(branch)
            logger.info("Initialized branch '%s' with %d files", branch, len(snapshot.files))
            return SyncResult(
                branch=branch,
                updated=True,
                snapshot_id=snapshot.id,
                objects_written=written,
                pushed=pushed,
            )

    def sync(self, key: str) -> SyncResult:
        """Run one incremental sync pass on the current branch."""
        validate_key(key)
        with self._locked():
            return self._sync(key, self.index.current_branch(), pull=True)

    def _sync(self, key: str, branch: str, pull: bool) -> SyncResult:
        baseline = self.index.load_ws_index()
        local = self.index.build_local_snapshot(baseline, self.ignore)

        if pull and self.transport is not None:
            self.transport.pull_latest(branch)
        remote = self.index.load_branch_head(branch, key)

        has_remote_updates = (
            not remote.is_empty
            and remote.id != baseline.id
            and not self.index.supersedes(baseline, remote, key)
        )

        changes = ChangeSet()
        resolution = None
        final = local
        if has_remote_updates:
            descends = self.index.supersedes(remote, baseline, key)
            ancestor = baseline if descends else self._common_ancestor(baseline, remote, key)
            changes = classify(ancestor, local, remote)
            logger.info("Remote head %s: %d changes to resolve", remote.id[:12], len(changes.records))
            resolution = self.resolver.resolve(changes, key)
            if resolution.aborted:
                return SyncResult(branch=branch, aborted=True, changes=changes, resolution=resolution)
            # Deletion markers never produce records; apply them for untouched paths
            self.reconciler.reconcile(baseline, remote, key, exclude=changes.paths())

            if not baseline.is_empty and same_content(local, baseline) and descends:
                # No local edits and the remote descends from us: adopt its head
                self.index.save_ws_index(remote)
                logger.info("Fast-forwarded '%s' to %s", branch, remote.id[:12])
                return SyncResult(
                    branch=branch,
                    updated=True,
                    snapshot_id=remote.id,
                    changes=changes,
                    resolution=resolution,
                )
            final = self.index.build_local_snapshot(baseline, self.ignore, extra_parents=[remote.id])
        elif not baseline.is_empty and same_content(local, baseline):
            pushed = False
            if remote.id != baseline.id:
                # Local head is ahead of the branch pointer (e.g. an earlier push failed)
                self.index.write_branch_ref(branch, baseline.id, key)
                pushed = self._push(branch)
            logger.info("Nothing to sync on '%s'", branch)
            return SyncResult(branch=branch, snapshot_id=baseline.id, pushed=pushed)

        written = self.index.save_objects(final, baseline, key)
        self.index.persist(final, branch, key)
        reconcile = self.reconciler.reconcile(baseline, final, key, force_overwrite=False)
        self.index.save_ws_index(final)
        pushed = self._push(branch)

        result = SyncResult(
            branch=branch,
            updated=True,
            snapshot_id=final.id,
            changes=changes,
            resolution=resolution,
            reconcile=reconcile,
            objects_written=written,
            pushed=pushed,
        )
        logger.info("Sync finished: %s", result.summary())
        return result

    def _common_ancestor(self, baseline: IndexSnapshot, remote: IndexSnapshot, key: str) -> IndexSnapshot:
        """Most recent snapshot both heads descend from; empty if unrelated.

        The workspace index is only a valid ancestor when the remote head
        descends from it. After an unpushed commit the two have diverged, and
        comparing against the workspace index would hide local edits.
        """
        base_id = self.index.history(key).merge_base(baseline.id, remote.id)
        logger.info(
            "Workspace %s and remote %s diverged, merge base %s",
            baseline.id[:12], remote.id[:12], (base_id or "none")[:12],
        )
        return self.index.load(base_id or "", key)

    def _push(self, branch: str) -> bool:
        if self.transport is None:
            return False
        return self.transport.push_latest(branch)

    # ---- Branches ---------------------------------------------------------

    def current_branch(self) -> str:
        return self.index.current_branch()

    def list_branches(self) -> List[str]:
        return self.index.list_branches()

    def create_branch(self, name: str, key: str, from_snapshot_id: Optional[str] = None) -> str:
        """
        Create ``name`` pointing at ``from_snapshot_id``.

        Defaults to the snapshot currently materialized in the workspace.

        Returns:
            The snapshot id the new branch points at
        """
        validate_key(key)
        if name in self.index.list_branches():
            raise PreconditionError(f"Branch '{name}' already exists")

        source = from_snapshot_id or self.index.load_ws_index().id
        if not source:
            raise PreconditionError("Nothing synced yet; run sync before creating a branch")
        if not self.store.has_snapshot(source):
            raise ObjectNotFoundError("snapshot", source)

        with self._locked():
            self.index.write_branch_ref(name, source, key)
            self._push(name)
        logger.info("Created branch '%s' at %s", name, source[:12])
        return source

    def checkout_branch(self, name: str, key: str, force: bool = False) -> ReconcileResult:
        """
        Switch the workspace to the head of ``name``.

        Files tracked in the current workspace index but absent from the
        branch head are deleted. With ``force``, tracked files edited since
        the last sync are overwritten with the branch version.

        Raises:
            PreconditionError: If the branch doesn't exist, or there are
                unsynced local changes and ``force`` is False
        """
        validate_key(key)
        with self._locked():
            if self.transport is not None:
                self.transport.pull_latest(name)
            if self.index.read_branch_ref(name, key) is None:
                raise PreconditionError(f"Branch '{name}' does not exist")

            if not force and self._status(self.index.current_branch()).has_changes:
                raise PreconditionError(
                    "Workspace has unsynced changes; sync first or check out with force"
                )

            old = self.index.load_ws_index()
            head = self.index.load_branch_head(name, key)
            result = self.reconciler.reconcile(old, head, key, force_overwrite=True)
            if force:
                # Tracked files edited since the last sync go back to the branch version
                for entry in head.live_files():
                    if self.workspace.materialize(entry.path, entry.content_hash, key):
                        result.materialized.append(entry.path)
            self.index.save_ws_index(head)
            self.index.set_current_branch(name)
        logger.info("Checked out '%s' at %s", name, head.id[:12])
        return result

    # ---- Queries ----------------------------------------------------------

    def history(self, key: str) -> IndexHistory:
        validate_key(key)
        return self.index.history(key)

    def branch_history(self, key: str, branch: Optional[str] = None) -> List[IndexSnapshot]:
        """First-parent chain of ``branch`` (current by default), newest first."""
        validate_key(key)
        head_id = self.index.read_branch_ref(branch or self.index.current_branch(), key)
        if not head_id:
            return []
        return list(reversed(self.index.history(key).branch_chain(head_id)))

    def status(self) -> StatusSummary:
        return self._status(self.index.current_branch())

    def _status(self, branch: str) -> StatusSummary:
        baseline = self.index.load_ws_index()
        local = self.index.build_local_snapshot(baseline, self.ignore)
        return compute_status(baseline, local, self.fs, branch)

    def restore_file(self, path: str, snapshot_id: str, key: str) -> bool:
        """Write the version of ``path`` recorded in ``snapshot_id``.

        Raises:
            PreconditionError: If the snapshot has no live entry for the path
        """
        validate_key(key)
        snapshot = self.index.load(snapshot_id, key)
        entry = snapshot.file_map().get(path)
        if entry is None or entry.deleted:
            raise PreconditionError(f"{path} is not in snapshot {snapshot_id[:12]}")
        return self.workspace.restore_entry(entry, key)
