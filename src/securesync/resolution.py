"""Conflict resolution: turn a classified change set into file operations.

Default rules, applied to every record unless a strategy decides otherwise:

- remoteUpdate, remoteAdd: materialize the remote version at the path
- localUpdate, localDelete: if there is a local version, move it to
  ``conflict-local/<ts>/<path>``, then materialize the remote version
- remoteDelete: move a local copy with content to ``deleted/<ts>/<path>``,
  otherwise remove the path
- localAdd: nothing

A remote deletion marker counts as "no remote version": nothing is
materialized for it. The remote version always ends up at the canonical path
under the default rules; local edits survive only as quarantined copies.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from .constants import CONFLICT_LOCAL_DIR, CONFLICT_REMOTE_DIR, DELETED_DIR
from .core import (
    ChangeKind,
    ChangeRecord,
    ChangeSet,
    ConflictDecision,
    ResolutionOutcome,
)
from .utils import quarantine_timestamp
from .workspace import Workspace

logger = logging.getLogger(__name__)


class ResolutionStrategy(Protocol):
    """Decides what to do with one conflicting record."""

    def decide(self, record: ChangeRecord) -> Optional[ConflictDecision]:
        """
        Returns:
            A decision, or None to apply the default rule for the record
        """
        ...


class AutoResolutionPolicy:
    """Applies the default rules without asking."""

    def decide(self, record: ChangeRecord) -> Optional[ConflictDecision]:
        return None


class InteractiveResolutionPolicy:
    """Asks ``callback`` about every record that would discard a local edit."""

    def __init__(self, callback: Callable[[ChangeRecord], ConflictDecision]):
        self.callback = callback

    def decide(self, record: ChangeRecord) -> Optional[ConflictDecision]:
        if not record.is_conflict:
            return None
        return self.callback(record)


class ConflictResolver:
    """Applies a ChangeSet to the workspace through a strategy."""

    def __init__(self, workspace: Workspace, strategy: Optional[ResolutionStrategy] = None):
        self.workspace = workspace
        self.strategy = strategy or AutoResolutionPolicy()

    def resolve(self, changes: ChangeSet, key: str, now: Optional[datetime] = None) -> ResolutionOutcome:
        """
        Resolve every record in order.

        All quarantine copies made in one pass share one timestamp directory.
        An ABORT decision stops at that record; records already applied stay
        applied and the caller must not commit.
        """
        ts = quarantine_timestamp(now)
        outcome = ResolutionOutcome()

        for record in changes.records:
            decision = self.strategy.decide(record)
            if decision == ConflictDecision.ABORT:
                logger.info("Resolution aborted at %s", record.path)
                outcome.aborted = True
                return outcome
            if decision is None:
                self._apply_default(record, key, ts, outcome)
            else:
                self._apply_decision(record, decision, key, ts, outcome)

        logger.info("Resolution finished: %s", outcome.summary())
        return outcome

    def _apply_default(self, record: ChangeRecord, key: str, ts: str, outcome: ResolutionOutcome) -> None:
        kind = record.change_kind
        path = record.path

        if kind == ChangeKind.REMOTE_UPDATE and record.remote_deleted:
            # Remote changed the file and then deleted it
            moved = self.workspace.quarantine(path, DELETED_DIR, ts)
            if moved:
                outcome.quarantined[path] = moved

        elif kind in (ChangeKind.REMOTE_UPDATE, ChangeKind.REMOTE_ADD):
            self._take_remote(record, key, outcome)

        elif kind in (ChangeKind.LOCAL_UPDATE, ChangeKind.LOCAL_DELETE):
            if record.local_hash:
                moved = self.workspace.quarantine(path, CONFLICT_LOCAL_DIR, ts)
                if moved:
                    outcome.quarantined[path] = moved
                self._take_remote(record, key, outcome)

        elif kind == ChangeKind.REMOTE_DELETE:
            if record.local_hash:
                moved = self.workspace.quarantine(path, DELETED_DIR, ts)
                if moved:
                    outcome.quarantined[path] = moved
            elif self.workspace.remove(path):
                outcome.removed.append(path)

        elif kind == ChangeKind.LOCAL_ADD:
            outcome.kept.append(path)

    def _take_remote(self, record: ChangeRecord, key: str, outcome: ResolutionOutcome) -> None:
        """Materialize the remote version unless the remote entry is a deletion marker."""
        if record.remote_deleted:
            return
        self.workspace.materialize(record.path, record.remote_hash, key)
        outcome.materialized.append(record.path)

    def _apply_decision(
        self,
        record: ChangeRecord,
        decision: ConflictDecision,
        key: str,
        ts: str,
        outcome: ResolutionOutcome,
    ) -> None:
        path = record.path
        remote_live = (
            bool(record.remote_hash)
            and not record.remote_deleted
            and record.change_kind != ChangeKind.REMOTE_DELETE
        )

        if decision == ConflictDecision.KEEP_LOCAL:
            outcome.kept.append(path)

        elif decision == ConflictDecision.KEEP_REMOTE:
            if remote_live:
                self.workspace.materialize(path, record.remote_hash, key)
                outcome.materialized.append(path)
            elif self.workspace.remove(path):
                outcome.removed.append(path)

        elif decision == ConflictDecision.KEEP_BOTH:
            if remote_live:
                copy = self.workspace.save_remote_as_conflict(
                    path, record.remote_hash, key, CONFLICT_REMOTE_DIR, ts
                )
                outcome.quarantined[path] = copy
            outcome.kept.append(path)
