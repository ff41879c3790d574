"""Apply the difference between two snapshots to the file tree."""

import logging
from typing import Iterable

from .core import IndexSnapshot, ReconcileResult
from .ignore import is_internal_path
from .workspace import Workspace

logger = logging.getLogger(__name__)


class WorkspaceReconciler:
    """Moves the workspace from ``old`` to ``new``."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def reconcile(
        self,
        old: IndexSnapshot,
        new: IndexSnapshot,
        key: str,
        force_overwrite: bool = False,
        exclude: Iterable[str] = (),
    ) -> ReconcileResult:
        """
        Materialize and delete files so the tree matches ``new``.

        Live entries of ``new`` are materialized when they are absent from
        ``old``, deleted in ``old``, or carry a different hash. For paths of
        ``old``:

        - ``force_overwrite``: delete when ``new`` lacks the path or marks it
          deleted
        - otherwise: delete only when ``new`` marks it deleted with the same
          timestamp as ``old``

        Paths in ``exclude`` and metadata paths are never touched.
        """
        result = ReconcileResult()
        skip = set(exclude)
        old_map = {p: e for p, e in old.file_map().items() if p not in skip}
        new_map = {p: e for p, e in new.file_map().items() if p not in skip}

        for path, entry in new_map.items():
            if entry.deleted:
                continue
            if is_internal_path(path):
                result.skipped_internal += 1
                continue
            previous = old_map.get(path)
            if previous is None or previous.deleted or previous.content_hash != entry.content_hash:
                if self.workspace.materialize(path, entry.content_hash, key):
                    result.materialized.append(path)

        for path, previous in old_map.items():
            if is_internal_path(path):
                result.skipped_internal += 1
                continue
            current = new_map.get(path)
            if force_overwrite:
                if current is None or current.deleted:
                    result.forced_deletions += 1
                    if self.workspace.remove(path):
                        result.deleted.append(path)
            elif current is not None and current.deleted and current.modified_at == previous.modified_at:
                result.normal_deletions += 1
                if self.workspace.remove(path):
                    result.deleted.append(path)
            elif current is None:
                result.missing_but_kept += 1
            elif current.deleted:
                result.timestamp_mismatches += 1

        self._log_stats(result)
        return result

    def _log_stats(self, result: ReconcileResult) -> None:
        if result.forced_deletions:
            logger.info("Forced deletions: %d files", result.forced_deletions)
        if result.normal_deletions:
            logger.info("Deletions: %d files", result.normal_deletions)
        if result.missing_but_kept:
            logger.info("Absent from new snapshot but kept: %d files", result.missing_but_kept)
        if result.timestamp_mismatches:
            logger.warning(
                "Marked deleted with a different timestamp, kept: %d files",
                result.timestamp_mismatches,
            )
        if result.skipped_internal:
            logger.warning("Skipped metadata paths: %d", result.skipped_internal)
