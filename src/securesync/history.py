"""Snapshot history as an explicit DAG.

Built once from a list of loaded snapshots. Parent ids that point at
snapshots not in the list are kept as edges but have no node of their own.
"""

from collections import deque
from typing import Dict, List, Optional, Set

from .constants import HISTORY_LIMIT
from .core import IndexSnapshot


class IndexHistory:
    """Adjacency view (id -> parents, id -> children) over snapshots."""

    def __init__(self, snapshots: List[IndexSnapshot]):
        self.nodes: Dict[str, IndexSnapshot] = {s.id: s for s in snapshots if not s.is_empty}
        self._children: Dict[str, List[str]] = {sid: [] for sid in self.nodes}
        for snapshot in self.nodes.values():
            for parent in snapshot.parent_ids:
                self._children.setdefault(parent, []).append(snapshot.id)
        for ids in self._children.values():
            ids.sort(key=lambda sid: (self.nodes[sid].created_at, sid))

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, snapshot_id: str) -> bool:
        return snapshot_id in self.nodes

    def get(self, snapshot_id: str) -> Optional[IndexSnapshot]:
        return self.nodes.get(snapshot_id)

    def parents(self, snapshot_id: str) -> List[str]:
        node = self.nodes.get(snapshot_id)
        return list(node.parent_ids) if node else []

    def children(self, snapshot_id: str) -> List[str]:
        """Direct children, oldest first."""
        return list(self._children.get(snapshot_id, []))

    def roots(self) -> List[str]:
        """Snapshots with no parent present in the history."""
        return [
            sid for sid, node in self.nodes.items()
            if not any(p in self.nodes for p in node.parent_ids)
        ]

    def heads(self) -> List[str]:
        """Snapshots nothing else descends from."""
        return [sid for sid in self.nodes if not self._children.get(sid)]

    def ancestors(self, snapshot_id: str) -> Set[str]:
        """Every id reachable through parent edges (excluding the start)."""
        seen: Set[str] = set()
        queue = deque(self.parents(snapshot_id))
        while queue:
            sid = queue.popleft()
            if sid in seen:
                continue
            seen.add(sid)
            queue.extend(self.parents(sid))
        return seen

    def is_ancestor(self, ancestor_id: str, descendant_id: str) -> bool:
        """True if ``ancestor_id`` is a strict ancestor of ``descendant_id``."""
        return ancestor_id in self.ancestors(descendant_id)

    def merge_base(self, a: str, b: str) -> Optional[str]:
        """Most recent common ancestor of ``a`` and ``b`` (inclusive).

        Returns None when the histories are unrelated.
        """
        left = self.ancestors(a) | {a}
        right = self.ancestors(b) | {b}
        common = [sid for sid in left & right if sid in self.nodes]
        if not common:
            return None
        return max(common, key=lambda sid: (self.nodes[sid].created_at, sid))

    def branch_chain(self, head_id: str) -> List[IndexSnapshot]:
        """First-parent walk from ``head_id``, oldest first."""
        chain: List[IndexSnapshot] = []
        seen: Set[str] = set()
        current = self.nodes.get(head_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            chain.append(current)
            current = self.nodes.get(current.parent_ids[0]) if current.parent_ids else None
        chain.reverse()
        return chain

    def recent(self, limit: int = HISTORY_LIMIT) -> List[IndexSnapshot]:
        """Newest snapshots first."""
        ordered = sorted(self.nodes.values(), key=lambda s: (s.created_at, s.id), reverse=True)
        return ordered[:limit]
