"""Core data models for securesync.

Snapshots and Branches:
-----------------------
Every sync produces an IndexSnapshot: an immutable listing of the whole
tracked file set. Snapshots reference their parent(s) by id, so together
they form a DAG. A branch is a mutable pointer to one snapshot (its head),
and the workspace index is a local cache of the snapshot we believe is
materialized on disk.

File content is addressed by SHA-256 of the plaintext; snapshot identity is
not. A rescan of an unchanged workspace produces a new snapshot id with the
same file entries.

On disk the snapshot uses camelCase keys::

    {"id", "environmentId", "parentIds": [], "timestamp",
     "files": [{"path", "hash", "timestamp", "deleted"?}]}
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import normalize_path


# ============= Snapshot Model =============

class FileEntry(BaseModel):
    """One file's state inside a snapshot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    content_hash: str = Field(alias="hash")
    modified_at: int = Field(default=0, alias="timestamp")
    deleted: bool = False

    @field_validator("path")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_path(v)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with on-disk keys; ``deleted`` only when set."""
        data: Dict[str, Any] = {
            "path": self.path,
            "hash": self.content_hash,
            "timestamp": self.modified_at,
        }
        if self.deleted:
            data["deleted"] = True
        return data


class IndexSnapshot(BaseModel):
    """Immutable point-in-time listing of the entire tracked file set.

    The empty snapshot (``id == ""``) stands for "nothing synced yet" and is
    never persisted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    environment_id: str = Field(default="", alias="environmentId")
    parent_ids: List[str] = Field(default_factory=list, alias="parentIds")
    files: List[FileEntry] = Field(default_factory=list)
    created_at: int = Field(default=0, alias="timestamp")

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_keys(cls, data: Any) -> Any:
        """Accept the older ``uuid``/``parentUuids`` layout."""
        if isinstance(data, dict):
            if "uuid" in data and "id" not in data:
                data = dict(data)
                data["id"] = data.pop("uuid")
            if "parentUuids" in data and "parentIds" not in data and "parent_ids" not in data:
                data = dict(data)
                data["parentIds"] = data.pop("parentUuids")
        return data

    @field_validator("files")
    @classmethod
    def _sort_and_check_unique(cls, v: List[FileEntry]) -> List[FileEntry]:
        ordered = sorted(v, key=lambda entry: entry.path)
        for prev, cur in zip(ordered, ordered[1:]):
            if prev.path == cur.path:
                raise ValueError(f"Duplicate path in snapshot: {cur.path}")
        return ordered

    @field_validator("parent_ids")
    @classmethod
    def _check_parent_count(cls, v: List[str]) -> List[str]:
        if len(v) > 2:
            raise ValueError(f"A snapshot has at most 2 parents, got {len(v)}")
        return v

    @classmethod
    def empty(cls, environment_id: str = "") -> "IndexSnapshot":
        """The 'nothing synced yet' baseline."""
        return cls(id="", environment_id=environment_id)

    @property
    def is_empty(self) -> bool:
        return self.id == ""

    def file_map(self) -> Dict[str, FileEntry]:
        """Map path -> entry."""
        return {entry.path: entry for entry in self.files}

    def live_files(self) -> List[FileEntry]:
        """Entries not marked deleted."""
        return [entry for entry in self.files if not entry.deleted]

    def content_hashes(self) -> set:
        """Hashes referenced by this snapshot (deleted entries included)."""
        return {entry.content_hash for entry in self.files}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with on-disk keys."""
        return {
            "id": self.id,
            "environmentId": self.environment_id,
            "parentIds": list(self.parent_ids),
            "files": [entry.to_dict() for entry in self.files],
            "timestamp": self.created_at,
        }


# ============= Change Detection =============

class ChangeKind(str, Enum):
    """Classification of one path in a three-way comparison."""

    LOCAL_ADD = "localAdd"
    REMOTE_ADD = "remoteAdd"
    LOCAL_UPDATE = "localUpdate"
    REMOTE_UPDATE = "remoteUpdate"
    LOCAL_DELETE = "localDelete"
    REMOTE_DELETE = "remoteDelete"


class ChangeRecord(BaseModel):
    """Classified difference between ancestor, local and remote for one path."""

    model_config = ConfigDict(frozen=True)

    path: str
    change_kind: ChangeKind
    local_hash: str = ""
    remote_hash: str = ""
    local_timestamp: int = 0
    remote_timestamp: int = 0
    ancestor_hash: str = ""
    remote_deleted: bool = False

    @property
    def is_conflict(self) -> bool:
        """True when applying the remote side would discard a local edit."""
        if self.change_kind == ChangeKind.LOCAL_UPDATE:
            return True
        if self.change_kind in (ChangeKind.REMOTE_UPDATE, ChangeKind.REMOTE_DELETE):
            return self.local_hash != self.ancestor_hash
        return False


class ChangeSet(BaseModel):
    """Result of classifying ancestor/local/remote snapshots."""

    records: List[ChangeRecord] = Field(default_factory=list)

    @property
    def summary(self) -> Dict[ChangeKind, int]:
        """Get summary counts by change kind."""
        counts: Dict[ChangeKind, int] = {}
        for record in self.records:
            counts[record.change_kind] = counts.get(record.change_kind, 0) + 1
        return counts

    @property
    def is_empty(self) -> bool:
        return not self.records

    def of_kind(self, *kinds: ChangeKind) -> List[ChangeRecord]:
        """Records whose kind is one of ``kinds``."""
        return [r for r in self.records if r.change_kind in kinds]

    def paths(self) -> List[str]:
        return [r.path for r in self.records]


# ============= Resolution =============

class ConflictDecision(str, Enum):
    """Answer from an interactive resolver for one conflicting path."""

    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"
    KEEP_BOTH = "keep_both"
    ABORT = "abort"


class ResolutionOutcome(BaseModel):
    """What conflict resolution did to the workspace."""

    aborted: bool = False
    materialized: List[str] = Field(default_factory=list)
    quarantined: Dict[str, str] = Field(default_factory=dict)  # path -> quarantine path
    removed: List[str] = Field(default_factory=list)
    kept: List[str] = Field(default_factory=list)

    def summary(self) -> str:
        """Get human-readable summary."""
        if self.aborted:
            return "Resolution aborted"
        parts = [f"{len(self.materialized)} applied from remote"]
        if self.quarantined:
            parts.append(f"{len(self.quarantined)} preserved as conflict copies")
        if self.removed:
            parts.append(f"{len(self.removed)} removed")
        if self.kept:
            parts.append(f"{len(self.kept)} kept local")
        return ", ".join(parts)


# ============= Reconciliation =============

class ReconcileResult(BaseModel):
    """Result of applying one snapshot transition to the file tree."""

    materialized: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    forced_deletions: int = 0
    normal_deletions: int = 0
    missing_but_kept: int = 0
    timestamp_mismatches: int = 0
    skipped_internal: int = 0


# ============= Sync =============

class SyncResult(BaseModel):
    """Result of one sync pass."""

    branch: str
    updated: bool = False
    aborted: bool = False
    snapshot_id: Optional[str] = None
    changes: ChangeSet = Field(default_factory=ChangeSet)
    resolution: Optional[ResolutionOutcome] = None
    reconcile: Optional[ReconcileResult] = None
    objects_written: int = 0
    pushed: bool = False

    def summary(self) -> str:
        """Get human-readable summary."""
        if self.aborted:
            return "Sync aborted, nothing committed"
        if not self.updated:
            return "Everything up to date"
        parts = [f"Snapshot {(self.snapshot_id or '')[:13]} on '{self.branch}'"]
        if self.objects_written:
            parts.append(f"{self.objects_written} objects written")
        if not self.changes.is_empty:
            parts.append(f"{len(self.changes.records)} changes")
        if self.pushed:
            parts.append("pushed")
        return ", ".join(parts)
