"""Encrypted, content-addressed object store.

Layout under the metadata directory::

    remotes/indexes/<id[:6]>/<id[6:]>        encrypted IndexSnapshot JSON
    remotes/files/<hash[:2]>/<hash[2:]>      encrypted file blob
    remotes/refs/<branch>                    encrypted snapshot id

The ``remotes/`` tree is what a transport moves between machines. Nothing in
it is ever rewritten except branch refs: a blob is written at most once per
content hash, and a snapshot at most once per id.
"""

import json
import logging
from typing import List, Optional

from .constants import (
    FILES_DIR,
    HASH_PREFIX_LEN,
    ID_PREFIX_LEN,
    INDEXES_DIR,
    REFS_DIR,
    REMOTES_DIR,
    SECURESYNC_DIR,
)
from .core import IndexSnapshot
from .crypto import EncryptionService
from .errors import CorruptObjectError, DecryptionError, DigestMismatchError, ObjectNotFoundError
from .hashing import compute_bytes_digest, is_content_hash
from .storage.base import FileSystem

logger = logging.getLogger(__name__)


def split_key(key: str, prefix_len: int) -> tuple:
    """Split a hash or id into (directory, filename) for sharding."""
    if len(key) <= prefix_len:
        raise ValueError(f"Key too short to shard: {key!r}")
    return key[:prefix_len], key[prefix_len:]


class EncryptedObjectStore:
    """
    Object store over a FileSystem and an EncryptionService.

    Holds no key; every call takes the key explicitly.
    """

    def __init__(self, fs: FileSystem, crypto: EncryptionService, meta_dir: str = SECURESYNC_DIR):
        self.fs = fs
        self.crypto = crypto
        self.remotes_dir = f"{meta_dir}/{REMOTES_DIR}"

    # ---- Paths ------------------------------------------------------------

    @property
    def indexes_dir(self) -> str:
        return f"{self.remotes_dir}/{INDEXES_DIR}"

    @property
    def files_dir(self) -> str:
        return f"{self.remotes_dir}/{FILES_DIR}"

    @property
    def refs_dir(self) -> str:
        return f"{self.remotes_dir}/{REFS_DIR}"

    def blob_path(self, content_hash: str) -> str:
        if not is_content_hash(content_hash):
            raise ValueError(f"Invalid content hash (must be 64 hex chars): {content_hash!r}")
        prefix, suffix = split_key(content_hash, HASH_PREFIX_LEN)
        return f"{self.files_dir}/{prefix}/{suffix}"

    def snapshot_path(self, snapshot_id: str) -> str:
        if not snapshot_id or "/" in snapshot_id or ".." in snapshot_id:
            raise ValueError(f"Invalid snapshot id: {snapshot_id!r}")
        prefix, suffix = split_key(snapshot_id, ID_PREFIX_LEN)
        return f"{self.indexes_dir}/{prefix}/{suffix}"

    def ref_path(self, branch: str) -> str:
        if not branch or "/" in branch or branch.startswith("."):
            raise ValueError(f"Invalid branch name: {branch!r}")
        return f"{self.refs_dir}/{branch}"

    # ---- Blobs ------------------------------------------------------------

    def has_blob(self, content_hash: str) -> bool:
        return self.fs.stat(self.blob_path(content_hash)) is not None

    def put_blob(self, content_hash: str, plaintext: bytes, key: str) -> bool:
        """
        Encrypt and store a blob unless one already exists for the hash.

        Returns:
            True if a blob was written, False if it was already present
        """
        path = self.blob_path(content_hash)
        if self.fs.stat(path) is not None:
            logger.debug("Blob already present: %s", content_hash[:12])
            return False
        self.fs.write(path, self.crypto.encrypt(plaintext, key))
        logger.debug("Blob written: %s", content_hash[:12])
        return True

    def get_blob(self, content_hash: str, key: str, verify: bool = True) -> bytes:
        """
        Read and decrypt a blob.

        Raises:
            ObjectNotFoundError: If no blob exists for the hash
            DigestMismatchError: If ``verify`` and the plaintext hash differs
        """
        path = self.blob_path(content_hash)
        try:
            payload = self.fs.read(path)
        except FileNotFoundError:
            raise ObjectNotFoundError("blob", content_hash) from None
        plaintext = self.crypto.decrypt(payload, key)
        if verify:
            actual = compute_bytes_digest(plaintext)
            if actual != content_hash:
                raise DigestMismatchError(path, content_hash, actual)
        return plaintext

    # ---- Snapshots --------------------------------------------------------

    def has_snapshot(self, snapshot_id: str) -> bool:
        return self.fs.stat(self.snapshot_path(snapshot_id)) is not None

    def put_snapshot(self, snapshot: IndexSnapshot, key: str) -> bool:
        """
        Encrypt and store a snapshot under its id.

        Returns:
            True if written, False if a snapshot with this id already exists
        """
        path = self.snapshot_path(snapshot.id)
        if self.fs.stat(path) is not None:
            logger.debug("Snapshot already present: %s", snapshot.id[:13])
            return False
        payload = json.dumps(snapshot.to_dict(), indent=2).encode("utf-8")
        self.fs.write(path, self.crypto.encrypt(payload, key))
        return True

    def get_snapshot(self, snapshot_id: str, key: str) -> IndexSnapshot:
        """
        Read, decrypt and parse a snapshot.

        Raises:
            ObjectNotFoundError: If no snapshot exists for the id
            CorruptObjectError: If the decrypted payload isn't a snapshot
        """
        path = self.snapshot_path(snapshot_id)
        try:
            payload = self.fs.read(path)
        except FileNotFoundError:
            raise ObjectNotFoundError("snapshot", snapshot_id) from None
        plaintext = self.crypto.decrypt(payload, key)
        try:
            return IndexSnapshot.model_validate(json.loads(plaintext.decode("utf-8")))
        except ValueError as e:
            raise CorruptObjectError(f"Snapshot {snapshot_id} is not valid: {e}") from e

    def list_snapshot_ids(self) -> List[str]:
        """All snapshot ids present in the store (unordered)."""
        ids = []
        for dir_name, is_dir in self.fs.list_directory(self.indexes_dir):
            if not is_dir:
                continue
            for file_name, child_is_dir in self.fs.list_directory(f"{self.indexes_dir}/{dir_name}"):
                if not child_is_dir:
                    ids.append(dir_name + file_name)
        return ids

    # ---- Refs -------------------------------------------------------------

    def write_ref(self, branch: str, snapshot_id: str, key: str) -> None:
        """Point ``branch`` at ``snapshot_id`` (the only mutable write)."""
        self.fs.write(self.ref_path(branch), self.crypto.encrypt(snapshot_id.encode("utf-8"), key))

    def read_ref(self, branch: str, key: str) -> Optional[str]:
        """Snapshot id ``branch`` points at, or None if the branch doesn't exist."""
        try:
            payload = self.fs.read(self.ref_path(branch))
        except FileNotFoundError:
            return None
        plaintext = self.crypto.decrypt(payload, key)
        try:
            return plaintext.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Ref for branch {branch!r} did not decrypt to a snapshot id") from e

    def list_refs(self) -> List[str]:
        """Names of all branches with a ref."""
        return sorted(name for name, is_dir in self.fs.list_directory(self.refs_dir) if not is_dir)
