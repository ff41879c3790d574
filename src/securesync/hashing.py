"""Hashing utilities for content addressing.

Content hashes are plain lowercase SHA-256 hex over the plaintext bytes. Two
files with the same hash are the same content, regardless of path or
timestamp, and share one encrypted blob in the object store.
"""

import hashlib
import re

_HEX64 = re.compile(r"^[0-9a-f]{64}$")


def compute_bytes_digest(data: bytes) -> str:
    """Compute SHA256 hash of an in-memory byte string."""
    return hashlib.sha256(data).hexdigest()


def is_content_hash(value: str) -> bool:
    """Check that a value is a 64-character lowercase hex digest.

    Used before turning a hash into a storage path so that a crafted index
    can't address files outside the object store.
    """
    return bool(_HEX64.fullmatch(value))


__all__ = [
    "compute_bytes_digest",
    "is_content_hash",
]
