"""Custom exceptions for securesync.

This module defines typed exceptions for better error handling and clearer
error messages throughout the application.
"""


class SyncError(RuntimeError):
    """Base class for all securesync errors."""
    pass


# Precondition Errors
class PreconditionError(SyncError):
    """A required input is missing or malformed; raised before any I/O."""
    pass


class InvalidKeyError(PreconditionError):
    """Encryption key is missing or not 64 hex characters."""

    def __init__(self, reason: str = "Encryption key must be a 64-character hex string"):
        super().__init__(reason)


class WorkspaceNotFoundError(PreconditionError):
    """Workspace root or metadata directory not found."""
    pass


# Integrity Errors
class IntegrityError(SyncError):
    """Base class for data integrity errors."""
    pass


class DecryptionError(IntegrityError):
    """Ciphertext could not be decrypted (wrong key or bad padding)."""
    pass


class CorruptObjectError(IntegrityError):
    """Stored object is truncated or not in the expected format."""
    pass


class ObjectNotFoundError(IntegrityError):
    """A referenced blob or snapshot is not present in the object store."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found in object store: {key[:12]}")


class DigestMismatchError(IntegrityError):
    """Decrypted content doesn't hash to the expected value."""

    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Digest verification failed for {path}\n"
            f"  Expected: {expected}\n"
            f"  Got:      {actual}\n"
            f"The object may be corrupted or tampered with."
        )


# Transport Errors
class TransportError(SyncError):
    """Base class for remote transport errors."""
    pass


class NetworkError(TransportError):
    """Remote unreachable."""
    pass


class AuthError(TransportError):
    """Authentication or authorization failed."""
    pass


# Configuration Errors
class ConfigError(SyncError):
    """Malformed or unsupported configuration."""
    pass


class SyncLockedError(SyncError):
    """Another sync process holds the workspace lock."""

    def __init__(self, lock_path):
        self.lock_path = lock_path
        super().__init__(
            f"Another sync is already running for this workspace (lock: {lock_path}). "
            f"Wait for it to finish and retry."
        )
