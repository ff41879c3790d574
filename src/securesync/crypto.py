"""Symmetric encryption for stored objects.

Every object written to the store (file blobs, snapshots, branch refs) is
AES-256-CBC encrypted with PKCS7 padding. The payload layout is::

    IV (16 random bytes) || ciphertext

A fresh IV is drawn for every call to ``encrypt``, so encrypting the same
plaintext twice never yields the same bytes.
"""

import re
import secrets

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .constants import IV_LENGTH, KEY_HEX_LENGTH
from .errors import CorruptObjectError, DecryptionError, InvalidKeyError

_KEY_PATTERN = re.compile(rf"^[0-9a-fA-F]{{{KEY_HEX_LENGTH}}}$")


def validate_key(key: str) -> bytes:
    """Validate a hex key and return its raw 32 bytes.

    Raises:
        InvalidKeyError: If key is missing, not hex, or not 64 characters
    """
    if not key:
        raise InvalidKeyError("Encryption key is not set")
    if not _KEY_PATTERN.fullmatch(key):
        raise InvalidKeyError()
    return bytes.fromhex(key)


def generate_key() -> str:
    """Generate a new random 256-bit key as 64 hex characters."""
    return secrets.token_hex(KEY_HEX_LENGTH // 2)


class EncryptionService:
    """Stateless AES-256-CBC encrypt/decrypt service."""

    def encrypt(self, plaintext: bytes, key: str) -> bytes:
        """Encrypt plaintext and return ``IV || ciphertext``."""
        key_bytes = validate_key(key)
        iv = secrets.token_bytes(IV_LENGTH)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key_bytes), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, payload: bytes, key: str) -> bytes:
        """Decrypt an ``IV || ciphertext`` payload.

        Raises:
            InvalidKeyError: If key is malformed
            CorruptObjectError: If payload is too short or not block-aligned
            DecryptionError: If padding is invalid (usually a wrong key)
        """
        key_bytes = validate_key(key)
        if len(payload) < IV_LENGTH:
            raise CorruptObjectError("Encrypted payload is too short to contain an IV")

        iv = payload[:IV_LENGTH]
        ciphertext = payload[IV_LENGTH:]
        block_bytes = algorithms.AES.block_size // 8
        if len(ciphertext) % block_bytes != 0:
            raise CorruptObjectError(
                f"Ciphertext length {len(ciphertext)} is not a multiple of {block_bytes}"
            )

        decryptor = Cipher(algorithms.AES(key_bytes), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError(f"Failed to decrypt payload: {e}") from e
