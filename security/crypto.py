"""
Cryptographic utilities for Wish Granter.

Conversation history is encrypted at rest with a key that exists only for the
lifetime of the process. The secret is generated at startup and never written
anywhere, so history saved by a previous process cannot be read after a
restart.

Blob format (kept bit-compatible with existing history files):

    hex(iv) + ":" + hex(AES-256-CBC(PKCS7(utf8(json))))

The AES key is base64(sha256(secret))[:32] taken as ASCII bytes. The
truncated base64 text carries less entropy than a raw 32-byte digest; it is
kept as-is because changing it would break the format.
"""

import base64
import hashlib
import hmac
import logging
import os
import secrets
from dataclasses import dataclass, field

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

IV_LENGTH = 16
KEY_LENGTH = 32
_SEPARATOR = ":"


class DecryptionError(ValueError):
    """Raised when a blob can't be split, decoded, or decrypted."""


def token_matches_any(provided: str, configured_tokens: str) -> bool:
    """Check if provided value matches any entry of a comma-separated list.

    All comparisons use hmac.compare_digest to prevent timing attacks.

    Args:
        provided: The value from the incoming request (e.g. a sender id).
        configured_tokens: Single value or comma-separated list (e.g. "111,222").

    Returns:
        True if provided matches any configured value.
    """
    if not provided or not configured_tokens:
        return False

    for token in configured_tokens.split(","):
        token = token.strip()
        if token and hmac.compare_digest(provided, token):
            return True

    return False


def derive_key(secret: str) -> bytes:
    """Derive the AES-256 key from the process secret."""
    digest = base64.b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
    return digest[:KEY_LENGTH]


@dataclass(frozen=True)
class EncryptionContext:
    """Process-wide symmetric key.

    Create one with generate() at startup and pass it to whatever needs to
    encrypt. Never persisted, never rotated while the process lives.
    """

    key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.key) != KEY_LENGTH:
            raise ValueError(f"Encryption key must be {KEY_LENGTH} bytes, got {len(self.key)}")

    @classmethod
    def generate(cls) -> "EncryptionContext":
        """Create a context from a fresh random secret."""
        secret = base64.b64encode(secrets.token_bytes(32)).decode("ascii")
        return cls.from_secret(secret)

    @classmethod
    def from_secret(cls, secret: str) -> "EncryptionContext":
        return cls(key=derive_key(secret))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt text under a fresh IV and return the hex blob."""
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self.key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return iv.hex() + _SEPARATOR + ciphertext.hex()

    def decrypt(self, blob: str) -> str:
        """Decrypt a hex blob produced by encrypt().

        Raises DecryptionError for anything that isn't exactly two
        separator-delimited hex segments that decrypt under this key.
        """
        parts = blob.strip().split(_SEPARATOR)
        if len(parts) != 2:
            raise DecryptionError(f"Invalid encrypted format: expected 2 segments, got {len(parts)}")

        try:
            iv = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError as e:
            raise DecryptionError(f"Invalid hex in blob: {e}") from e

        if len(iv) != IV_LENGTH:
            raise DecryptionError(f"Invalid IV length: {len(iv)}")
        if not ciphertext or len(ciphertext) % IV_LENGTH:
            raise DecryptionError(f"Invalid ciphertext length: {len(ciphertext)}")

        decryptor = Cipher(algorithms.AES(self.key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except ValueError as e:
            # Wrong key almost always surfaces here as bad padding
            raise DecryptionError(f"Decryption failed: {e}") from e
