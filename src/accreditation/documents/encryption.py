"""AES-GCM encryption for verification documents.

Each document is encrypted with AES-256-GCM using:
- A 256-bit process-wide key from DOCUMENT_ENCRYPTION_KEY (64 hex chars)
- A fresh random 96-bit IV per document, stored next to the ciphertext
- The document id as associated data, so a ciphertext copied onto another
  row fails authentication

The key must be supplied by configuration. There is deliberately no random
fallback: a generated key would make every stored document undecryptable
after the next restart.
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import Settings

logger = logging.getLogger(__name__)

IV_SIZE = 12
KEY_SIZE = 32


class EncryptionKeyError(Exception):
    """Raised at startup when the encryption key is missing or malformed."""
    pass


class DecryptionError(Exception):
    """Raised when a ciphertext fails authentication."""
    pass


@dataclass(frozen=True)
class EncryptedPayload:
    iv: bytes
    ciphertext: bytes  # includes the 16-byte GCM tag


def compute_checksum(data: bytes) -> str:
    """SHA-256 of the plaintext, hex encoded."""
    return hashlib.sha256(data).hexdigest()


class DocumentCipher:
    """AES-256-GCM cipher bound to the process-wide document key.

    The raw key is handed to AESGCM and not kept on the instance, so it
    cannot leak through repr() or logging of the cipher object.

    Example:
        cipher = DocumentCipher.from_settings(get_settings())
        payload = cipher.encrypt(b"...", associated_data=b"document:<id>")
        plaintext = cipher.decrypt(payload.iv, payload.ciphertext, b"document:<id>")
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise EncryptionKeyError(
                f"Document encryption key must be {KEY_SIZE} bytes, got {len(key)} bytes"
            )
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_hex(cls, key_hex: Optional[str]) -> "DocumentCipher":
        if not key_hex:
            raise EncryptionKeyError(
                "DOCUMENT_ENCRYPTION_KEY is not set. "
                "Generate one with: python -c 'import os; print(os.urandom(32).hex())'"
            )
        try:
            key = bytes.fromhex(key_hex)
        except ValueError as e:
            raise EncryptionKeyError(f"DOCUMENT_ENCRYPTION_KEY must be a valid hex string: {e}")
        return cls(key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentCipher":
        cipher = cls.from_hex(settings.DOCUMENT_ENCRYPTION_KEY)
        logger.info("Document cipher initialized with AES-256-GCM")
        return cipher

    def encrypt(self, plaintext: bytes, associated_data: Optional[bytes] = None) -> EncryptedPayload:
        iv = os.urandom(IV_SIZE)
        ciphertext = self._aesgcm.encrypt(iv, plaintext, associated_data)
        return EncryptedPayload(iv=iv, ciphertext=ciphertext)

    def decrypt(self, iv: bytes, ciphertext: bytes, associated_data: Optional[bytes] = None) -> bytes:
        """Decrypt and authenticate.

        Raises:
            DecryptionError: If the tag does not verify (tampered data,
                wrong key, wrong associated data or malformed IV)
        """
        if len(iv) != IV_SIZE:
            raise DecryptionError(f"Invalid IV length: {len(iv)}")
        try:
            return self._aesgcm.decrypt(iv, ciphertext, associated_data)
        except InvalidTag:
            raise DecryptionError("Authentication tag verification failed")

    def __repr__(self) -> str:
        return "DocumentCipher(algorithm='AES-256-GCM')"
