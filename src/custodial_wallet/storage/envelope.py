"""AES-256-CBC envelope encryption for stored documents.

Wire format (one envelope per document)::

    hex(iv) + ":" + hex(ciphertext)

The IV is 16 random bytes drawn fresh for every call, so encrypting the same
document twice never yields the same envelope.  The plaintext is the compact
JSON serialization of the document, PKCS#7-padded to the AES block size.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from custodial_wallet.storage.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256
IV_SIZE = 16
BLOCK_BITS = algorithms.AES.block_size  # 128
SEPARATOR = ":"


class EnvelopeCipher:
    """Encrypt and decrypt documents under one symmetric key.

    Parameters
    ----------
    key:
        The raw 32-byte secret key.

    Raises
    ------
    ConfigurationError
        If *key* is not exactly 32 bytes.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ConfigurationError(
                f"Secret key must be {KEY_SIZE} bytes, got {len(key)} bytes"
            )
        self._key = key

    def encrypt(self, document: dict[str, Any]) -> str:
        """Serialize and encrypt *document*, returning the envelope string."""
        plaintext = json.dumps(document, separators=(",", ":"), default=str).encode("utf-8")

        padder = padding.PKCS7(BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()

        iv = os.urandom(IV_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}{SEPARATOR}{ciphertext.hex()}"

    def decrypt(self, envelope: Optional[str]) -> Optional[dict[str, Any]]:
        """Decrypt an envelope back into a document.

        Returns ``None`` for anything unreadable: malformed framing, a bad
        IV, a wrong key, truncated ciphertext or a plaintext that is not a
        JSON object.  The reason is logged at DEBUG; callers that skip the
        record own the warning.  Never raises.
        """
        if not envelope or not isinstance(envelope, str):
            logger.debug("Attempted to decrypt an empty envelope")
            return None

        parts = envelope.split(SEPARATOR)
        if len(parts) != 2:
            logger.debug("Invalid envelope format: expected 'iv:ciphertext'")
            return None

        iv_hex, ct_hex = parts
        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ct_hex)
        except ValueError:
            logger.debug("Invalid envelope format: IV or ciphertext is not hex")
            return None

        if len(iv) != IV_SIZE:
            logger.debug(f"Invalid envelope IV length: {len(iv)} bytes")
            return None
        if not ciphertext or len(ciphertext) % (BLOCK_BITS // 8):
            logger.debug("Invalid envelope ciphertext length (truncated data?)")
            return None

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            document = json.loads(plaintext.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            # Bad padding and bad JSON both surface as ValueError subclasses.
            logger.debug(f"Failed to decrypt envelope (wrong key or corrupted data): {exc}")
            return None

        if not isinstance(document, dict):
            logger.debug("Decrypted envelope is not a document object")
            return None
        return document
