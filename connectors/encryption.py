"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses AES-256-CBC with PKCS7 padding from the ``cryptography`` library.
Each envelope is ``hex(iv) ":" hex(ciphertext)`` with a fresh random IV.
The key is loaded from ``config.encryption_key`` (env var: ``ENCRYPTION_KEY``)
as 64 hex characters.

If no key is configured outside production, encryption is **disabled** and
tokens are stored as plaintext (with a startup warning).  Generate a key with::

    python -c "from connectors.encryption import generate_encryption_key; print(generate_encryption_key())"
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from config.settings import config
from connectors.errors import DecryptionError, InvalidKeyError, MissingKeyError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
_BLOCK_BITS = algorithms.AES.block_size


def generate_encryption_key() -> str:
    """Return a fresh random key suitable for ``ENCRYPTION_KEY``."""
    return os.urandom(KEY_LENGTH).hex()


def _parse_key(key_hex: str) -> bytes:
    try:
        key = bytes.fromhex(key_hex)
    except ValueError:
        raise InvalidKeyError(
            "ENCRYPTION_KEY must be a 32-byte hex string (64 characters)"
        ) from None
    if len(key) != KEY_LENGTH:
        raise InvalidKeyError(
            "ENCRYPTION_KEY must be a 32-byte hex string (64 characters)"
        )
    return key


class TokenCipher:
    """Symmetric envelope encryption for tokens stored in the connection store."""

    def __init__(self, key_hex: Optional[str], *, production: bool = False):
        self._production = production
        if not key_hex:
            if production:
                raise MissingKeyError("ENCRYPTION_KEY must be set in production")
            logger.warning(
                "ENCRYPTION_KEY not set — OAuth tokens will be stored as plaintext. "
                "This is only acceptable for local development."
            )
            self._key: Optional[bytes] = None
            return
        self._key = _parse_key(key_hex)
        logger.info("Token encryption enabled (AES-256-CBC)")

    @classmethod
    def from_settings(cls, settings=config) -> "TokenCipher":
        return cls(settings.encryption_key, production=settings.is_production)

    @property
    def enabled(self) -> bool:
        return self._key is not None

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token string for storage; pass-through when disabled."""
        if self._key is None:
            return plaintext

        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt an envelope read from the store.

        Raises ``DecryptionError`` for malformed envelopes, a wrong key or
        tampered ciphertext.
        """
        if self._key is None:
            return envelope

        parts = envelope.split(":")
        if len(parts) != 2:
            raise DecryptionError("Malformed token envelope")
        try:
            iv = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError:
            raise DecryptionError("Malformed token envelope") from None
        if len(iv) != IV_LENGTH or not ciphertext or len(ciphertext) % IV_LENGTH:
            raise DecryptionError("Malformed token envelope")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
        try:
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode("utf-8")
        except ValueError:
            # UnicodeDecodeError is a ValueError subclass
            raise DecryptionError("Failed to decrypt token") from None
