"""scrypt + AES-256-GCM secret encryption/decryption.

Each secret gets its own random salt and IV. The symmetric key is derived
from the server-held password and that salt, so the ciphertext can only be
read back with both the password and the stored salt. GCM's tag makes
corruption (of either value) fail loudly instead of decrypting to garbage.

Stored layout: ``ciphertext = b64(iv) + ":" + b64(encrypted || tag)``,
``salt = b64(salt)``.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
import string

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from providerhub.errors import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
SALT_LENGTH = 32
TAG_LENGTH = 16

# scrypt cost parameters (N, r, p)
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

_SEPARATOR = ":"
_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _b64decode(data: str) -> bytes:
    return base64.b64decode(data.encode(), validate=True)


class SecretBox:
    """Encrypts provider keys with a password held by the server."""

    def __init__(self, password: str) -> None:
        self._password = password.encode() if password else b""

    @property
    def configured(self) -> bool:
        return bool(self._password)

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
        return kdf.derive(self._password)

    def encrypt(self, plaintext: str) -> tuple[str, str]:
        """Return ``(ciphertext, salt)`` for *plaintext*."""
        if not self._password:
            raise EncryptionError("Encryption password is not configured")

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = self._derive_key(salt)
        sealed = AESGCM(key).encrypt(iv, plaintext.encode(), None)
        return _b64encode(iv) + _SEPARATOR + _b64encode(sealed), _b64encode(salt)

    def decrypt(self, ciphertext: str, salt: str) -> str:
        if not self._password:
            raise DecryptionError("Encryption password is not configured")

        try:
            iv_part, sealed_part = ciphertext.split(_SEPARATOR)
            iv = _b64decode(iv_part)
            sealed = _b64decode(sealed_part)
            salt_bytes = _b64decode(salt)
        except (ValueError, binascii.Error) as exc:
            raise DecryptionError("Stored key is malformed", details=str(exc)) from exc

        if len(iv) != IV_LENGTH or len(sealed) < TAG_LENGTH or len(salt_bytes) != SALT_LENGTH:
            raise DecryptionError("Stored key is truncated")

        try:
            plaintext = AESGCM(self._derive_key(salt_bytes)).decrypt(iv, sealed, None)
            return plaintext.decode()
        except (InvalidTag, UnicodeDecodeError) as exc:
            raise DecryptionError(
                "Stored key could not be decrypted with the current password",
                details=type(exc).__name__,
            ) from exc

    def self_test(self) -> bool:
        """Round-trip a dummy value; used as a startup sanity check."""
        if not self._password:
            return False
        sample = "sk-test-api-key-12345"
        try:
            ciphertext, salt = self.encrypt(sample)
            return self.decrypt(ciphertext, salt) == sample
        except (EncryptionError, DecryptionError) as exc:
            logger.error("Encryption self-test failed: %s", exc)
            return False


def is_valid_encrypted_data(ciphertext: str, salt: str) -> bool:
    """Structural check only; does not need the password."""
    try:
        iv_part, sealed_part = ciphertext.split(_SEPARATOR)
        return (
            len(_b64decode(iv_part)) == IV_LENGTH
            and len(_b64decode(sealed_part)) >= TAG_LENGTH
            and len(_b64decode(salt)) == SALT_LENGTH
        )
    except (ValueError, binascii.Error):
        return False


def generate_encryption_password(length: int = 32) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))
