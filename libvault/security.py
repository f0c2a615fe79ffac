"""Field-level encryption for user records.

Every sensitive string is stored as a self-contained token::

    base64(salt[16] || iv[12] || AES-256-GCM(plaintext) || tag[16])

The key is derived from the user's own password with PBKDF2-HMAC-SHA256 and
the salt is bound to the ciphertext as associated data. A fresh salt and IV
are drawn for every call, so the same plaintext never encrypts to the same
token twice.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from libvault.config import settings
from libvault.exceptions import DecryptionError, ValidationError

logger = logging.getLogger(__name__)

SALT_LENGTH = 16
IV_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a trial decryption. ``ok`` is False for any failure."""

    ok: bool
    plaintext: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


_FAILED = DecryptResult(ok=False)


def derive_key(password: str, salt: bytes, iterations: Optional[int] = None) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations or settings.pbkdf2_iterations,
    )
    return kdf.derive(_to_bytes(password, "Password"))


def _to_bytes(text: str, field: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(f"{field} is not valid UTF-8 text") from e


def encrypt(plaintext: str, password: str) -> str:
    """Encrypt ``plaintext`` under a key derived from ``password``.

    Raises :class:`ValidationError` for text that cannot be encoded as UTF-8.
    """
    logger.debug("Encryption operation initiated")
    data = _to_bytes(plaintext, "Plaintext")
    salt = os.urandom(SALT_LENGTH)
    iv = os.urandom(IV_LENGTH)
    key = derive_key(password, salt)
    # AESGCM appends the 16-byte tag to the ciphertext
    sealed = AESGCM(key).encrypt(iv, data, salt)
    return base64.b64encode(salt + iv + sealed).decode("ascii")


def decrypt(token: str, password: str) -> str:
    """Reverse :func:`encrypt`.

    Raises :class:`DecryptionError` when the password is wrong, the token is
    malformed or the authentication tag does not verify.
    """
    result = try_decrypt(token, password)
    if not result.ok:
        logger.warning("Decryption operation failed - possibly wrong password")
        raise DecryptionError("Error decrypting data")
    return result.plaintext


def try_decrypt(token: Optional[str], password: str) -> DecryptResult:
    """Decrypt without raising; scans use this to filter candidate records."""
    if not token or password is None:
        return _FAILED
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError, TypeError):
        return _FAILED
    if len(raw) < SALT_LENGTH + IV_LENGTH + TAG_LENGTH:
        return _FAILED

    salt = raw[:SALT_LENGTH]
    iv = raw[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
    sealed = raw[SALT_LENGTH + IV_LENGTH:]
    try:
        plain = AESGCM(derive_key(password, salt)).decrypt(iv, sealed, salt)
        return DecryptResult(ok=True, plaintext=plain.decode("utf-8"))
    except (InvalidTag, UnicodeDecodeError, ValidationError):
        return _FAILED


def matches(token: Optional[str], password: str, expected: str) -> bool:
    result = try_decrypt(token, password)
    return result.ok and result.plaintext == expected
