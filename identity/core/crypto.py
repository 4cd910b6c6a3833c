"""
Reversible encryption for short auxiliary secrets (password reset tokens).

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The Fernet key is derived from ``ENCRYPTION_KEY`` with HKDF-SHA256, so any
string of at least 32 bytes can be configured.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from identity.core.config import Settings

HKDF_INFO = b"identity.symmetric-cipher.v1"

__all__ = ["InvalidToken", "SymmetricCipher"]


def _derive_fernet_key(secret: str) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=HKDF_INFO,
    )
    return base64.urlsafe_b64encode(hkdf.derive(secret.encode("utf-8")))


class SymmetricCipher:
    """Encrypts and decrypts text with the configured encryption key."""

    def __init__(self, settings: Settings) -> None:
        self._fernet = Fernet(_derive_fernet_key(settings.ENCRYPTION_KEY.get_secret_value()))

    def encrypt(self, plaintext: str, at_time: int | None = None) -> str:
        """Return URL-safe base64 ciphertext. ``at_time`` overrides the embedded timestamp."""
        data = plaintext.encode("utf-8")
        if at_time is None:
            return self._fernet.encrypt(data).decode("ascii")
        return self._fernet.encrypt_at_time(data, at_time).decode("ascii")

    def decrypt(
        self,
        ciphertext: str,
        ttl_seconds: int | None = None,
        current_time: int | None = None,
    ) -> str:
        """
        Decrypt ciphertext produced by encrypt().

        Raises InvalidToken when the ciphertext was tampered with, was made with
        another key, or is older than ``ttl_seconds`` at ``current_time`` (defaults
        to now).
        """
        data = ciphertext.encode("ascii")
        if ttl_seconds is None or current_time is None:
            return self._fernet.decrypt(data, ttl=ttl_seconds).decode("utf-8")
        return self._fernet.decrypt_at_time(data, ttl_seconds, current_time).decode("utf-8")
