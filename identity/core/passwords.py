"""Password hashing: salted PBKDF2-HMAC-SHA256, encoded as ``base64(salt):base64(key)``."""

import base64
import binascii
import hmac
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# KDF parameters are not stored in the encoded hash; changing them invalidates existing hashes.
SALT_BYTES = 16
KEY_BYTES = 32
PBKDF2_ITERATIONS = 10_000

# Min/max lengths for password validation (input validation before hashing).
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


class PasswordHasher:
    """Derives and verifies salted password hashes. Stateless; safe to share."""

    def __init__(self, iterations: int = PBKDF2_ITERATIONS) -> None:
        self.iterations = iterations

    def _derive(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_BYTES,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(password.encode("utf-8"))

    def hash(self, password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        salt = os.urandom(SALT_BYTES)
        key = self._derive(password, salt)
        return f"{base64.b64encode(salt).decode('ascii')}:{base64.b64encode(key).decode('ascii')}"

    def verify(self, encoded_hash: str, password: str) -> bool:
        """
        Verify a plain password against a stored hash.

        A malformed stored hash fails closed (returns False).
        """
        if not encoded_hash or not isinstance(encoded_hash, str):
            return False
        parts = encoded_hash.split(":")
        if len(parts) != 2:
            return False
        try:
            salt = base64.b64decode(parts[0], validate=True)
            expected = base64.b64decode(parts[1], validate=True)
        except (binascii.Error, ValueError):
            return False
        if len(salt) != SALT_BYTES or len(expected) != KEY_BYTES:
            return False
        return hmac.compare_digest(self._derive(password, salt), expected)
